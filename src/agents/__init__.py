"""Oracles and the search pipeline."""

from src.agents.oracles import OracleSet, build_fallback_intent, create_oracles, fallback_oracles
from src.agents.pipeline import SearchPipeline, create_pipeline

__all__ = [
    "OracleSet",
    "SearchPipeline",
    "build_fallback_intent",
    "create_oracles",
    "create_pipeline",
    "fallback_oracles",
]
