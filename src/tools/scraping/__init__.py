"""Listing sources: price comparison, resale, discovery and user targets."""

from .base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from .google import OlxDiscoveryAdapter
from .romania import PricyAdapter, ReselectoAdapter
from .user_targets import UserTargetAdapter, parse_targets

__all__ = [
    "AdapterConfig",
    "AdapterResult",
    "BaseSourceAdapter",
    "OlxDiscoveryAdapter",
    "PricyAdapter",
    "ReselectoAdapter",
    "UserTargetAdapter",
    "parse_targets",
]
