"""Oracle interfaces and their deterministic fallbacks.

Each oracle is optional. The implementation is chosen once, when the
pipeline is built: OpenAI-backed oracles when a key is configured, the
fallbacks below otherwise. Real oracles raise ``OracleUnavailable`` on any
failure and the pipeline then applies the matching fallback.
"""

from typing import Any, NamedTuple, Optional, Protocol

import structlog

from src.state.models import (
    ALL_CONDITIONS,
    Candidate,
    Category,
    Condition,
    Intent,
    ListingFacts,
    SearchRequest,
)
from src.tools.scoring import CandidateScore, fallback_scores
from src.tools.scraping.filters import DEFAULT_MUST_EXCLUDE

logger = structlog.get_logger()


class IntentOracle(Protocol):
    async def parse(self, request: SearchRequest) -> Intent: ...


class FactOracle(Protocol):
    async def extract(self, candidates: list[Candidate], intent: Intent) -> list[ListingFacts]: ...


class ScoringOracle(Protocol):
    async def score(self, candidates: list[Candidate], intent: Intent) -> list[CandidateScore]: ...


class TextOracle(Protocol):
    async def recommend(self, payload: dict[str, Any]) -> Optional[str]: ...


def conditions_for(condition: Optional[str]) -> list[Condition]:
    """Accepted conditions for the request's ``condition`` parameter."""
    wanted = (condition or "any").strip().lower()
    for c in ALL_CONDITIONS:
        if c.value == wanted:
            return [c]
    return list(ALL_CONDITIONS)


def build_fallback_intent(request: SearchRequest) -> Intent:
    """Intent taken straight from the request parameters."""
    return Intent(
        category=Category.OTHER,
        budget_lei=request.budget,
        size_min=request.size_min,
        size_max=request.size_max,
        condition_ok=conditions_for(request.condition),
        must_have=[],
        must_exclude=list(DEFAULT_MUST_EXCLUDE),
        search_query=request.q,
        expanded_queries=[],
    )


class FallbackIntentOracle:
    async def parse(self, request: SearchRequest) -> Intent:
        return build_fallback_intent(request)


class FallbackFactOracle:
    """No enrichment: candidates keep their unknown defaults."""

    async def extract(self, candidates: list[Candidate], intent: Intent) -> list[ListingFacts]:
        return []


class FallbackScoringOracle:
    """Flat overall score and a panel guess.

    Value is left out: it depends on each listing's own price, so the
    pipeline fills it per candidate.
    """

    async def score(self, candidates: list[Candidate], intent: Intent) -> list[CandidateScore]:
        return [
            CandidateScore(
                link=c.link,
                overall_score=c.overall_score,
                panel_type=c.panel_type,
            )
            for c in fallback_scores(candidates, intent)
        ]


class FallbackTextOracle:
    async def recommend(self, payload: dict[str, Any]) -> Optional[str]:
        return None


class OracleSet(NamedTuple):
    """The four oracles used by one pipeline."""

    intent: IntentOracle
    facts: FactOracle
    scoring: ScoringOracle
    text: TextOracle
    available: bool = False


def fallback_oracles() -> OracleSet:
    return OracleSet(
        intent=FallbackIntentOracle(),
        facts=FallbackFactOracle(),
        scoring=FallbackScoringOracle(),
        text=FallbackTextOracle(),
        available=False,
    )


def create_oracles(settings) -> OracleSet:
    """Pick oracle implementations once, from settings."""
    if not settings.has_oracle:
        logger.info("Oracle credentials missing, using deterministic fallbacks")
        return fallback_oracles()

    from src.agents.openai_oracles import create_openai_oracles

    return create_openai_oracles(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.oracle_timeout_seconds,
    )
