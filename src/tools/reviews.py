"""External review lookup for the top ranked candidates."""

from typing import Iterable

import structlog

from src.state.models import Candidate, CandidateReviews, Category, Intent, ReviewSet, ReviewSource
from src.tools.scraping.google.cse_client import MISSING_CREDENTIALS, WebSearchClient
from src.tools.scraping.parsing import normalize_text

logger = structlog.get_logger()

REVIEWED_CANDIDATES = 3
QUERIES_PER_CANDIDATE = 4
RESULTS_PER_QUERY = 5
MAX_SOURCES = 12
MODEL_MAX_LEN = 120


def review_queries(model: str, category: Category) -> list[str]:
    """Search queries for one model, most useful first."""
    if category == Category.TV:
        suffixes = [
            "review",
            "rtings",
            "site:reddit.com r/OLED OR r/4kTV",
            "site:avsforum.com",
            "hdtvtest",
        ]
    else:
        suffixes = ["review", "site:reddit.com", "benchmark OR forum"]
    return [f"{model} {suffix}" for suffix in suffixes]


class ReviewLookup:
    """Collects review and discussion links for ranked candidates."""

    def __init__(self, search_client: WebSearchClient):
        self._search = search_client

    async def lookup(self, ranked: Iterable[Candidate], intent: Intent) -> ReviewSet:
        top = list(ranked)[:REVIEWED_CANDIDATES]

        if not self._search.available:
            # Per-candidate empty sets; the request itself is unaffected
            return ReviewSet(
                items=[
                    CandidateReviews(candidate_link=c.link, model=model)
                    for c in top
                    if (model := self._model(c))
                ],
                error=MISSING_CREDENTIALS,
            )

        items = []
        for candidate in top:
            model = self._model(candidate)
            if not model:
                continue
            sources = await self._collect(model, intent.category)
            items.append(CandidateReviews(candidate_link=candidate.link, model=model, sources=sources))

        logger.info("Reviews collected", candidates=len(items), sources=sum(len(i.sources) for i in items))
        return ReviewSet(items=items)

    @staticmethod
    def _model(candidate: Candidate) -> str:
        return normalize_text(candidate.best_identifier())[:MODEL_MAX_LEN]

    async def _collect(self, model: str, category: Category) -> list[ReviewSource]:
        sources: list[ReviewSource] = []
        seen: set[str] = set()

        for query in review_queries(model, category)[:QUERIES_PER_CANDIDATE]:
            found = await self._search.search(query, RESULTS_PER_QUERY)
            if found.error:
                logger.debug("Review query failed", query=query[:80], error=found.error)
            for source in found.items:
                if not source.link or source.link in seen:
                    continue
                seen.add(source.link)
                sources.append(source)
                if len(sources) >= MAX_SOURCES:
                    return sources
        return sources
