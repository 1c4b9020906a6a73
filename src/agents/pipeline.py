"""Search pipeline: intent, cache, sources, enrichment, scoring, ranking."""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiosqlite
import structlog

from src.agents.oracles import (
    FallbackIntentOracle,
    FallbackScoringOracle,
    FallbackTextOracle,
    OracleSet,
    create_oracles,
)
from src.cache.keys import make_cache_key
from src.cache.manager import ResultCache, create_result_cache
from src.errors import InvalidRequest, OracleUnavailable
from src.logging import log_oracle_call, log_search
from src.state.models import (
    CacheInfo,
    Candidate,
    DebugInfo,
    Intent,
    ListingFacts,
    SearchRequest,
    SearchResult,
)
from src.tools.aggregation import FACTS_LIMIT, apply_facts, merge_candidates
from src.tools.ranking import rank_candidates
from src.tools.reviews import ReviewLookup
from src.tools.scoring import CandidateScore, apply_oracle_scores, attach_hard_fit, fallback_scores
from src.tools.scraping.base_adapter import AdapterResult, BaseSourceAdapter
from src.tools.scraping.google.cse_client import WebSearchClient, create_search_client
from src.tools.scraping.google.olx_discovery import OlxDiscoveryAdapter
from src.tools.scraping.http_client import RobustHttpClient
from src.tools.scraping.listing_pages import PageRenderer
from src.tools.scraping.romania import PricyAdapter, ReselectoAdapter
from src.tools.scraping.user_targets import UserTargetAdapter

logger = structlog.get_logger()

T = TypeVar("T")

SCORING_LIMIT = 20


class SearchPipeline:
    """Runs one search request end to end.

    Collaborators are injected; nothing here reads global state, so
    several pipelines (and caches) can coexist, e.g. in tests.
    """

    def __init__(
        self,
        oracles: OracleSet,
        search_client: WebSearchClient,
        cache: ResultCache,
        http_client: Optional[RobustHttpClient] = None,
        renderer: Optional[PageRenderer] = None,
        adapter_timeout: float = 25.0,
        adapter_factory: Optional[Callable[[SearchRequest], list[BaseSourceAdapter]]] = None,
    ):
        self.oracles = oracles
        self.search_client = search_client
        self.cache = cache
        self._http = http_client
        self._renderer = renderer
        self._adapter_timeout = adapter_timeout
        self._adapter_factory = adapter_factory or self.build_adapters
        self._reviews = ReviewLookup(search_client)

    def build_adapters(self, request: SearchRequest) -> list[BaseSourceAdapter]:
        """Adapters in source priority order; user targets only when given."""
        adapters: list[BaseSourceAdapter] = [
            PricyAdapter(http_client=self._http),
            ReselectoAdapter(http_client=self._http),
            OlxDiscoveryAdapter(self.search_client, http_client=self._http),
        ]
        if request.targets:
            adapters.append(
                UserTargetAdapter(request.targets, http_client=self._http, renderer=self._renderer)
            )
        for adapter in adapters:
            adapter.config.timeout_seconds = self._adapter_timeout
        return adapters

    async def search(self, request: SearchRequest) -> SearchResult:
        """Serve a search from cache or run the full pipeline and cache it."""
        if not request.q or not request.q.strip():
            raise InvalidRequest("missing q")

        start = time.perf_counter()
        debug = DebugInfo(input=request)

        intent = await self.resolve_intent(request, debug)
        key = make_cache_key(intent, request)

        cached = await self._cache_lookup(key, debug)
        if cached is not None:
            log_search(
                query=request.q,
                results_count=len(cached.top),
                sources={name: s.ok for name, s in cached.sources.items()},
                duration_ms=(time.perf_counter() - start) * 1000,
                cached=True,
                cache_key=key,
            )
            return cached

        result = await self.run(request, intent, debug)
        await self._cache_store(key, result, debug)
        result = result.model_copy(update={"cache": CacheInfo(hit=False, key=key)})

        log_search(
            query=request.q,
            results_count=len(result.top),
            sources={name: s.ok for name, s in result.sources.items()},
            duration_ms=(time.perf_counter() - start) * 1000,
            cached=False,
            cache_key=key,
        )
        return result

    async def resolve_intent(self, request: SearchRequest, debug: DebugInfo) -> Intent:
        """Oracle intent with request values filling what the oracle left out."""
        intent = await self._consult(
            "intent",
            debug,
            lambda: self.oracles.intent.parse(request),
            lambda: FallbackIntentOracle().parse(request),
            count=lambda _: 1,
        )
        missing = {
            field: value
            for field, value in (
                ("budget_lei", request.budget),
                ("size_min", request.size_min),
                ("size_max", request.size_max),
            )
            if getattr(intent, field) is None and value is not None
        }
        if not intent.search_query.strip():
            missing["search_query"] = request.q
        return intent.model_copy(update=missing) if missing else intent

    async def run(self, request: SearchRequest, intent: Intent, debug: DebugInfo) -> SearchResult:
        """Uncached pipeline run. Never raises for source or oracle failures."""
        query = intent.search_query or request.q

        adapters = self._adapter_factory(request)
        results: list[AdapterResult] = list(
            await asyncio.gather(*(adapter.fetch_candidates(query, intent) for adapter in adapters))
        )
        for result in results:
            debug.record(result.name, ok=result.ok, count=len(result.items), error=result.error)

        candidates = merge_candidates(results, intent)
        debug.record("merge", ok=True, count=len(candidates))

        facts: list[ListingFacts] = await self._consult(
            "facts",
            debug,
            lambda: self.oracles.facts.extract(candidates[:FACTS_LIMIT], intent),
            _no_facts,
        )
        candidates = apply_facts(candidates, facts)

        ranked = rank_candidates(await self.score(candidates[:SCORING_LIMIT], intent, debug))

        reviews = await self._reviews.lookup(ranked, intent)
        debug.record(
            "reviews",
            ok=reviews.error is None,
            count=sum(len(item.sources) for item in reviews.items),
            error=reviews.error,
        )

        payload = {
            "input": request.to_wire(),
            "intent": intent.to_wire(),
            "ranked": [c.to_wire() for c in ranked],
            "reviews": reviews.to_wire(),
        }
        recommendation = await self._consult(
            "recommendation",
            debug,
            lambda: self.oracles.text.recommend(payload),
            lambda: FallbackTextOracle().recommend(payload),
            count=lambda text: 1 if text else 0,
        )

        return SearchResult(
            q=request.q,
            intent=intent,
            top=ranked,
            reviews=reviews,
            recommendation=recommendation,
            sources={result.name: result.status() for result in results},
            debug=debug,
        )

    async def score(
        self, candidates: list[Candidate], intent: Intent, debug: DebugInfo
    ) -> list[Candidate]:
        """Oracle (or fallback) scores merged by link, plus hard-fit."""
        scores: list[CandidateScore] = await self._consult(
            "scoring",
            debug,
            lambda: self.oracles.scoring.score(candidates, intent),
            lambda: FallbackScoringOracle().score(candidates, intent),
        )
        scored = apply_oracle_scores(candidates, scores)
        if candidates and not scored:
            debug.record("scoring_links", ok=False, error="no_matching_links")
            scored = fallback_scores(candidates, intent)

        # Oracle may leave a score out for some items
        scored = [
            c if c.overall_score is not None and c.value_score is not None else _fill_scores(c, intent)
            for c in scored
        ]

        return attach_hard_fit(scored, intent)

    async def _consult(
        self,
        name: str,
        debug: DebugInfo,
        call: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
        count: Callable[[Any], int] = len,
    ) -> T:
        """Call an oracle; on ``OracleUnavailable`` log it and use the fallback."""
        start = time.perf_counter()
        try:
            value = await call()
        except OracleUnavailable as e:
            log_oracle_call(name, success=False, duration_ms=(time.perf_counter() - start) * 1000, error=e.reason)
            value = await fallback()
            debug.record(name, ok=False, count=count(value), error=e.reason)
            return value

        if self.oracles.available:
            log_oracle_call(name, success=True, duration_ms=(time.perf_counter() - start) * 1000)
        debug.record(name, ok=True, count=count(value))
        return value

    async def _cache_lookup(self, key: str, debug: DebugInfo) -> Optional[SearchResult]:
        try:
            return await self.cache.lookup(key)
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Cache read failed", key=key, error=str(e))
            debug.record("cache_read", ok=False, error=str(e))
            return None

    async def _cache_store(self, key: str, result: SearchResult, debug: DebugInfo) -> None:
        try:
            await self.cache.put(key, result)
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Cache write failed", key=key, error=str(e))
            debug.record("cache_write", ok=False, error=str(e))


async def _no_facts() -> list[ListingFacts]:
    return []


def _fill_scores(candidate: Candidate, intent: Intent) -> Candidate:
    """Fallback overall/value for whichever of the two the oracle left out."""
    fallback = fallback_scores([candidate], intent)[0]
    return candidate.model_copy(
        update={
            "overall_score": candidate.overall_score if candidate.overall_score is not None else fallback.overall_score,
            "value_score": candidate.value_score if candidate.value_score is not None else fallback.value_score,
        }
    )


def create_pipeline(settings) -> SearchPipeline:
    """Build a pipeline with collaborators chosen from settings."""
    renderer: Optional[PageRenderer] = None
    if settings.render_enabled:
        from src.tools.scraping.playwright_client import PlaywrightRenderer

        renderer = PlaywrightRenderer()

    return SearchPipeline(
        oracles=create_oracles(settings),
        search_client=create_search_client(settings),
        cache=create_result_cache(settings),
        renderer=renderer,
        adapter_timeout=settings.adapter_timeout_seconds,
    )
