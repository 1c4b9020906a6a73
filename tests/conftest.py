"""Pytest configuration and shared fixtures."""

from typing import Optional

import pytest

from src.agents.oracles import fallback_oracles
from src.agents.pipeline import SearchPipeline
from src.cache.manager import ResultCache
from src.cache.store import MemoryKVStore
from src.state.models import Category, Intent, ListingFragment, SourceKind
from src.tools.scraping.base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from src.tools.scraping.google.cse_client import MissingSearchClient, WebSearchResponse
from src.tools.scraping.http_client import FetchResult

START_MS = 1_700_000_000_000


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


class FakeHttpClient:
    """Serves canned pages by URL; anything else is a 404."""

    def __init__(self, pages: Optional[dict[str, str]] = None, errors: Optional[dict[str, str]] = None):
        self.pages = pages or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    async def get(self, url, headers=None, params=None, timeout=None) -> FetchResult:
        self.calls.append(url)
        if url in self.errors:
            return FetchResult(url=url, error=self.errors[url])
        if url in self.pages:
            return FetchResult(url=url, status=200, text=self.pages[url])
        return FetchResult(url=url, status=404, text="not found")


class FakeSearchClient:
    """Web search stub returning canned hits per query (or for every query)."""

    available = True

    def __init__(self, results: Optional[dict[str, list[dict]]] = None, default: Optional[list[dict]] = None):
        self.results = results or {}
        self.default = default or []
        self.queries: list[tuple[str, int]] = []

    async def search(self, query: str, num: int = 6) -> WebSearchResponse:
        self.queries.append((query, num))
        return WebSearchResponse.model_validate({"items": self.results.get(query, self.default)})


class StaticAdapter(BaseSourceAdapter):
    """Adapter returning fixed items or a fixed error."""

    def __init__(self, name: str, kind: SourceKind, items=None, error: Optional[str] = None):
        super().__init__(AdapterConfig(name=name, kind=kind, max_items=50))
        self.items = items or []
        self.error = error
        self.calls = 0

    async def _fetch(self, query, intent) -> AdapterResult:
        self.calls += 1
        if self.error:
            return self._failure(self.error)
        return self._result(list(self.items))


def make_fragment(
    link: str,
    title: Optional[str] = "Televizor LG OLED 65",
    price: Optional[float] = 3800,
    source: SourceKind = SourceKind.PRICE_SITE,
    **extra,
) -> ListingFragment:
    return ListingFragment(title=title, link=link, price_ron=price, source=source, **extra)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKVStore:
    return MemoryKVStore()


@pytest.fixture
def result_cache(memory_store, clock) -> ResultCache:
    """Result cache on an in-memory store with a controllable clock."""
    return ResultCache(memory_store, clock=clock)


@pytest.fixture
def tv_intent() -> Intent:
    """OLED 65 inch under 4000 lei."""
    return Intent(
        category=Category.TV,
        budget_lei=4000,
        size_min=65,
        must_have=["oled"],
        must_exclude=["pentru piese"],
        search_query="OLED 65 inch",
    )


@pytest.fixture
def make_pipeline(result_cache):
    """Pipeline factory over static adapters, fallback oracles and no web search."""

    def _make(adapters: list[BaseSourceAdapter], oracles=None, search_client=None) -> SearchPipeline:
        return SearchPipeline(
            oracles=oracles or fallback_oracles(),
            search_client=search_client or MissingSearchClient(),
            cache=result_cache,
            adapter_factory=lambda request: adapters,
        )

    return _make
