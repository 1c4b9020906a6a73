"""Base source adapter interface.

Every adapter returns an ``AdapterResult`` and never raises past
``fetch_candidates``: timeouts, HTTP failures and parse errors all become
``AdapterResult.error`` with an empty item list.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from src.errors import AdapterError
from src.logging import log_adapter_fetch
from src.state.models import Intent, ListingFragment, SourceKind, SourceStatus
from src.tools.scraping.filters import dedupe_by_link

logger = structlog.get_logger()


class AdapterConfig(BaseModel):
    """Configuration for a source adapter."""

    name: str
    kind: SourceKind
    base_url: str = ""
    max_items: int = 10
    timeout_seconds: float = 25.0


class AdapterResult(BaseModel):
    """Tagged adapter outcome: items on success, an error code on failure."""

    name: str
    kind: SourceKind
    items: list[ListingFragment] = Field(default_factory=list)
    error: Optional[str] = None
    query_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(
        cls,
        name: str,
        kind: SourceKind,
        error: str,
        query_url: Optional[str] = None,
    ) -> "AdapterResult":
        return cls(name=name, kind=kind, items=[], error=error, query_url=query_url)

    def status(self) -> SourceStatus:
        """Per-source status block for the result payload."""
        return SourceStatus(
            ok=self.ok,
            count=len(self.items),
            error=self.error,
            query_url=self.query_url,
        )


class BaseSourceAdapter(ABC):
    """Abstract base class for listing sources."""

    def __init__(self, config: AdapterConfig):
        self.config = config
        self.name = config.name
        self.kind = config.kind

    @abstractmethod
    async def _fetch(self, query: str, intent: Intent) -> AdapterResult:
        """Fetch and parse listings.

        May raise ``AdapterError`` (or anything else); ``fetch_candidates``
        converts failures into an error result.
        """

    def build_search_url(self, query: str) -> Optional[str]:
        """Search URL for a query, if the adapter has a search page."""
        return None

    async def fetch_candidates(self, query: str, intent: Intent) -> AdapterResult:
        """Run the adapter with a hard timeout, dedup by link and cap items."""
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._fetch(query, intent), timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            result = self._failure("timeout", self.build_search_url(query))
        except AdapterError as e:
            result = self._failure(e.code, self.build_search_url(query))
        except Exception as e:
            logger.exception("Adapter crashed", source=self.name)
            result = self._failure(
                str(e) or e.__class__.__name__, self.build_search_url(query)
            )

        if result.ok:
            kept = [f for f in result.items if f.price_ron is not None or f.has_text]
            kept = dedupe_by_link(kept)[: self.config.max_items]
            result = result.model_copy(update={"items": kept})

        log_adapter_fetch(
            source=self.name,
            url=result.query_url,
            success=result.ok,
            duration_ms=(time.perf_counter() - start) * 1000,
            items_found=len(result.items),
            error=result.error,
        )
        return result

    def _result(
        self, items: list[ListingFragment], query_url: Optional[str] = None
    ) -> AdapterResult:
        return AdapterResult(
            name=self.name, kind=self.kind, items=items, query_url=query_url
        )

    def _failure(self, error: str, query_url: Optional[str] = None) -> AdapterResult:
        return AdapterResult.failed(self.name, self.kind, error, query_url)
