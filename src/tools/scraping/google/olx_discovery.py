"""Discovery source: OLX listings found through web search, then fetched."""

import math
from typing import Optional
from urllib.parse import urlparse

import structlog

from src.state.models import Category, Intent, SourceKind
from src.tools.scraping.base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from src.tools.scraping.google.cse_client import MISSING_CREDENTIALS, WebSearchClient
from src.tools.scraping.http_client import RobustHttpClient, get_http_client
from src.tools.scraping.listing_pages import fetch_listing_pages
from src.tools.scraping.parsing import safe_host

logger = structlog.get_logger()

MAX_DISCOVERED_LISTINGS = 6
SEARCH_RESULTS = 8
PAGE_TIMEOUT_SECONDS = 9.0


class OlxDiscoveryAdapter(BaseSourceAdapter):
    """Finds olx.ro listing pages with ``site:olx.ro`` searches and scrapes them."""

    def __init__(
        self,
        search_client: WebSearchClient,
        config: Optional[AdapterConfig] = None,
        http_client: Optional[RobustHttpClient] = None,
    ):
        if config is None:
            config = AdapterConfig(
                name="olx",
                kind=SourceKind.DISCOVERY,
                base_url="https://www.olx.ro",
                max_items=MAX_DISCOVERED_LISTINGS,
            )
        super().__init__(config)
        self._search = search_client
        self._http = http_client

    def build_discovery_query(self, query: str, intent: Intent) -> str:
        """``site:olx.ro`` query with category, feature, size and budget hints."""
        q = f"site:olx.ro {query}"
        if intent.category == Category.TV:
            q += " televizor"
            if intent.wants_oled():
                q += " oled"
            if intent.size_min is not None or intent.size_max is not None:
                q += " inch"
        if intent.budget_lei is not None:
            q += f" {math.floor(intent.budget_lei)} lei"
        return q

    @staticmethod
    def is_listing_url(link: Optional[str]) -> bool:
        """olx.ro listing pages live under ``/d/`` (category roots do not)."""
        host = safe_host(link or "")
        if not host or not host.endswith("olx.ro"):
            return False
        return "/d/" in urlparse(link).path

    async def _fetch(self, query: str, intent: Intent) -> AdapterResult:
        if not self._search.available:
            return self._failure(MISSING_CREDENTIALS)

        discovery_query = self.build_discovery_query(query, intent)
        found = await self._search.search(discovery_query, SEARCH_RESULTS)
        if found.error:
            return self._failure(found.error)

        targets = [
            (hit.link, hit.title, hit.snippet)
            for hit in found.items
            if self.is_listing_url(hit.link)
        ][:MAX_DISCOVERED_LISTINGS]
        logger.info("OLX listings discovered", query=discovery_query, listings=len(targets))

        items = await fetch_listing_pages(
            targets,
            self.kind,
            self._http or get_http_client(),
            timeout=PAGE_TIMEOUT_SECONDS,
        )
        return self._result(items)
