"""Price-comparison source: pricy.ro search results."""

import re
from typing import Optional
from urllib.parse import quote, urlparse

import structlog

from src.state.models import Intent, ListingFragment, SourceKind
from src.tools.scraping.base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from src.tools.scraping.filters import dedupe_by_link
from src.tools.scraping.http_client import RobustHttpClient, get_http_client
from src.tools.scraping.parsing import absolute_url, parse_lei_amount, safe_host, title_from_pricy_path

logger = structlog.get_logger()

PRICY_BASE_URL = "https://www.pricy.ro"
PRICY_HOSTS = {"pricy.ro", "www.pricy.ro"}

# A link followed, within 500 chars, by a lei price
OFFER_RE = re.compile(r'href="([^"]+)"[\s\S]{0,500}?(\d[\d.\s]{2,})\s*lei', re.IGNORECASE)

MAX_SCANNED_OFFERS = 120


class PricyAdapter(BaseSourceAdapter):
    """Scrapes pricy.ro product offers (link, price, title from URL slug)."""

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        http_client: Optional[RobustHttpClient] = None,
    ):
        if config is None:
            config = AdapterConfig(
                name="pricy",
                kind=SourceKind.PRICE_SITE,
                base_url=PRICY_BASE_URL,
                max_items=10,
            )
        super().__init__(config)
        self._http = http_client

    def build_search_url(self, query: str) -> str:
        return (
            f"{self.config.base_url}/productsv2/magazin-storel.ro/generic-color-verde"
            f"?q={quote(query, safe='')}"
        )

    async def _fetch(self, query: str, intent: Intent) -> AdapterResult:
        query_url = self.build_search_url(query)
        client = self._http or get_http_client()
        response = await client.get(query_url)
        if not response.ok:
            return self._failure(response.error_code("pricy"), query_url)

        items = dedupe_by_link(self.parse_offers(response.text))
        items.sort(key=lambda f: f.price_ron)
        logger.debug("Pricy offers parsed", query=query, offers=len(items))
        return self._result(items[: self.config.max_items], query_url)

    def parse_offers(self, page: str) -> list[ListingFragment]:
        """Extract priced product offers from a search page."""
        offers: list[ListingFragment] = []
        for match in OFFER_RE.finditer(page or ""):
            if len(offers) >= MAX_SCANNED_OFFERS:
                break
            price = parse_lei_amount(match.group(2))
            if price is None:
                continue

            link = absolute_url(match.group(1), self.config.base_url)
            if safe_host(link) not in PRICY_HOSTS:
                continue
            parsed = urlparse(link)
            if "/ProductUrlId/" not in parsed.path:
                continue

            offers.append(
                ListingFragment(
                    title=title_from_pricy_path(parsed.path),
                    link=link,
                    price_ron=price,
                    source=self.kind,
                )
            )
        return offers
