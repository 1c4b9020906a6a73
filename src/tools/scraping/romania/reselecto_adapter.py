"""Resale source: reselecto.ro (resealed / used retailer, WooCommerce)."""

import re
from typing import Optional
from urllib.parse import quote

import structlog

from src.state.models import Intent, ListingFragment, SourceKind
from src.tools.scraping.base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from src.tools.scraping.http_client import RobustHttpClient, get_http_client
from src.tools.scraping.parsing import (
    absolute_url,
    decode_html,
    normalize_text,
    parse_lei_amount,
    strip_html,
)

logger = structlog.get_logger()

RESELECTO_BASE_URL = "https://www.reselecto.ro"

# Product tile: link, <h2> title, then a lei price
TILE_RE = re.compile(
    r'<a[^>]+href="([^"]+)"[^>]*>[\s\S]{0,800}?<h2[^>]*>([\s\S]*?)</h2>[\s\S]{0,1200}?(\d[\d.\s]{2,}?)(?:,\d{1,2})?(?:\s|&nbsp;)*lei',
    re.IGNORECASE,
)


class ReselectoAdapter(BaseSourceAdapter):
    """Scrapes reselecto.ro product search tiles."""

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        http_client: Optional[RobustHttpClient] = None,
    ):
        if config is None:
            config = AdapterConfig(
                name="reselecto",
                kind=SourceKind.RESALE_SITE,
                base_url=RESELECTO_BASE_URL,
                max_items=15,
            )
        super().__init__(config)
        self._http = http_client

    def build_search_url(self, query: str) -> str:
        return f"{self.config.base_url}/?s={quote(query, safe='')}&post_type=product"

    async def _fetch(self, query: str, intent: Intent) -> AdapterResult:
        query_url = self.build_search_url(query)
        client = self._http or get_http_client()
        response = await client.get(query_url)
        if not response.ok:
            return self._failure(response.error_code("reselecto"), query_url)

        items = self.parse_tiles(response.text)
        logger.debug("Reselecto tiles parsed", query=query, tiles=len(items))
        return self._result(items, query_url)

    def parse_tiles(self, page: str) -> list[ListingFragment]:
        """Extract product tiles from a search page."""
        tiles: list[ListingFragment] = []
        for match in TILE_RE.finditer(page or ""):
            if len(tiles) >= self.config.max_items:
                break
            link = match.group(1)
            title = normalize_text(decode_html(strip_html(match.group(2))))
            price = parse_lei_amount(match.group(3))
            if not link or not title or price is None:
                continue
            tiles.append(
                ListingFragment(
                    title=title,
                    link=absolute_url(link, self.config.base_url),
                    price_ron=price,
                    source=self.kind,
                )
            )
        return tiles
