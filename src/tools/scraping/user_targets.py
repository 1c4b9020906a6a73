"""Source adapter for listing URLs supplied by the user."""

from typing import Optional

import structlog

from src.state.models import Intent, SourceKind
from src.tools.scraping.base_adapter import AdapterConfig, AdapterResult, BaseSourceAdapter
from src.tools.scraping.http_client import RobustHttpClient, get_http_client
from src.tools.scraping.listing_pages import PageRenderer, fetch_listing_pages

logger = structlog.get_logger()

MAX_TARGETS = 8


def parse_targets(raw: Optional[str]) -> list[str]:
    """Split a ``|``-separated target list, dropping blanks and keeping at most 8."""
    if not raw:
        return []
    return [t.strip() for t in raw.split("|") if t.strip()][:MAX_TARGETS]


class UserTargetAdapter(BaseSourceAdapter):
    """Fetches each user-supplied URL as a single listing page.

    Pages that fail are skipped. When a renderer is configured, pages whose
    plain fetch is implausibly short are re-fetched through it.
    """

    def __init__(
        self,
        targets: list[str],
        config: Optional[AdapterConfig] = None,
        http_client: Optional[RobustHttpClient] = None,
        renderer: Optional[PageRenderer] = None,
    ):
        if config is None:
            config = AdapterConfig(
                name="targets",
                kind=SourceKind.USER_TARGET,
                max_items=MAX_TARGETS,
            )
        super().__init__(config)
        self.targets = [t for t in targets if t and t.strip()][:MAX_TARGETS]
        self._http = http_client
        self._renderer = renderer

    async def _fetch(self, query: str, intent: Intent) -> AdapterResult:
        items = await fetch_listing_pages(
            [(url, None, None) for url in self.targets],
            self.kind,
            self._http or get_http_client(),
            renderer=self._renderer,
        )
        logger.info("User targets fetched", requested=len(self.targets), fetched=len(items))
        return self._result(items)
