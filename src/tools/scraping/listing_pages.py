"""Fetching single listing pages into fragments."""

import asyncio
from typing import Optional, Protocol

import structlog

from src.state.models import ListingFragment, SourceKind
from src.tools.scraping.http_client import RobustHttpClient
from src.tools.scraping.parsing import listing_page_fields

logger = structlog.get_logger()

# Plain fetches shorter than this are usually JS shells or bot walls
MIN_PLAUSIBLE_BYTES = 1200


class PageRenderer(Protocol):
    """Optional rendering service for JavaScript-heavy pages."""

    async def render(self, url: str) -> Optional[str]: ...


async def fetch_listing_page(
    url: str,
    source: SourceKind,
    http: RobustHttpClient,
    snippet: Optional[str] = None,
    fallback_title: Optional[str] = None,
    renderer: Optional[PageRenderer] = None,
    timeout: Optional[float] = None,
) -> Optional[ListingFragment]:
    """Fetch one listing page; None when nothing usable came back."""
    response = await http.get(url, timeout=timeout)
    page = response.text if response.ok else ""

    if renderer is not None and len(page.encode("utf-8")) < MIN_PLAUSIBLE_BYTES:
        logger.debug("Short page, trying renderer", url=url[:100], size=len(page))
        rendered = await renderer.render(url)
        if rendered:
            page = rendered

    if not page:
        logger.debug("Listing page unavailable", url=url[:100], error=response.error, status=response.status)
        return None

    fields = listing_page_fields(page, fallback_title=fallback_title)
    return ListingFragment(link=url, snippet=snippet, source=source, **fields)


async def fetch_listing_pages(
    targets: list[tuple[str, Optional[str], Optional[str]]],
    source: SourceKind,
    http: RobustHttpClient,
    renderer: Optional[PageRenderer] = None,
    timeout: Optional[float] = None,
) -> list[ListingFragment]:
    """Fetch ``(url, title, snippet)`` targets concurrently, keeping input order.

    Pages that fail are skipped; one failing page never costs the others.
    """
    fetched = await asyncio.gather(
        *(
            fetch_listing_page(
                url,
                source,
                http,
                snippet=snippet,
                fallback_title=title,
                renderer=renderer,
                timeout=timeout,
            )
            for url, title, snippet in targets
        ),
        return_exceptions=True,
    )

    fragments: list[ListingFragment] = []
    for (url, _, _), outcome in zip(targets, fetched):
        if isinstance(outcome, Exception):
            logger.warning("Listing page failed", url=url[:100], error=str(outcome) or outcome.__class__.__name__)
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            fragments.append(outcome)
    return fragments
