"""Google Custom Search JSON API client (web search collaborator)."""

import json
from typing import Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from src.state.models import ReviewSource
from src.tools.scraping.http_client import RobustHttpClient

logger = structlog.get_logger()

CSE_API_URL = "https://www.googleapis.com/customsearch/v1"
MISSING_CREDENTIALS = "missing_google_cse_env"


class WebSearchResponse(BaseModel):
    """Search hits or an error code."""

    items: list[ReviewSource] = Field(default_factory=list)
    error: Optional[str] = None


class WebSearchClient(Protocol):
    """query -> list of {title, link, snippet} or an error code."""

    @property
    def available(self) -> bool: ...

    async def search(self, query: str, num: int = 6) -> WebSearchResponse: ...


class MissingSearchClient:
    """Stand-in used when no web search credentials are configured."""

    available = False

    async def search(self, query: str, num: int = 6) -> WebSearchResponse:
        return WebSearchResponse(error=MISSING_CREDENTIALS)


class GoogleCseClient:
    """Google Programmable Search Engine via the JSON API."""

    available = True

    def __init__(
        self,
        api_key: str,
        cx: str,
        timeout: float = 9.0,
        http_client: Optional[RobustHttpClient] = None,
    ):
        self._api_key = api_key
        self._cx = cx
        self._timeout = timeout
        self._http = http_client or RobustHttpClient(timeout=timeout, max_retries=1)

    async def search(self, query: str, num: int = 6) -> WebSearchResponse:
        params = {
            "key": self._api_key,
            "cx": self._cx,
            "q": query,
            "num": max(1, min(10, num)),
            "gl": "ro",
            "hl": "ro",
        }
        response = await self._http.get(
            CSE_API_URL,
            headers={"Accept": "application/json"},
            params=params,
            timeout=self._timeout,
        )
        if not response.ok:
            return WebSearchResponse(error=response.error_code("google"))

        try:
            data = json.loads(response.text)
        except json.JSONDecodeError:
            logger.warning("Web search returned invalid JSON", query=query[:80])
            return WebSearchResponse(error="google_invalid_json")

        items = [
            ReviewSource(
                title=item.get("title"),
                link=item.get("link"),
                snippet=item.get("snippet"),
            )
            for item in data.get("items") or []
            if isinstance(item, dict)
        ]
        logger.debug("Web search complete", query=query[:80], results=len(items))
        return WebSearchResponse(items=items)


def create_search_client(settings) -> WebSearchClient:
    """Pick the web search strategy once, from settings."""
    if settings.has_web_search:
        return GoogleCseClient(
            api_key=settings.google_cse_api_key,
            cx=settings.google_cse_cx,
            timeout=settings.search_timeout_seconds,
        )
    logger.info("Web search credentials missing, discovery and reviews disabled")
    return MissingSearchClient()
