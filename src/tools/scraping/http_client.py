"""HTTP client with timeouts, bounded retries and typed failures."""

import asyncio
from typing import NamedTuple, Optional

import httpx
import structlog

logger = structlog.get_logger()

# Simple headers; Sec-* headers tend to trigger anti-bot protection
BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ro-RO,ro;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}


class FetchResult(NamedTuple):
    """Outcome of a GET: either a status/body pair or an error code."""

    url: str
    status: Optional[int] = None
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status is not None and 200 <= self.status < 300

    def error_code(self, prefix: str) -> str:
        """``<prefix>_http_<status>`` for bad statuses, else the transport error."""
        if self.error:
            return self.error
        return f"{prefix}_http_{self.status}"


class RobustHttpClient:
    """HTTP client that never raises: failures come back as ``FetchResult.error``."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
    ):
        """Initialize the HTTP client.

        Args:
            timeout: Per-request timeout in seconds
            max_retries: Maximum attempts for retryable failures (5xx, 429)
            retry_delay: Base delay between retries (linear backoff)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def get(
        self,
        url: str,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """Fetch ``url``.

        Timeouts and connection errors are not retried; they return
        ``error="timeout"`` / ``error="connect_error"``. Client errors (4xx)
        return immediately with their status.
        """
        merged_headers = {**BROWSER_HEADERS, **(headers or {})}
        last = FetchResult(url=url, error="http_error")

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=timeout or self.timeout,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url, headers=merged_headers, params=params)
            except httpx.TimeoutException:
                logger.warning("Request timeout", url=url, attempt=attempt + 1)
                return FetchResult(url=url, error="timeout")
            except httpx.ConnectError as e:
                logger.warning("Connection error", url=url, error=str(e))
                return FetchResult(url=url, error="connect_error")
            except httpx.HTTPError as e:
                logger.warning("HTTP error", url=url, error=str(e), attempt=attempt + 1)
                last = FetchResult(url=url, error="http_error")
            else:
                last = FetchResult(url=url, status=response.status_code, text=response.text)

                if response.status_code == 429 or response.status_code >= 500:
                    logger.warning(
                        "Retryable status",
                        url=url,
                        status=response.status_code,
                        attempt=attempt + 1,
                    )
                elif response.status_code >= 400:
                    logger.warning("Client error", url=url, status=response.status_code)
                    return last
                else:
                    return last

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        logger.warning("All retry attempts exhausted", url=url)
        return last


# Global instance for reuse
_http_client: Optional[RobustHttpClient] = None


def get_http_client() -> RobustHttpClient:
    """Get or create the global HTTP client instance."""
    global _http_client
    if _http_client is None:
        from src.config.settings import settings

        _http_client = RobustHttpClient(timeout=settings.scrape_timeout_seconds)
    return _http_client


def reset_http_client() -> None:
    """Reset the global HTTP client (useful for testing)."""
    global _http_client
    _http_client = None
