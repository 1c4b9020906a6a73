"""Tests for RobustHttpClient."""

import pytest
import httpx
from unittest.mock import patch, AsyncMock, MagicMock

from src.tools.scraping.http_client import (
    BROWSER_HEADERS,
    FetchResult,
    RobustHttpClient,
    get_http_client,
    reset_http_client,
)


class TestBrowserHeaders:
    """Tests for browser headers configuration.

    Headers are kept simple to avoid triggering anti-bot systems.
    """

    def test_user_agent_present(self):
        """User-Agent header should be set."""
        assert "Mozilla" in BROWSER_HEADERS["User-Agent"]

    def test_romanian_language_preferred(self):
        """Marketplaces should see a Romanian browser."""
        assert BROWSER_HEADERS["Accept-Language"].startswith("ro-RO")

    def test_no_sec_fetch_headers(self):
        """Sec-Fetch-* headers should NOT be present."""
        assert not any(h.startswith("Sec-") for h in BROWSER_HEADERS)


class TestFetchResult:
    """Tests for FetchResult status handling."""

    def test_ok_for_2xx(self):
        assert FetchResult(url="u", status=200, text="x").ok

    def test_not_ok_for_error_status(self):
        assert not FetchResult(url="u", status=503).ok

    def test_not_ok_for_transport_error(self):
        assert not FetchResult(url="u", error="timeout").ok

    def test_error_code_from_status(self):
        assert FetchResult(url="u", status=503).error_code("pricy") == "pricy_http_503"

    def test_error_code_prefers_transport_error(self):
        assert FetchResult(url="u", error="timeout").error_code("pricy") == "timeout"


def _mock_async_client(get_mock):
    """Patch httpx.AsyncClient so ``async with`` yields a client using ``get_mock``."""
    client = MagicMock()
    client.get = get_mock
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return patch("src.tools.scraping.http_client.httpx.AsyncClient", return_value=client)


def _response(status: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    return response


class TestRobustHttpClient:
    """Tests for RobustHttpClient class."""

    @pytest.fixture(autouse=True)
    def reset_client(self):
        """Reset the global client before and after each test."""
        reset_http_client()
        yield
        reset_http_client()

    def test_init_defaults(self):
        """Test default initialization values."""
        client = RobustHttpClient()
        assert client.timeout == 15.0
        assert client.max_retries == 2

    @pytest.mark.asyncio
    async def test_success(self):
        """A 200 response is returned with its body."""
        get = AsyncMock(return_value=_response(200, "<html>ok</html>"))
        with _mock_async_client(get):
            result = await RobustHttpClient(retry_delay=0).get("https://example.ro")

        assert result.ok
        assert result.text == "<html>ok</html>"
        assert get.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_returns_timeout_code(self):
        """Timeouts are not retried and map to 'timeout'."""
        get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with _mock_async_client(get):
            result = await RobustHttpClient(retry_delay=0).get("https://example.ro")

        assert result.error == "timeout"
        assert get.await_count == 1

    @pytest.mark.asyncio
    async def test_connect_error(self):
        """Connection failures map to 'connect_error'."""
        get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with _mock_async_client(get):
            result = await RobustHttpClient(retry_delay=0).get("https://example.ro")

        assert result.error == "connect_error"

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        """5xx responses are retried up to max_retries."""
        get = AsyncMock(side_effect=[_response(503), _response(200, "ok")])
        with _mock_async_client(get):
            result = await RobustHttpClient(max_retries=2, retry_delay=0).get("https://example.ro")

        assert result.ok
        assert get.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_keep_last_status(self):
        """After all retries the last status is reported."""
        get = AsyncMock(return_value=_response(502))
        with _mock_async_client(get):
            result = await RobustHttpClient(max_retries=2, retry_delay=0).get("https://example.ro")

        assert result.status == 502
        assert result.error_code("reselecto") == "reselecto_http_502"
        assert get.await_count == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """4xx responses return immediately."""
        get = AsyncMock(return_value=_response(403))
        with _mock_async_client(get):
            result = await RobustHttpClient(max_retries=3, retry_delay=0).get("https://example.ro")

        assert result.status == 403
        assert get.await_count == 1

    @pytest.mark.asyncio
    async def test_browser_headers_merged(self):
        """Custom headers are merged over the browser defaults."""
        get = AsyncMock(return_value=_response(200))
        with _mock_async_client(get):
            await RobustHttpClient().get("https://example.ro", headers={"Accept": "application/json"})

        headers = get.call_args.kwargs["headers"]
        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"] == BROWSER_HEADERS["User-Agent"]

    def test_global_client_is_singleton(self):
        """get_http_client returns the same instance until reset."""
        assert get_http_client() is get_http_client()
