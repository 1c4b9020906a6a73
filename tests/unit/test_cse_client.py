"""Tests for the web search collaborator."""

import json

import pytest
from unittest.mock import AsyncMock

from conftest import FakeHttpClient

from src.config.settings import Settings
from src.tools.scraping.google.cse_client import (
    CSE_API_URL,
    MISSING_CREDENTIALS,
    GoogleCseClient,
    MissingSearchClient,
    create_search_client,
)
from src.tools.scraping.http_client import FetchResult


class TestGoogleCseClient:
    """Tests for GoogleCseClient."""

    @pytest.mark.asyncio
    async def test_parses_items(self):
        body = json.dumps({
            "items": [
                {"title": "LG OLED65C3", "link": "https://www.olx.ro/d/oferta/lg", "snippet": "3.800 lei"},
                "junk",
            ]
        })
        http = FakeHttpClient(pages={CSE_API_URL: body})
        found = await GoogleCseClient("key", "cx", http_client=http).search("site:olx.ro oled")

        assert found.error is None
        assert [s.link for s in found.items] == ["https://www.olx.ro/d/oferta/lg"]

    @pytest.mark.asyncio
    async def test_params_and_num_clamped(self):
        http = AsyncMock()
        http.get = AsyncMock(return_value=FetchResult(url=CSE_API_URL, status=200, text="{}"))
        await GoogleCseClient("key", "cx", http_client=http).search("tv", num=50)

        params = http.get.call_args.kwargs["params"]
        assert params["num"] == 10
        assert (params["gl"], params["hl"]) == ("ro", "ro")
        assert params["cx"] == "cx"

    @pytest.mark.asyncio
    async def test_http_error_code(self):
        http = AsyncMock()
        http.get = AsyncMock(return_value=FetchResult(url=CSE_API_URL, status=429, text="quota"))
        found = await GoogleCseClient("key", "cx", http_client=http).search("tv")

        assert found.error == "google_http_429"
        assert found.items == []

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        http = FakeHttpClient(pages={CSE_API_URL: "<html>"})
        found = await GoogleCseClient("key", "cx", http_client=http).search("tv")
        assert found.error == "google_invalid_json"


class TestSearchClientSelection:
    """Tests for create_search_client."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client = create_search_client(Settings(google_cse_api_key=None, google_cse_cx=None))
        assert isinstance(client, MissingSearchClient)
        assert client.available is False
        assert (await client.search("tv")).error == MISSING_CREDENTIALS

    def test_configured(self):
        client = create_search_client(Settings(google_cse_api_key="k", google_cse_cx="c"))
        assert isinstance(client, GoogleCseClient)
