"""Tests for the search API routes."""

import pytest
from fastapi.testclient import TestClient

from conftest import StaticAdapter, make_fragment

from src.api.routes.search import build_search_request
from src.errors import InvalidRequest
from src.main import create_app
from src.state.models import SourceKind


@pytest.fixture
def adapters():
    return [
        StaticAdapter("pricy", SourceKind.PRICE_SITE, items=[
            make_fragment("https://pricy.ro/a", title="LG OLED 65 A", price=3800),
        ]),
        StaticAdapter("reselecto", SourceKind.RESALE_SITE, error="reselecto_http_500"),
    ]


@pytest.fixture
def client(make_pipeline, adapters):
    return TestClient(create_app(pipeline=make_pipeline(adapters)))


class TestBuildSearchRequest:
    """Tests for query parameter parsing."""

    def test_missing_q(self):
        with pytest.raises(InvalidRequest):
            build_search_request("   ")
        with pytest.raises(InvalidRequest):
            build_search_request(None)

    def test_numbers_and_condition(self):
        request = build_search_request(" oled 65 ", budget="4000", size_min="55", size_max="abc", condition="USED")
        assert request.q == "oled 65"
        assert request.budget == 4000
        assert request.size_min == 55
        assert request.size_max is None
        assert request.condition == "used"

    def test_condition_defaults_to_any(self):
        assert build_search_request("tv").condition == "any"

    def test_targets_keep_http_urls_only(self):
        request = build_search_request("tv", targets="https://a.ro/1 | ftp://b.ro | | http://c.ro/2")
        assert request.targets == ["https://a.ro/1", "http://c.ro/2"]


class TestSearchEndpoint:
    """Tests for GET /api/search."""

    def test_missing_q_is_400(self, client):
        response = client.get("/api/search")
        assert response.status_code == 400
        assert response.json() == {"error": "missing q"}

    def test_partial_failure_still_200(self, client):
        response = client.get("/api/search", params={"q": "oled 65", "budget": "4000", "sizeMin": "55"})
        assert response.status_code == 200

        body = response.json()
        assert body["q"] == "oled 65"
        assert body["cache"]["hit"] is False
        assert body["top"][0]["priceRON"] == 3800
        assert body["sources"]["reselecto"] == {
            "ok": False,
            "count": 0,
            "error": "reselecto_http_500",
            "queryUrl": None,
        }
        assert body["debug"]["input"]["sizeMin"] == 55

    def test_repeat_request_hits_cache(self, client, adapters):
        client.get("/api/search", params={"q": "oled 65"})
        body = client.get("/api/search", params={"q": "oled 65"}).json()

        assert body["cache"]["hit"] is True
        assert body["cache"]["ageSeconds"] == 0
        assert adapters[0].calls == 1

    def test_request_id_header(self, client):
        response = client.get("/api/search", params={"q": "tv"}, headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

        generated = client.get("/api/health").headers["X-Request-ID"]
        assert len(generated) == 8


class TestHealthEndpoint:
    """Tests for GET /api/health."""

    def test_health_keys(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200

        body = response.json()
        assert body["ok"] is True
        assert set(body) == {"ok", "hasOracle", "hasWebSearch", "ts"}
        assert isinstance(body["hasOracle"], bool)
