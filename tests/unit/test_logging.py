"""Tests for logging helpers and request correlation."""

from unittest.mock import patch

from src.logging import (
    add_request_context,
    clear_request_context,
    log_oracle_call,
    log_search,
    set_request_context,
)


class TestRequestContext:
    """Tests for the request id processor."""

    def test_request_id_added_while_set(self):
        set_request_context(request_id="abc123")
        try:
            assert add_request_context(None, "info", {"event": "x"})["request_id"] == "abc123"
        finally:
            clear_request_context()

        assert "request_id" not in add_request_context(None, "info", {"event": "x"})


class TestEventHelpers:
    """Tests for the structured event helpers."""

    def test_search_event_lists_failed_sources(self):
        with patch("src.logging.logger") as logger:
            log_search("oled 65", 3, {"pricy": True, "olx": False}, 120.0, cached=False, cache_key="k:1")

        kwargs = logger.info.call_args.kwargs
        assert logger.info.call_args.args == ("search",)
        assert kwargs["failed_sources"] == ["olx"]
        assert kwargs["cache_key"] == "k:1"

    def test_failed_oracle_call_is_a_warning(self):
        with patch("src.logging.logger") as logger:
            log_oracle_call("scoring", success=False, duration_ms=5.0, error="invalid_json")

        kwargs = logger.warning.call_args.kwargs
        assert kwargs["fallback"] is True
        assert kwargs["error"] == "invalid_json"
