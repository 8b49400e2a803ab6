"""
Tests for the logging module.
"""

import json
import logging

import pytest
import structlog

from core.logging import (
    MAX_QUERY_LOG_LENGTH,
    add_service_name,
    bind_context,
    clear_context,
    clip_query_fields,
    configure_logging,
    get_logger,
)


class TestProcessors:

    def test_service_name_is_stamped(self):
        event = add_service_name("catalog-search")(None, "info", {"event": "x"})
        assert event["service"] == "catalog-search"

    def test_service_name_does_not_override(self):
        event = add_service_name("catalog-search")(None, "info", {"event": "x", "service": "other"})
        assert event["service"] == "other"

    def test_long_query_is_clipped(self):
        long_query = "red " * 100
        event = clip_query_fields(None, "info", {"query": long_query, "q": "short"})

        assert len(event["query"]) == MAX_QUERY_LOG_LENGTH + 3
        assert event["query"].endswith("...")
        assert event["q"] == "short"

    def test_non_string_fields_untouched(self):
        event = clip_query_fields(None, "info", {"query": None, "total": 12})
        assert event == {"query": None, "total": 12}


class TestConfigureLogging:

    def test_configure_development_mode(self):
        configure_logging(json_logs=False, log_level="DEBUG")
        get_logger("search.trending").info("Search completed", query="red dress", total=2)

    def test_configure_log_level(self):
        configure_logging(log_level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_json_lines_carry_service_and_context(self, capsys):
        configure_logging(json_logs=True, log_level="INFO")
        clear_context()
        bind_context(request_id="abc123")

        get_logger("json_test").info("Search completed", query="x" * 500)
        clear_context()

        lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
        data = json.loads(lines[-1])
        assert data["event"] == "Search completed"
        assert data["service"] == "catalog-search"
        assert data["request_id"] == "abc123"
        assert data["level"] == "info"
        assert len(data["query"]) == MAX_QUERY_LOG_LENGTH + 3


class TestContextBinding:

    def test_bind_and_clear(self):
        clear_context()
        bind_context(user_id="123", request_id="abc")

        ctx = structlog.contextvars.get_contextvars()
        assert ctx.get("user_id") == "123"
        assert ctx.get("request_id") == "abc"

        clear_context()
        assert "user_id" not in structlog.contextvars.get_contextvars()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
