"""Tests for Langfuse configuration and tracing helpers."""

from unittest.mock import MagicMock, patch

import pytest

from coach_orchestrator.config import Settings
from coach_orchestrator.observability import langfuse_config
from coach_orchestrator.observability.langfuse_config import (
    create_span,
    end_span,
    end_trace,
    get_langfuse_client,
    is_langfuse_enabled,
    record_generation,
    shutdown_langfuse,
    start_trace,
)


@pytest.fixture(autouse=True)
def clear_client_cache():
    get_langfuse_client.cache_clear()
    yield
    get_langfuse_client.cache_clear()


def _settings(public_key: str = "", secret_key: str = "") -> Settings:
    return Settings(langfuse_public_key=public_key, langfuse_secret_key=secret_key)


class TestLangfuseEnabled:
    """Tests for is_langfuse_enabled and client creation."""

    @pytest.mark.parametrize("public_key,secret_key,expected", [
        ("", "", False),
        ("pk-lf-1", "", False),
        ("", "sk-lf-1", False),
        ("pk-lf-1", "sk-lf-1", True),
    ])
    def test_requires_both_keys(self, public_key, secret_key, expected):
        with patch.object(langfuse_config, "get_settings", return_value=_settings(public_key, secret_key)):
            assert is_langfuse_enabled() is expected

    def test_no_client_without_keys(self):
        with patch.object(langfuse_config, "get_settings", return_value=_settings()), \
                patch.object(langfuse_config, "Langfuse") as langfuse_cls:
            assert get_langfuse_client() is None
            langfuse_cls.assert_not_called()

    def test_client_created_with_settings(self):
        with patch.object(langfuse_config, "get_settings", return_value=_settings("pk", "sk")), \
                patch.object(langfuse_config, "Langfuse") as langfuse_cls:
            client = get_langfuse_client()

        assert client is langfuse_cls.return_value
        langfuse_cls.assert_called_once_with(
            public_key="pk", secret_key="sk", host="https://cloud.langfuse.com"
        )

    def test_start_trace_disabled_returns_none(self):
        with patch.object(langfuse_config, "get_settings", return_value=_settings()):
            assert start_trace("ai_orchestrator", user_id="u1") is None

    def test_start_trace_enabled(self):
        client = MagicMock()
        with patch.object(langfuse_config, "get_langfuse_client", return_value=client):
            trace = start_trace("ai_orchestrator", user_id="u1", input_data="hi")

        assert trace is client.trace.return_value
        kwargs = client.trace.call_args.kwargs
        assert kwargs["name"] == "ai_orchestrator"
        assert kwargs["user_id"] == "u1"
        assert kwargs["input"] == "hi"

    def test_start_trace_failure_is_logged_not_raised(self):
        client = MagicMock()
        client.trace.side_effect = RuntimeError("collector down")
        with patch.object(langfuse_config, "get_langfuse_client", return_value=client):
            assert start_trace("ai_orchestrator") is None

    def test_shutdown_clears_client(self):
        with patch.object(langfuse_config, "get_settings", return_value=_settings("pk", "sk")), \
                patch.object(langfuse_config, "Langfuse") as langfuse_cls:
            get_langfuse_client()
            shutdown_langfuse()
            langfuse_cls.return_value.shutdown.assert_called_once()
            get_langfuse_client()
            assert langfuse_cls.call_count == 2


class TestTraceHelpers:
    """Tests for span, generation and trace helpers."""

    def test_helpers_ignore_missing_trace(self):
        assert create_span(None, "tool:get_events") is None
        assert record_generation(None, "thinking_1", "gpt-4o", {}, "text") is None
        end_span(None, {"ok": True})
        end_trace(None, "done")

    def test_span_lifecycle(self):
        trace = MagicMock()
        span = create_span(trace, "tool:get_events", input_data={"oldest": "2026-01-01"})
        end_span(span, output_data={"success": True})

        trace.span.assert_called_once_with(
            name="tool:get_events", metadata={}, input={"oldest": "2026-01-01"}
        )
        span.end.assert_called_once_with(output={"success": True})

    def test_span_error_level(self):
        span = MagicMock()
        end_span(span, output_data={"success": False}, level="ERROR")
        span.end.assert_called_once_with(output={"success": False}, level="ERROR")

    def test_record_generation(self):
        trace = MagicMock()
        record_generation(
            trace, "thinking_1", "gpt-4o", {"turns": 1}, "Rest.", usage={"input": 10, "output": 2}
        )
        kwargs = trace.generation.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["output"] == "Rest."
        assert kwargs["usage"] == {"input": 10, "output": 2}

    def test_end_trace_updates_output(self):
        trace = MagicMock()
        end_trace(trace, "Rest.", metadata={"iterations": 1})
        trace.update.assert_called_once_with(output="Rest.", metadata={"iterations": 1})
