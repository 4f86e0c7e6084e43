"""Tests for shared provider logging helpers and stream usage tracking."""

from __future__ import annotations

import logging
from unittest.mock import patch

from chatrelay.ai.provider_logging import (
    api_status_error_message,
    connection_error_message,
    log_provider_error,
    log_provider_warning,
    upstream_event_message,
)
from chatrelay.ai.types import DoneEvent, StreamUsage


def test_api_status_error_message_with_and_without_status() -> None:
    assert api_status_error_message(503, "unavailable") == "API status error (503): unavailable"
    assert api_status_error_message(None, "odd") == "API error: odd"


def test_connection_and_stream_message_templates() -> None:
    error = TimeoutError("read timed out")
    assert connection_error_message(error) == "Connection error: TimeoutError: read timed out"
    assert upstream_event_message("overloaded") == "Stream failed: overloaded"


def test_log_provider_error_emits_structured_event() -> None:
    with patch("chatrelay.ai.provider_logging.log_event") as mock_log_event:
        log_provider_error("google", "Stream failed: quota")

    mock_log_event.assert_called_once_with(
        "provider_log",
        level=logging.ERROR,
        provider="google",
        message="Stream failed: quota",
    )


def test_log_provider_warning_uses_warning_level() -> None:
    with patch("chatrelay.ai.provider_logging.log_event") as mock_log_event:
        log_provider_warning("anthropic", "Response truncated")

    assert mock_log_event.call_args.kwargs["level"] == logging.WARNING


def test_stream_usage_defaults_to_zero() -> None:
    assert StreamUsage().done() == DoneEvent(0, 0, "stop")


def test_stream_usage_ignores_missing_and_non_integer_values() -> None:
    usage = StreamUsage()
    usage.update(input_tokens=12, output_tokens=None)
    usage.update(input_tokens=True, output_tokens="7", finish_reason=None)

    assert usage.done() == DoneEvent(12, 0, "stop")


def test_stream_usage_keeps_latest_finish_reason() -> None:
    usage = StreamUsage()
    usage.update(finish_reason="length")
    usage.update(finish_reason="")

    assert usage.done().finish_reason == "length"
