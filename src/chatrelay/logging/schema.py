"""Preferred key ordering for structured log events."""

from __future__ import annotations

DEFAULT_EVENT_KEY_ORDER: tuple[str, ...] = (
    "ts_utc",
    "level",
    "logger",
    "provider",
    "model",
    "message",
)

EVENT_KEY_ORDER: dict[str, tuple[str, ...]] = {
    "ai_request": (
        "ts_utc",
        "level",
        "provider",
        "model",
        "message_count",
        "input_chars",
        "has_system_prompt",
        "max_output_tokens",
    ),
    "ai_response": (
        "ts_utc",
        "level",
        "provider",
        "model",
        "latency_ms",
        "input_tokens",
        "output_tokens",
        "finish_reason",
        "output_chars",
    ),
    "ai_error": (
        "ts_utc",
        "level",
        "provider",
        "model",
        "latency_ms",
        "error_type",
        "error",
        "http_status",
    ),
    "route_decision": (
        "ts_utc",
        "level",
        "model_key",
        "model",
        "reason",
        "word_count",
        "has_files",
    ),
    "provider_fallback": (
        "ts_utc",
        "level",
        "provider",
        "model",
        "from_provider",
        "to_provider",
        "reason",
        "from_path",
        "to_path",
        "error_type",
        "error",
    ),
    "provider_retry": (
        "ts_utc",
        "level",
        "provider",
        "operation",
        "attempt",
        "sleep_sec",
        "result",
        "error_type",
        "error",
    ),
}
