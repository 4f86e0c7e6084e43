"""Structured event emission and logging helpers."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from ..constants import APP_NAME, DATETIME_FORMAT_FILENAME, LOG_FILE_EXTENSION
from .formatter import StructuredTextFormatter
from .sanitization import sanitize_error_message

_SANITIZED_FIELDS = {"error", "detail", "http_url"}


def _to_log_safe(value: Any) -> Any:
    """Coerce a field value into something ``json.dumps`` accepts."""
    match value:
        case None | str() | int() | float() | bool():
            return value
        case dict():
            return {str(k): _to_log_safe(v) for k, v in value.items()}
        case list() | tuple() | set() | frozenset():
            return [_to_log_safe(v) for v in value]
        case _:
            return str(value)


def extract_http_error_context(error: BaseException) -> dict[str, Any]:
    """Pull method, URL, and status off SDK or httpx errors that carry them."""
    response = getattr(error, "response", None)
    request = getattr(error, "request", None) or getattr(response, "request", None)

    candidates = {
        "http_method": getattr(request, "method", None),
        "http_url": getattr(request, "url", None),
        "http_status": getattr(response if response is not None else error, "status_code", None),
        "http_reason": getattr(response, "reason_phrase", None),
    }
    context: dict[str, Any] = {}
    for key, value in candidates.items():
        if value is None or value == "":
            continue
        context[key] = value if key == "http_status" else str(value)
    return context


def estimate_message_chars(messages: Sequence[Mapping[str, Any]]) -> int:
    """Estimate total character length across chat messages."""
    return sum(len(str(msg.get("content", "") or "")) for msg in messages)


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured log event."""
    payload: dict[str, Any] = {
        "ts": datetime.now().astimezone().isoformat(),
        "event": event,
    }
    for key, value in fields.items():
        if key in _SANITIZED_FIELDS and isinstance(value, str):
            value = sanitize_error_message(value)
        payload[key] = _to_log_safe(value)
    logging.getLogger(APP_NAME).log(
        level, json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    )


def before_sleep_log_event(
    *,
    provider: str,
    operation: str,
    level: int = logging.WARNING,
):
    """Build a tenacity before_sleep callback that emits structured retry logs."""

    def _callback(retry_state: Any) -> None:
        outcome = getattr(retry_state, "outcome", None)
        next_action = getattr(retry_state, "next_action", None)
        if outcome is None or next_action is None:
            return

        payload: dict[str, Any] = {
            "provider": provider,
            "operation": operation,
            "attempt": getattr(retry_state, "attempt_number", None),
            "sleep_sec": getattr(next_action, "sleep", None),
        }
        if getattr(outcome, "failed", False):
            error = outcome.exception()
            payload["result"] = "raised"
            if error is not None:
                payload["error_type"] = type(error).__name__
                payload["error"] = str(error)
        else:
            payload["result"] = "returned"

        log_event("provider_retry", level=level, **payload)

    return _callback


def build_run_log_path(logs_dir: str) -> str:
    """Build a unique run log path in the configured logs directory."""
    logs_dir_path = Path(logs_dir).expanduser()
    logs_dir_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime(DATETIME_FORMAT_FILENAME)
    base_name = f"{APP_NAME}_{timestamp}"
    candidate = logs_dir_path / f"{base_name}{LOG_FILE_EXTENSION}"

    suffix = 1
    while candidate.exists():
        candidate = logs_dir_path / f"{base_name}_{suffix}{LOG_FILE_EXTENSION}"
        suffix += 1

    return str(candidate)


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> None:
    """Set up logging configuration.

    With a log file, records are written as structured text blocks.
    Without one, logging is disabled so streamed output stays clean.
    """
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_path), encoding="utf-8")
        handler.setFormatter(StructuredTextFormatter())
        logging.disable(logging.NOTSET)
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.disable(logging.CRITICAL)
