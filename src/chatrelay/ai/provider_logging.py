"""Shared provider log-message helpers."""

from __future__ import annotations

import logging

from ..logging import log_event


def log_provider_error(provider: str, message: str) -> None:
    """Emit a standardized provider error log event."""
    log_event(
        "provider_log",
        level=logging.ERROR,
        provider=provider,
        message=message,
    )


def log_provider_warning(provider: str, message: str) -> None:
    """Emit a standardized provider warning log event."""
    log_event(
        "provider_log",
        level=logging.WARNING,
        provider=provider,
        message=message,
    )


def api_status_error_message(status_code: int | None, error: object) -> str:
    """Build the standard non-success status message."""
    if status_code is None:
        return f"API error: {error}"
    return f"API status error ({status_code}): {error}"


def connection_error_message(error: Exception) -> str:
    """Build the standard transport-failure message."""
    return f"Connection error: {type(error).__name__}: {error}"


def upstream_event_message(detail: str) -> str:
    """Build the standard message for an in-stream failure event."""
    return f"Stream failed: {detail}"
