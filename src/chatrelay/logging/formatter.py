"""Plaintext block formatter for JSON log events."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from .schema import DEFAULT_EVENT_KEY_ORDER, EVENT_KEY_ORDER


def _record_timestamp(record: logging.LogRecord) -> str:
    """UTC creation time of *record*, e.g. ``2026-01-15T12:34:56.789012Z``."""
    created = datetime.fromtimestamp(record.created, tz=timezone.utc)
    return created.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _decode_payload(message: str) -> dict[str, Any] | None:
    """Return the event dict carried by a ``log_event`` record, if any."""
    if not (message.startswith("{") and message.endswith("}")):
        return None
    try:
        decoded = json.loads(message)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


class StructuredTextFormatter(logging.Formatter):
    """Render each record as a ``=== event ===`` block of ``key: value`` lines.

    Records that are not relay events (third-party SDK loggers, plain
    ``logger.info`` calls) are rendered with the logger name as the event.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._entries = 0

    @staticmethod
    def _render(value: Any) -> str:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return str(value).replace("\n", "\\n")

    @staticmethod
    def _key_order(event_name: str, fields: dict[str, Any]) -> list[str]:
        preferred = EVENT_KEY_ORDER.get(event_name, DEFAULT_EVENT_KEY_ORDER)
        present = {k for k, v in fields.items() if v is not None}
        head = [k for k in preferred if k in present]
        tail = sorted(present.difference(preferred))
        return head + tail

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts_utc": _record_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
        }
        message = record.getMessage()
        payload = _decode_payload(message)
        if payload is None:
            fields["message"] = message
            event_name = record.name
        else:
            event_name = str(payload.pop("event", record.name))
            fields.update(payload)

        lines = [f"=== {event_name} ==="]
        lines.extend(
            f"{key}: {self._render(fields[key])}"
            for key in self._key_order(event_name, fields)
        )
        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        self._entries += 1
        block = "\n".join(lines)
        # Blank line between blocks.
        return block if self._entries == 1 else "\n" + block
