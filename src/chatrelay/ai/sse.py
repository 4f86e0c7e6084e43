"""Incremental server-sent-event line decoding."""

from __future__ import annotations

import json
from typing import Any

from ..errors import ProtocolDecodeError

DATA_PREFIX = "data: "


class SSELineBuffer:
    """Split streamed text into complete lines across network reads.

    Only the trailing, possibly incomplete line is held back between
    ``feed`` calls.
    """

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        """Append a chunk and return every line it completed."""
        if not text:
            return []
        self._pending += text
        lines = self._pending.split("\n")
        self._pending = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return the held-back line once the stream has ended."""
        rest, self._pending = self._pending, ""
        rest = rest.rstrip("\r")
        return [rest] if rest.strip() else []


def parse_data_line(line: str, provider: str) -> Any | None:
    """Decode the JSON payload of a ``data: `` line.

    Returns ``None`` for lines that carry no data (comments, ``event:``
    fields, blanks).

    Raises:
        ProtocolDecodeError: If the payload is not valid JSON
    """
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    try:
        return json.loads(payload)
    except json.JSONDecodeError as e:
        raise ProtocolDecodeError(provider, line, e.msg) from e
