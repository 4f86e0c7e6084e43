"""Shared helpers for provider implementations."""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from typing import Any

from .types import Message


def message_text(msg: Message) -> str:
    """Return message content as text, tolerating ``None`` and non-strings."""
    content = msg.get("content", "")
    if content is None:
        return ""
    return content if isinstance(content, str) else str(content)


def split_system_messages(
    messages: Sequence[Message],
) -> tuple[list[str], list[dict[str, str]]]:
    """Separate system-role entries from the user/assistant transcript.

    Returns the system texts (in order) and the remaining messages as plain
    role/content payloads. Any role other than ``assistant`` is sent as
    ``user``.
    """
    system_texts: list[str] = []
    conversation: list[dict[str, str]] = []
    for msg in messages:
        role = msg.get("role")
        if role == "system":
            text = message_text(msg)
            if text:
                system_texts.append(text)
            continue
        conversation.append(
            {
                "role": "assistant" if role == "assistant" else "user",
                "content": message_text(msg),
            }
        )
    return system_texts, conversation


def join_system_prompt(system_prompt: str | None, extra: Sequence[str]) -> str | None:
    """Combine an explicit system prompt with system-role message texts."""
    parts = [p for p in (system_prompt, *extra) if p]
    if not parts:
        return None
    return "\n\n".join(parts)


async def close_stream(stream: Any) -> None:
    """Close an SDK stream object, awaiting when the close is async."""
    close = getattr(stream, "close", None)
    if close is None:
        close = getattr(stream, "aclose", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result
