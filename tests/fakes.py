"""Test doubles for provider adapters and SDK streams."""

from __future__ import annotations

from typing import Any, Iterable

from chatrelay.ai.types import DoneEvent, StreamEvent, TextEvent


class FakeSDKStream:
    """Async-iterable stand-in for an SDK streaming response."""

    def __init__(self, items: Iterable[Any]):
        self._items = list(items)
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed = True


class FakeAdapter:
    """Scripted adapter: yields ``events`` in order, raising any exception in place."""

    def __init__(self, name: str, events: Iterable[StreamEvent | BaseException] = ()):
        self.name = name
        self.events = list(events)
        self.calls: list[dict[str, Any]] = []
        self.finished = False
        self.closed = False

    async def stream(self, model, system_prompt, messages, max_tokens=None, *, metadata=None):
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "messages": list(messages),
                "max_tokens": max_tokens,
            }
        )
        try:
            for event in self.events:
                if isinstance(event, BaseException):
                    raise event
                yield event
        finally:
            self.finished = True

    async def aclose(self) -> None:
        self.closed = True


def text_then_done(*chunks: str, input_tokens: int = 10, output_tokens: int = 5) -> list[StreamEvent]:
    events: list[StreamEvent] = [TextEvent(chunk) for chunk in chunks]
    events.append(DoneEvent(input_tokens, output_tokens, "stop"))
    return events


async def collect(stream) -> list[StreamEvent]:
    return [event async for event in stream]
