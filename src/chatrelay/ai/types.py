"""Shared typed contracts for provider/runtime exchange."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias, TypedDict

MessageRole = Literal["system", "user", "assistant"]
WirePath = Literal["responses", "chat_completions", "messages", "stream_generate_content"]


class Message(TypedDict):
    """One transcript entry as supplied by the caller."""

    role: MessageRole
    content: str


class StreamMetadata(TypedDict, total=False):
    """Caller-owned diagnostics that adapters populate while streaming."""

    wire_path: WirePath
    skipped_lines: int


@dataclass(slots=True, frozen=True)
class TextEvent:
    """Incremental output fragment, in provider order."""

    text: str
    kind: Literal["text"] = "text"


@dataclass(slots=True, frozen=True)
class DoneEvent:
    """Terminal usage summary; exactly one per completed stream."""

    input_tokens: int
    output_tokens: int
    finish_reason: str
    kind: Literal["done"] = "done"


StreamEvent: TypeAlias = TextEvent | DoneEvent


@dataclass(slots=True)
class StreamUsage:
    """Mutable per-stream usage accumulator.

    Missing usage stays at zero, so a provider that reports nothing is
    indistinguishable from one that reports zero tokens.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    finish_reason: str = "stop"

    def update(
        self,
        *,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        finish_reason: str | None = None,
    ) -> None:
        if isinstance(input_tokens, int) and not isinstance(input_tokens, bool):
            self.input_tokens = input_tokens
        if isinstance(output_tokens, int) and not isinstance(output_tokens, bool):
            self.output_tokens = output_tokens
        if finish_reason:
            self.finish_reason = str(finish_reason)

    def done(self) -> DoneEvent:
        return DoneEvent(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            finish_reason=self.finish_reason,
        )
