"""Approximate token budgeting for conversation history.

Token counts here are estimates (about four characters per token) that err
on the high side so requests stay under provider context limits.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Sequence

from .ai.types import Message
from .domain.config import ModelConfig

DEFAULT_CONTEXT_WINDOW = 200_000
DEFAULT_RESERVED_OUTPUT_TOKENS = 8192
SAFETY_MARGIN_TOKENS = 2000
MIN_INPUT_BUDGET_TOKENS = 8000
MIN_MESSAGE_BUDGET_TOKENS = 2000
PER_MESSAGE_OVERHEAD_TOKENS = 8

# Older assistant replies beyond this many turns from the end get big code
# blocks collapsed.
KEEP_UNSTRIPPED_MESSAGES = 8
MAX_CODE_BLOCK_CHARS = 1500
CODE_BLOCK_HEAD_CHARS = 400

_CODE_BLOCK_RE = re.compile(r"```([\s\S]*?)```")

_TOKEN_LIMIT_MARKERS = (
    "input tokens exceed",
    "context length",
    "maximum context",
    "too many tokens",
    "token limit",
)


@dataclass(frozen=True, slots=True)
class PackedMessages:
    """History trimmed to fit a model's input budget."""

    messages: list[Message]
    dropped_count: int
    max_input_budget: int
    system_tokens: int

    @property
    def estimated_input_tokens(self) -> int:
        return self.system_tokens + approx_tokens_from_messages(self.messages)


def approx_tokens_from_text(text: str | None) -> int:
    if not text:
        return 0
    return math.ceil(len(str(text)) / 4)


def approx_tokens_from_messages(messages: Sequence[Message]) -> int:
    return sum(
        PER_MESSAGE_OVERHEAD_TOKENS + approx_tokens_from_text(msg.get("content"))
        for msg in messages
    )


def strip_big_code_blocks(text: str, max_block_chars: int = MAX_CODE_BLOCK_CHARS) -> str:
    """Replace oversized fenced code blocks with a short head and a marker."""

    def _shorten(match: re.Match[str]) -> str:
        inner = match.group(1)
        if len(inner) <= max_block_chars:
            return match.group(0)
        head = inner[:CODE_BLOCK_HEAD_CHARS]
        return f"```\n{head}\n... (code block omitted from context)\n```"

    return _CODE_BLOCK_RE.sub(_shorten, text)


def input_token_limit(model_config: ModelConfig) -> int:
    """Usable input tokens: context window minus reserved output and margin."""
    context_window = model_config.context_window or DEFAULT_CONTEXT_WINDOW
    reserved = model_config.max_output_tokens or DEFAULT_RESERVED_OUTPUT_TOKENS
    return context_window - reserved - SAFETY_MARGIN_TOKENS


def prepare_messages_for_model(
    messages: Sequence[Message],
    *,
    system_prompt: str | None,
    model_config: ModelConfig,
) -> PackedMessages:
    """Keep the most recent messages that fit the model's input budget.

    Messages are returned as new dicts; the caller's transcript is never
    modified.
    """
    max_input_budget = max(MIN_INPUT_BUDGET_TOKENS, input_token_limit(model_config))
    system_tokens = approx_tokens_from_text(system_prompt)
    budget = max(MIN_MESSAGE_BUDGET_TOKENS, max_input_budget - system_tokens)

    kept: list[Message] = []
    used = 0
    last_index = len(messages) - 1
    for index in range(last_index, -1, -1):
        msg: Message = {"role": messages[index]["role"], "content": messages[index]["content"]}
        if msg["role"] == "assistant" and last_index - index > KEEP_UNSTRIPPED_MESSAGES:
            msg["content"] = strip_big_code_blocks(msg["content"])
        msg_tokens = approx_tokens_from_text(msg["content"]) + PER_MESSAGE_OVERHEAD_TOKENS
        if used + msg_tokens > budget:
            break
        kept.append(msg)
        used += msg_tokens

    kept.reverse()
    return PackedMessages(
        messages=kept,
        dropped_count=len(messages) - len(kept),
        max_input_budget=max_input_budget,
        system_tokens=system_tokens,
    )


def is_token_limit_error(error: BaseException) -> bool:
    """Whether a provider error means the request exceeded the context window."""
    message = str(error).lower()
    return any(marker in message for marker in _TOKEN_LIMIT_MARKERS)
