"""Output token limit resolution."""

from __future__ import annotations

from typing import Any

from ..constants import DEFAULT_MAX_OUTPUT_TOKENS

# OpenAI models that reject ``max_tokens`` on Chat Completions.
MAX_COMPLETION_TOKENS_PREFIXES: tuple[str, ...] = (
    "gpt-4.1",
    "gpt-5",
    "o1",
    "o3",
    "o4",
)


def normalize_optional_limit(raw_value: Any) -> int | None:
    """Normalize a configured limit value to positive int or None."""
    if raw_value is None or isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int) and raw_value > 0:
        return raw_value
    return None


def openai_token_limit_param(model: str) -> str:
    """Pick the Chat Completions token-limit parameter for a model id.

    Fine-tuned ids (``ft:<base>:...``) follow their base model. ``gpt-4o``
    matches anywhere so aliases like ``chatgpt-4o-latest`` are covered.
    """
    base = model.removeprefix("ft:")
    if "gpt-4o" in base or base.startswith(MAX_COMPLETION_TOKENS_PREFIXES):
        return "max_completion_tokens"
    return "max_tokens"


def resolve_max_tokens(requested: Any, *, default: int = DEFAULT_MAX_OUTPUT_TOKENS) -> int:
    """Resolve a required output cap (Anthropic rejects requests without one)."""
    return normalize_optional_limit(requested) or default
