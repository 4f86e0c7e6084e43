"""Rule-based model tier routing.

Rules are evaluated in a fixed precedence order and the first match wins:

1. Attached files (when configured to trigger the full model)
2. ``full_patterns`` substrings, in configured order
3. ``fast_patterns`` regular expressions, in configured order (long
   messages are kept on the full model)
4. Short messages -> fast
5. Long messages -> full
6. Anything else -> full
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache

from .domain.config import ModelConfig, ModelTier, RelayConfig
from .logging import log_event


@dataclass(frozen=True, slots=True)
class RouteDecision:
    """Chosen model tier with a human-readable justification."""

    model_key: ModelTier
    model: ModelConfig
    reason: str


@dataclass(frozen=True, slots=True)
class RoutePreview:
    """Display-only projection of a route decision."""

    model_key: ModelTier
    display_name: str
    reason: str


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def count_words(message: str) -> int:
    """Whitespace-delimited word count."""
    return len(message.split())


def _decide(message: str, config: RelayConfig, has_files: bool) -> tuple[ModelTier, str]:
    routing = config.routing
    thresholds = routing.thresholds

    if has_files and thresholds.file_attachment_triggers_full:
        return "full", "Files attached - using full model"

    message_lower = message.lower().strip()
    word_count = count_words(message_lower)

    for pattern in routing.full_patterns:
        if pattern.lower() in message_lower:
            return "full", f'Detected coding/building intent: "{pattern}"'

    for pattern in routing.fast_patterns:
        if _compile(pattern).search(message_lower):
            if word_count > thresholds.long_message_words:
                return "full", "Long message - using full model despite question format"
            return "fast", f'Simple question detected: "{pattern}"'

    if word_count <= thresholds.short_message_words:
        return "fast", f"Short message ({word_count} words)"

    if word_count >= thresholds.long_message_words:
        return "full", f"Long message ({word_count} words)"

    return "full", "Default to full model for medium-length messages"


def route_message(
    message: str,
    config: RelayConfig,
    has_files: bool = False,
) -> RouteDecision:
    """Decide which model tier should answer a message."""
    model_key, reason = _decide(message, config, has_files)
    decision = RouteDecision(
        model_key=model_key,
        model=config.models[model_key],
        reason=reason,
    )
    log_event(
        "route_decision",
        level=logging.DEBUG,
        model_key=model_key,
        model=decision.model.model,
        reason=reason,
        word_count=count_words(message),
        has_files=has_files,
    )
    return decision


def preview_route(
    message: str,
    config: RelayConfig,
    has_files: bool = False,
) -> RoutePreview:
    """Which model would answer, for UI indicators. Emits no log events."""
    model_key, reason = _decide(message, config, has_files)
    return RoutePreview(
        model_key=model_key,
        display_name=config.models[model_key].display_name,
        reason=reason,
    )
