"""Turn runner tying routing, context packing, streaming, and cost together."""

from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Callable, Sequence

from .ai.costing import calculate_cost
from .ai.registry import ProviderRegistry
from .ai.runtime import stream_completion
from .ai.types import DoneEvent, Message, TextEvent
from .context_window import is_token_limit_error, prepare_messages_for_model
from .domain.config import ModelConfig, RelayConfig
from .errors import ConfigError, NotConfiguredError, UpstreamError
from .logging import log_event
from .routing import route_message


@dataclass(frozen=True, slots=True)
class ResolvedModel:
    """The model that will actually answer, after override and fallback."""

    model_key: str
    model: ModelConfig
    reason: str


@dataclass(frozen=True, slots=True)
class TurnResult:
    """Outcome of one answered turn."""

    text: str
    model_key: str
    model: ModelConfig
    route_reason: str
    input_tokens: int
    output_tokens: int
    finish_reason: str
    cost: float
    dropped_messages: int = 0


def _last_user_text(messages: Sequence[Message]) -> str:
    for msg in reversed(messages):
        if msg.get("role") == "user":
            return str(msg.get("content") or "")
    return ""


class ChatRelay:
    """Answer chat turns with the cheapest model that fits the request."""

    def __init__(self, config: RelayConfig, registry: ProviderRegistry) -> None:
        self.config = config
        self.registry = registry

    def resolve(
        self,
        message: str,
        *,
        has_files: bool = False,
        model_override: str | None = None,
    ) -> ResolvedModel:
        """Pick the answering model.

        A manual override names a key in ``config.models``. When the chosen
        provider has no key, the ``fallback`` model is used if its provider
        is available.

        Raises:
            ConfigError: If ``model_override`` names no configured model
            NotConfiguredError: If neither the chosen nor the fallback
                provider is available
        """
        if model_override:
            model = self.config.models.get(model_override)
            if model is None:
                raise ConfigError(f"Unknown model key: {model_override}")
            resolved = ResolvedModel(model_override, model, "Manual selection")
        else:
            decision = route_message(message, self.config, has_files)
            resolved = ResolvedModel(decision.model_key, decision.model, decision.reason)

        if self.registry.is_available(resolved.model.provider):
            return resolved

        fallback = self.config.fallback
        if fallback is not None and self.registry.is_available(fallback.provider):
            log_event(
                "provider_fallback",
                level=logging.WARNING,
                from_provider=resolved.model.provider,
                to_provider=fallback.provider,
                model=fallback.model,
                reason="provider_unavailable",
            )
            return ResolvedModel(
                "fallback",
                fallback,
                f"{resolved.reason} ({resolved.model.provider} unavailable, "
                f"using {fallback.display_name})",
            )
        raise NotConfiguredError(resolved.model.provider)

    async def respond(
        self,
        messages: Sequence[Message],
        system_prompt: str | None = None,
        *,
        has_files: bool = False,
        model_override: str | None = None,
        on_text: Callable[[str], None] | None = None,
    ) -> TurnResult:
        """Route, stream, and price one turn.

        If the provider rejects the request for exceeding its context window
        before any text was produced, the turn is retried once on the fast
        model.
        """
        resolved = self.resolve(
            _last_user_text(messages),
            has_files=has_files,
            model_override=model_override,
        )
        emitted: list[str] = []

        def _emit(text: str) -> None:
            emitted.append(text)
            if on_text is not None:
                on_text(text)

        try:
            return await self._run(resolved, messages, system_prompt, _emit)
        except UpstreamError as e:
            fast = self.config.fast
            if (
                emitted
                or not is_token_limit_error(e)
                or resolved.model == fast
                or not self.registry.is_available(fast.provider)
            ):
                raise
            log_event(
                "provider_fallback",
                level=logging.WARNING,
                from_provider=resolved.model.provider,
                to_provider=fast.provider,
                model=fast.model,
                reason="token_limit",
                error=str(e),
            )
            retry = ResolvedModel(
                "fast",
                fast,
                f"{resolved.reason} (context too large, retried with {fast.display_name})",
            )
            return await self._run(retry, messages, system_prompt, _emit)

    async def _run(
        self,
        resolved: ResolvedModel,
        messages: Sequence[Message],
        system_prompt: str | None,
        on_text: Callable[[str], None],
    ) -> TurnResult:
        packed = prepare_messages_for_model(
            messages, system_prompt=system_prompt, model_config=resolved.model
        )
        if packed.dropped_count:
            log_event(
                "context_trimmed",
                level=logging.INFO,
                model=resolved.model.model,
                dropped=packed.dropped_count,
                kept=len(packed.messages),
                budget=packed.max_input_budget,
                estimated_input_tokens=packed.estimated_input_tokens,
            )

        parts: list[str] = []
        done: DoneEvent | None = None
        async with aclosing(
            stream_completion(self.registry, resolved.model, system_prompt, packed.messages)
        ) as stream:
            async for event in stream:
                if isinstance(event, TextEvent):
                    parts.append(event.text)
                    on_text(event.text)
                else:
                    done = event

        if done is None:
            raise UpstreamError(resolved.model.provider, "stream ended without a done event")

        return TurnResult(
            text="".join(parts),
            model_key=resolved.model_key,
            model=resolved.model,
            route_reason=resolved.reason,
            input_tokens=done.input_tokens,
            output_tokens=done.output_tokens,
            finish_reason=done.finish_reason,
            cost=calculate_cost(resolved.model, done.input_tokens, done.output_tokens),
            dropped_messages=packed.dropped_count,
        )
