"""Completion multiplexer: one streaming entry point for every provider."""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncGenerator, Sequence

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ..domain.config import ModelConfig
from ..errors import UpstreamError
from ..logging import (
    before_sleep_log_event,
    estimate_message_chars,
    extract_http_error_context,
    log_event,
)
from ..timeouts import (
    RETRY_BACKOFF_INITIAL_SEC,
    RETRY_BACKOFF_MAX_SEC,
    RETRYABLE_STATUS_CODES,
)
from .base import ProviderAdapter
from .registry import ProviderRegistry
from .types import DoneEvent, Message, StreamEvent, StreamMetadata, TextEvent


@dataclass(frozen=True, slots=True)
class CompletionResult:
    """A fully drained stream."""

    text: str
    input_tokens: int
    output_tokens: int
    finish_reason: str
    provider: str
    model: str


def stream_completion(
    registry: ProviderRegistry,
    model_config: ModelConfig,
    system_prompt: str | None,
    messages: Sequence[Message],
    max_tokens: int | None = None,
    *,
    metadata: StreamMetadata | None = None,
) -> AsyncGenerator[StreamEvent, None]:
    """Stream a completion from whichever provider the model config names.

    Provider validation happens here, at call time, so an unknown or
    unconfigured provider raises before any adapter is touched.

    Raises:
        UnknownProviderError: If ``model_config.provider`` is unsupported
        NotConfiguredError: If the provider has no client/key
    """
    adapter = registry.adapter_for(model_config.provider)
    if max_tokens is None:
        max_tokens = model_config.max_output_tokens
    return _logged_stream(
        adapter, model_config, system_prompt, messages, max_tokens, metadata
    )


async def _logged_stream(
    adapter: ProviderAdapter,
    model_config: ModelConfig,
    system_prompt: str | None,
    messages: Sequence[Message],
    max_tokens: int | None,
    metadata: StreamMetadata | None,
) -> AsyncGenerator[StreamEvent, None]:
    provider = model_config.provider
    model = model_config.model
    log_event(
        "ai_request",
        level=logging.INFO,
        provider=provider,
        model=model,
        message_count=len(messages),
        input_chars=estimate_message_chars(messages),
        has_system_prompt=bool(system_prompt),
        max_output_tokens=max_tokens,
    )

    started = time.perf_counter()
    output_chars = 0
    stream = adapter.stream(model, system_prompt, messages, max_tokens, metadata=metadata)
    try:
        async for event in stream:
            if isinstance(event, TextEvent):
                output_chars += len(event.text)
            elif isinstance(event, DoneEvent):
                log_event(
                    "ai_response",
                    level=logging.INFO,
                    provider=provider,
                    model=model,
                    latency_ms=round((time.perf_counter() - started) * 1000, 1),
                    input_tokens=event.input_tokens,
                    output_tokens=event.output_tokens,
                    finish_reason=event.finish_reason,
                    output_chars=output_chars,
                )
            yield event
    except Exception as e:
        log_event(
            "ai_error",
            level=logging.ERROR,
            provider=provider,
            model=model,
            latency_ms=round((time.perf_counter() - started) * 1000, 1),
            error_type=type(e).__name__,
            error=str(e),
            **extract_http_error_context(e.__cause__ or e),
        )
        raise
    finally:
        # Abandoned streams must release their connection right away.
        await stream.aclose()


def is_retryable_error(error: BaseException) -> bool:
    """Transient upstream failures: rate limits, 5xx, and transport errors."""
    if not isinstance(error, UpstreamError):
        return False
    if error.status_code is None:
        return error.transport
    return error.status_code in RETRYABLE_STATUS_CODES


async def _drain(
    registry: ProviderRegistry,
    model_config: ModelConfig,
    system_prompt: str | None,
    messages: Sequence[Message],
    max_tokens: int | None,
) -> CompletionResult:
    parts: list[str] = []
    done: DoneEvent | None = None
    async with aclosing(
        stream_completion(registry, model_config, system_prompt, messages, max_tokens)
    ) as stream:
        async for event in stream:
            if isinstance(event, TextEvent):
                parts.append(event.text)
            else:
                done = event

    if done is None:
        raise UpstreamError(model_config.provider, "stream ended without a done event")
    return CompletionResult(
        text="".join(parts),
        input_tokens=done.input_tokens,
        output_tokens=done.output_tokens,
        finish_reason=done.finish_reason,
        provider=model_config.provider,
        model=model_config.model,
    )


async def complete(
    registry: ProviderRegistry,
    model_config: ModelConfig,
    system_prompt: str | None,
    messages: Sequence[Message],
    max_tokens: int | None = None,
    *,
    retry_attempts: int = 1,
) -> CompletionResult:
    """Collect a whole completion (non-streaming convenience).

    With ``retry_attempts`` > 1 the entire request is retried on transient
    upstream failures. Nothing was shown to anyone yet, so a retry cannot
    duplicate output.
    """
    # Fail fast on unknown/unconfigured providers, outside the retry loop.
    registry.adapter_for(model_config.provider)

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_retryable_error),
        wait=wait_exponential_jitter(
            initial=RETRY_BACKOFF_INITIAL_SEC,
            max=RETRY_BACKOFF_MAX_SEC,
        ),
        stop=stop_after_attempt(max(1, retry_attempts)),
        before_sleep=before_sleep_log_event(
            provider=model_config.provider, operation="complete"
        ),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await _drain(
                registry, model_config, system_prompt, messages, max_tokens
            )
    raise AssertionError("unreachable")  # pragma: no cover
