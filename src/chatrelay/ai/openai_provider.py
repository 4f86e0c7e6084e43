"""OpenAI provider implementation for chatrelay.

Streams through the Responses API when the client exposes it and falls
back to streaming Chat Completions when that path fails before producing
any output. Both paths emit the same event shape.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Sequence

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from ..errors import RelayError, UpstreamError
from ..logging import log_event
from ..timeouts import DEFAULT_READ_TIMEOUT_SEC, build_ai_httpx_timeout
from .limits import normalize_optional_limit, openai_token_limit_param
from .provider_logging import (
    api_status_error_message,
    connection_error_message,
    log_provider_error,
    log_provider_warning,
    upstream_event_message,
)
from .provider_utils import close_stream, message_text
from .types import Message, StreamEvent, StreamMetadata, StreamUsage, TextEvent

PROVIDER = "openai"


def _event_error_detail(event: Any) -> str:
    """Pull a human-readable message out of a failed/error stream event."""
    message = getattr(event, "message", None)
    if message:
        return str(message)
    response = getattr(event, "response", None)
    error = getattr(response, "error", None)
    if error is not None:
        return str(getattr(error, "message", None) or error)
    return "response failed"


class OpenAIProvider:
    """OpenAI (GPT) adapter over an already-authenticated ``AsyncOpenAI``."""

    name = PROVIDER

    def __init__(self, client: AsyncOpenAI):
        self.client = client

    @classmethod
    def from_api_key(
        cls, api_key: str, timeout: float = DEFAULT_READ_TIMEOUT_SEC
    ) -> OpenAIProvider:
        """Build an adapter with its own client.

        SDK retries are disabled; retry policy belongs to the caller.
        """
        client = AsyncOpenAI(
            api_key=api_key, timeout=build_ai_httpx_timeout(timeout), max_retries=0
        )
        return cls(client)

    async def aclose(self) -> None:
        await self.client.close()

    def format_messages(
        self,
        messages: Sequence[Message],
        system_prompt: str | None,
        *,
        system_role: str = "system",
    ) -> list[dict[str, str]]:
        """Convert messages to OpenAI role/content payloads.

        System-role messages already in the transcript are passed through.
        """
        formatted = [
            {"role": msg.get("role", "user"), "content": message_text(msg)}
            for msg in messages
        ]
        if system_prompt:
            formatted.insert(0, {"role": system_role, "content": system_prompt})
        return formatted

    async def stream(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        *,
        metadata: StreamMetadata | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Stream a completion from OpenAI as normalized events."""
        max_tokens = normalize_optional_limit(max_tokens)
        try:
            async with aclosing(
                self._stream_with_fallback(
                    model, system_prompt, messages, max_tokens, metadata
                )
            ) as events:
                async for event in events:
                    yield event
        except RelayError:
            raise
        except APIStatusError as e:
            log_provider_error(PROVIDER, api_status_error_message(e.status_code, e))
            raise UpstreamError(PROVIDER, e.message, status_code=e.status_code) from e
        except APIConnectionError as e:
            log_provider_error(PROVIDER, connection_error_message(e))
            raise UpstreamError(PROVIDER, str(e), transport=True) from e
        except APIError as e:
            log_provider_error(PROVIDER, api_status_error_message(None, e))
            raise UpstreamError(PROVIDER, e.message) from e

    async def _stream_with_fallback(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None,
        metadata: StreamMetadata | None,
    ) -> AsyncGenerator[StreamEvent, None]:
        if getattr(self.client, "responses", None) is not None:
            emitted = False
            try:
                if metadata is not None:
                    metadata["wire_path"] = "responses"
                async with aclosing(
                    self._stream_responses(model, system_prompt, messages, max_tokens)
                ) as events:
                    async for event in events:
                        emitted = True
                        yield event
                return
            except Exception as e:
                if emitted:
                    raise
                log_event(
                    "provider_fallback",
                    level=logging.WARNING,
                    provider=PROVIDER,
                    model=model,
                    from_path="responses",
                    to_path="chat_completions",
                    error_type=type(e).__name__,
                    error=str(e),
                )

        if metadata is not None:
            metadata["wire_path"] = "chat_completions"
        async with aclosing(
            self._stream_chat_completions(model, system_prompt, messages, max_tokens)
        ) as events:
            async for event in events:
                yield event

    async def _create_response(
        self,
        model: str,
        input_items: list[dict[str, str]],
        max_output_tokens: int | None,
    ):
        kwargs: dict[str, object] = {
            "model": model,
            "input": input_items,
            "stream": True,
        }
        if max_output_tokens is not None:
            kwargs["max_output_tokens"] = max_output_tokens
        return await self.client.responses.create(**kwargs)

    async def _stream_responses(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None,
    ) -> AsyncGenerator[StreamEvent, None]:
        # Responses API carries instructions under the 'developer' role
        input_items = self.format_messages(
            messages, system_prompt, system_role="developer"
        )
        response = await self._create_response(model, input_items, max_tokens)
        usage = StreamUsage()
        try:
            async for event in response:
                event_type = getattr(event, "type", "")
                if event_type == "response.output_text.delta":
                    if event.delta:
                        yield TextEvent(event.delta)
                elif event_type in ("response.completed", "response.incomplete"):
                    result = getattr(event, "response", None)
                    result_usage = getattr(result, "usage", None)
                    if result_usage is not None:
                        usage.update(
                            input_tokens=getattr(result_usage, "input_tokens", None),
                            output_tokens=getattr(result_usage, "output_tokens", None),
                        )
                    if event_type == "response.incomplete":
                        details = getattr(result, "incomplete_details", None)
                        reason = getattr(details, "reason", None) or "incomplete"
                        log_provider_warning(
                            PROVIDER, f"Response incomplete ({reason}), may be truncated"
                        )
                        usage.update(finish_reason=reason)
                elif event_type in ("response.failed", "error"):
                    detail = _event_error_detail(event)
                    log_provider_error(PROVIDER, upstream_event_message(detail))
                    raise UpstreamError(PROVIDER, detail)
        finally:
            await close_stream(response)

        yield usage.done()

    async def _create_chat_completion(
        self,
        model: str,
        chat_messages: list[dict[str, str]],
        max_tokens: int | None,
    ):
        kwargs: dict[str, object] = {
            "model": model,
            "messages": chat_messages,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if max_tokens is not None:
            kwargs[openai_token_limit_param(model)] = max_tokens
        return await self.client.chat.completions.create(**kwargs)

    async def _stream_chat_completions(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None,
    ) -> AsyncGenerator[StreamEvent, None]:
        chat_messages = self.format_messages(messages, system_prompt)
        stream = await self._create_chat_completion(model, chat_messages, max_tokens)
        usage = StreamUsage()
        try:
            async for chunk in stream:
                choices = getattr(chunk, "choices", None) or []
                if choices:
                    choice = choices[0]
                    delta = getattr(choice, "delta", None)
                    text = getattr(delta, "content", None)
                    if text:
                        yield TextEvent(text)
                    usage.update(finish_reason=getattr(choice, "finish_reason", None))
                chunk_usage = getattr(chunk, "usage", None)
                if chunk_usage is not None:
                    usage.update(
                        input_tokens=getattr(chunk_usage, "prompt_tokens", None),
                        output_tokens=getattr(chunk_usage, "completion_tokens", None),
                    )
        finally:
            await close_stream(stream)

        yield usage.done()
