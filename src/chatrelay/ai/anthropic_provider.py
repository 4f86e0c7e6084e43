"""Anthropic (Claude) provider implementation for chatrelay."""

from __future__ import annotations

from typing import Any, AsyncGenerator, Sequence

from anthropic import APIConnectionError, APIError, APIStatusError, AsyncAnthropic

from ..errors import RelayError, UpstreamError
from ..timeouts import DEFAULT_READ_TIMEOUT_SEC, build_ai_httpx_timeout
from .limits import resolve_max_tokens
from .provider_logging import (
    api_status_error_message,
    connection_error_message,
    log_provider_error,
    log_provider_warning,
    upstream_event_message,
)
from .provider_utils import join_system_prompt, split_system_messages
from .types import Message, StreamEvent, StreamMetadata, StreamUsage, TextEvent

PROVIDER = "anthropic"


def _stream_error_detail(event: Any) -> str:
    error = getattr(event, "error", None)
    if error is None:
        return "stream error"
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(getattr(error, "message", None) or error)


class AnthropicProvider:
    """Claude adapter over an already-authenticated ``AsyncAnthropic``."""

    name = PROVIDER

    def __init__(self, client: AsyncAnthropic):
        self.client = client

    @classmethod
    def from_api_key(
        cls, api_key: str, timeout: float = DEFAULT_READ_TIMEOUT_SEC
    ) -> AnthropicProvider:
        """Build an adapter with its own client (SDK retries disabled)."""
        client = AsyncAnthropic(
            api_key=api_key, timeout=build_ai_httpx_timeout(timeout), max_retries=0
        )
        return cls(client)

    async def aclose(self) -> None:
        await self.client.close()

    def build_request(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None,
    ) -> dict[str, Any]:
        """Build ``messages.stream`` kwargs.

        Claude takes system instructions as a separate parameter, so
        system-role transcript entries are hoisted into it.
        """
        system_texts, conversation = split_system_messages(messages)
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": conversation,
            "max_tokens": resolve_max_tokens(max_tokens),
        }
        system = join_system_prompt(system_prompt, system_texts)
        if system:
            kwargs["system"] = system
        return kwargs

    async def stream(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        *,
        metadata: StreamMetadata | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Stream a completion from Claude as normalized events."""
        if metadata is not None:
            metadata["wire_path"] = "messages"
        kwargs = self.build_request(model, system_prompt, messages, max_tokens)
        usage = StreamUsage()

        try:
            async with self.client.messages.stream(**kwargs) as response_stream:
                async for event in response_stream:
                    event_type = getattr(event, "type", None)
                    if event_type == "content_block_delta":
                        delta = getattr(event, "delta", None)
                        if getattr(delta, "type", None) == "text_delta" and delta.text:
                            yield TextEvent(delta.text)
                    elif event_type == "message_start":
                        start_usage = getattr(getattr(event, "message", None), "usage", None)
                        if start_usage is not None:
                            usage.update(
                                input_tokens=getattr(start_usage, "input_tokens", None)
                            )
                    elif event_type == "message_delta":
                        delta_usage = getattr(event, "usage", None)
                        if delta_usage is not None:
                            usage.update(
                                output_tokens=getattr(delta_usage, "output_tokens", None),
                            )
                        stop_reason = getattr(getattr(event, "delta", None), "stop_reason", None)
                        usage.update(finish_reason=stop_reason)
                    elif event_type == "error":
                        detail = _stream_error_detail(event)
                        log_provider_error(PROVIDER, upstream_event_message(detail))
                        raise UpstreamError(PROVIDER, detail)
        except RelayError:
            raise
        except APIStatusError as e:
            if e.status_code == 529:
                log_provider_error(PROVIDER, f"Anthropic system overloaded (529): {e}")
            else:
                log_provider_error(PROVIDER, api_status_error_message(e.status_code, e))
            raise UpstreamError(PROVIDER, e.message, status_code=e.status_code) from e
        except APIConnectionError as e:
            log_provider_error(PROVIDER, connection_error_message(e))
            raise UpstreamError(PROVIDER, str(e), transport=True) from e
        except APIError as e:
            log_provider_error(PROVIDER, api_status_error_message(None, e))
            raise UpstreamError(PROVIDER, e.message) from e

        if usage.finish_reason == "max_tokens":
            log_provider_warning(PROVIDER, "Response truncated due to max_tokens limit")
        yield usage.done()
