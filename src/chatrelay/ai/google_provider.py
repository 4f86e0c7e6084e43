"""Google (Gemini) provider implementation for chatrelay.

Talks to the ``streamGenerateContent`` REST endpoint directly with
``httpx`` using server-sent-event framing (``alt=sse``).
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Sequence

import httpx

from ..constants import (
    GOOGLE_API_BASE_URL,
    GOOGLE_INSTRUCTION_ACK,
    GOOGLE_INSTRUCTION_PREAMBLE,
)
from ..errors import ProtocolDecodeError, RelayError, UpstreamError
from ..logging import log_event
from ..timeouts import DEFAULT_READ_TIMEOUT_SEC, build_ai_httpx_timeout
from .limits import normalize_optional_limit
from .provider_logging import (
    api_status_error_message,
    connection_error_message,
    log_provider_error,
    upstream_event_message,
)
from .provider_utils import join_system_prompt, split_system_messages
from .sse import SSELineBuffer, parse_data_line
from .types import Message, StreamEvent, StreamMetadata, StreamUsage, TextEvent

PROVIDER = "google"


def build_contents(
    system_prompt: str | None, messages: Sequence[Message]
) -> list[dict[str, Any]]:
    """Convert the transcript to Gemini ``contents``.

    Instructions travel as a leading user turn plus an acknowledgement model
    turn, prepended before the real conversation.
    """
    system_texts, conversation = split_system_messages(messages)
    instructions = join_system_prompt(system_prompt, system_texts)

    contents: list[dict[str, Any]] = []
    if instructions:
        contents.append(
            {
                "role": "user",
                "parts": [
                    {
                        "text": f"System Instructions: {instructions}\n\n"
                        f"{GOOGLE_INSTRUCTION_PREAMBLE}"
                    }
                ],
            }
        )
        contents.append({"role": "model", "parts": [{"text": GOOGLE_INSTRUCTION_ACK}]})

    for msg in conversation:
        contents.append(
            {
                # Gemini uses "user" and "model" roles
                "role": "model" if msg["role"] == "assistant" else "user",
                "parts": [{"text": msg["content"]}],
            }
        )
    return contents


def _first_candidate(data: dict[str, Any], line: str) -> dict[str, Any] | None:
    """Return the first candidate, or raise if the payload has the wrong shape."""
    candidates = data.get("candidates")
    if candidates is None:
        return None
    if not isinstance(candidates, list):
        raise ProtocolDecodeError(PROVIDER, line, "candidates is not a list")
    if not candidates:
        return None
    if not isinstance(candidates[0], dict):
        raise ProtocolDecodeError(PROVIDER, line, "candidate is not an object")
    return candidates[0]


def _candidate_texts(candidate: dict[str, Any], line: str) -> list[str]:
    content = candidate.get("content")
    if content is None:
        return []
    if not isinstance(content, dict):
        raise ProtocolDecodeError(PROVIDER, line, "content is not an object")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise ProtocolDecodeError(PROVIDER, line, "parts is not a list")

    texts: list[str] = []
    for part in parts:
        if not isinstance(part, dict):
            raise ProtocolDecodeError(PROVIDER, line, "part is not an object")
        text = part.get("text")
        if text is None:
            continue
        if not isinstance(text, str):
            raise ProtocolDecodeError(PROVIDER, line, "part text is not a string")
        if text:
            texts.append(text)
    return texts


def _error_detail(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class GoogleProvider:
    """Gemini adapter driven by a bare API key."""

    name = PROVIDER

    def __init__(
        self,
        api_key: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = GOOGLE_API_BASE_URL,
        timeout: float = DEFAULT_READ_TIMEOUT_SEC,
    ):
        """Initialize Google adapter.

        Args:
            api_key: Google API key
            http_client: Optional shared client (tests inject a mock transport)
            base_url: API root, without trailing slash
            timeout: Read timeout in seconds (0 = no timeout)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(
            timeout=build_ai_httpx_timeout(timeout)
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()

    def build_payload(
        self,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"contents": build_contents(system_prompt, messages)}
        max_tokens = normalize_optional_limit(max_tokens)
        if max_tokens is not None:
            payload["generationConfig"] = {"maxOutputTokens": max_tokens}
        return payload

    async def stream(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        *,
        metadata: StreamMetadata | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Stream a completion from Gemini as normalized events."""
        if metadata is not None:
            metadata["wire_path"] = "stream_generate_content"
            metadata.setdefault("skipped_lines", 0)

        url = f"{self.base_url}/models/{model}:streamGenerateContent"
        payload = self.build_payload(system_prompt, messages, max_tokens)
        usage = StreamUsage()
        buffer = SSELineBuffer()

        try:
            async with self.http_client.stream(
                "POST",
                url,
                params={"alt": "sse"},
                headers={"x-goog-api-key": self.api_key},
                json=payload,
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    log_provider_error(
                        PROVIDER, api_status_error_message(response.status_code, body)
                    )
                    raise UpstreamError(PROVIDER, body, status_code=response.status_code)

                async for chunk in response.aiter_text():
                    for line in buffer.feed(chunk):
                        for event in self._handle_line(line, usage, metadata):
                            yield event

                for line in buffer.flush():
                    for event in self._handle_line(line, usage, metadata):
                        yield event
        except RelayError:
            raise
        except httpx.HTTPError as e:
            log_provider_error(PROVIDER, connection_error_message(e))
            raise UpstreamError(
                PROVIDER, str(e) or type(e).__name__, transport=True
            ) from e

        yield usage.done()

    def _handle_line(
        self,
        line: str,
        usage: StreamUsage,
        metadata: StreamMetadata | None,
    ) -> list[TextEvent]:
        """Decode one complete line into text events, updating usage."""
        try:
            data = parse_data_line(line, PROVIDER)
            if not isinstance(data, dict):
                return []
            if "error" in data:
                detail = _error_detail(data["error"])
                log_provider_error(PROVIDER, upstream_event_message(detail))
                raise UpstreamError(PROVIDER, detail)
            candidate = _first_candidate(data, line)
            texts = _candidate_texts(candidate, line) if candidate is not None else []
        except ProtocolDecodeError as e:
            # Partial, garbled, or oddly shaped lines are tolerated; count them instead.
            if metadata is not None:
                metadata["skipped_lines"] = metadata.get("skipped_lines", 0) + 1
            log_event(
                "stream_line_skipped",
                level=logging.DEBUG,
                provider=PROVIDER,
                reason=e.reason,
            )
            return []

        usage_meta = data.get("usageMetadata")
        if isinstance(usage_meta, dict):
            usage.update(
                input_tokens=usage_meta.get("promptTokenCount"),
                output_tokens=usage_meta.get("candidatesTokenCount"),
            )
        if candidate is not None and isinstance(candidate.get("finishReason"), str):
            usage.update(finish_reason=candidate["finishReason"])

        return [TextEvent(text) for text in texts]
