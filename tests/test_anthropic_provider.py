"""Tests for the Anthropic (Claude) adapter."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from chatrelay.ai.anthropic_provider import AnthropicProvider
from chatrelay.ai.types import DoneEvent, TextEvent
from chatrelay.errors import UpstreamError
from fakes import FakeSDKStream, collect


class _FakeMessageStream:
    """Async context manager returned by ``client.messages.stream``."""

    def __init__(self, events=(), enter_error=None):
        self.events = list(events)
        self.enter_error = enter_error
        self.exited = False

    async def __aenter__(self):
        if self.enter_error is not None:
            raise self.enter_error
        return FakeSDKStream(self.events)

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        return False


def _provider(message_stream):
    client = SimpleNamespace(messages=SimpleNamespace(stream=MagicMock(return_value=message_stream)))
    return AnthropicProvider(client), client


def _message_start(input_tokens):
    return SimpleNamespace(
        type="message_start",
        message=SimpleNamespace(usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=1)),
    )


def _text(text):
    return SimpleNamespace(
        type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=text)
    )


def _message_delta(output_tokens, stop_reason="end_turn"):
    return SimpleNamespace(
        type="message_delta",
        usage=SimpleNamespace(output_tokens=output_tokens),
        delta=SimpleNamespace(stop_reason=stop_reason),
    )


@pytest.mark.asyncio
async def test_stream_emits_text_and_usage():
    provider, _ = _provider(
        _FakeMessageStream(
            [
                _message_start(25),
                SimpleNamespace(type="content_block_start"),
                _text("Hello"),
                _text(", world"),
                SimpleNamespace(type="content_block_stop"),
                _message_delta(9),
                SimpleNamespace(type="message_stop"),
            ]
        )
    )
    metadata = {}

    events = await collect(
        provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}], metadata=metadata)
    )

    assert events == [TextEvent("Hello"), TextEvent(", world"), DoneEvent(25, 9, "end_turn")]
    assert "".join(e.text for e in events[:-1]) == "Hello, world"
    assert metadata["wire_path"] == "messages"


@pytest.mark.asyncio
async def test_usage_captured_when_events_arrive_out_of_order():
    provider, _ = _provider(
        _FakeMessageStream([_text("a"), _message_delta(42), _message_start(17), _text("b")])
    )

    events = await collect(provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}]))

    assert events[-1] == DoneEvent(17, 42, "end_turn")


@pytest.mark.asyncio
async def test_non_text_deltas_are_ignored():
    tool_delta = SimpleNamespace(
        type="content_block_delta",
        delta=SimpleNamespace(type="input_json_delta", partial_json="{}"),
    )
    provider, _ = _provider(_FakeMessageStream([tool_delta, _text("ok"), _message_delta(1)]))

    events = await collect(provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}]))

    assert [e for e in events if isinstance(e, TextEvent)] == [TextEvent("ok")]


@pytest.mark.asyncio
async def test_system_prompt_is_a_separate_parameter():
    provider, client = _provider(_FakeMessageStream([_message_delta(1)]))

    await collect(
        provider.stream(
            "claude-sonnet-4-5",
            "Be terse.",
            [
                {"role": "system", "content": "Prefer Python."},
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "again"},
            ],
            512,
        )
    )

    kwargs = client.messages.stream.call_args.kwargs
    assert kwargs["system"] == "Be terse.\n\nPrefer Python."
    assert kwargs["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "again"},
    ]
    assert kwargs["max_tokens"] == 512


def test_build_request_defaults_max_tokens_and_omits_empty_system():
    provider = AnthropicProvider.__new__(AnthropicProvider)

    kwargs = provider.build_request("claude-haiku-4-5", "", [{"role": "user", "content": "hi"}], None)

    assert kwargs["max_tokens"] == 4096
    assert "system" not in kwargs


@pytest.mark.asyncio
async def test_error_event_raises_upstream_error_without_done():
    error_event = SimpleNamespace(
        type="error", error={"type": "overloaded_error", "message": "Overloaded"}
    )
    message_stream = _FakeMessageStream([_message_start(3), _text("par"), error_event])
    provider, _ = _provider(message_stream)

    seen = []
    with pytest.raises(UpstreamError) as exc_info:
        async for event in provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}]):
            seen.append(event)

    assert seen == [TextEvent("par")]
    assert exc_info.value.detail == "Overloaded"
    assert exc_info.value.status_code is None
    assert exc_info.value.transport is False
    assert message_stream.exited is True


@pytest.mark.asyncio
async def test_status_error_before_streaming_maps_to_upstream_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    error = anthropic.APIStatusError(
        "Overloaded",
        response=httpx.Response(529, request=request),
        body=None,
    )
    provider, _ = _provider(_FakeMessageStream(enter_error=error))

    with pytest.raises(UpstreamError) as exc_info:
        await collect(provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}]))

    assert exc_info.value.status_code == 529
    assert exc_info.value.provider == "anthropic"


@pytest.mark.asyncio
async def test_connection_error_maps_to_upstream_error_without_status():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    provider, _ = _provider(
        _FakeMessageStream(enter_error=anthropic.APIConnectionError(request=request))
    )

    with pytest.raises(UpstreamError) as exc_info:
        await collect(provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}]))

    assert exc_info.value.status_code is None
    assert exc_info.value.transport is True


@pytest.mark.asyncio
async def test_abandoning_stream_exits_sdk_context():
    message_stream = _FakeMessageStream([_text("a"), _text("b"), _message_delta(2)])
    provider, _ = _provider(message_stream)

    stream = provider.stream("claude-sonnet-4-5", None, [{"role": "user", "content": "hi"}])
    assert await stream.__anext__() == TextEvent("a")
    await stream.aclose()

    assert message_stream.exited is True
