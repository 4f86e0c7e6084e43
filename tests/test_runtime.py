"""Tests for the completion multiplexer and caller-side completion helper."""

import logging

import pytest

import chatrelay.ai.runtime as runtime_module
from chatrelay.ai.registry import ProviderRegistry
from chatrelay.ai.runtime import complete, is_retryable_error, stream_completion
from chatrelay.ai.types import DoneEvent, TextEvent
from chatrelay.domain.config import ModelConfig
from chatrelay.errors import NotConfiguredError, UnknownProviderError, UpstreamError
from fakes import FakeAdapter, collect, text_then_done

GEMINI = ModelConfig(
    provider="google",
    model="gemini-2.0-flash",
    display_name="Gemini Flash",
    max_output_tokens=2048,
)
MESSAGES = [{"role": "user", "content": "hi"}]


class _SequencedAdapter(FakeAdapter):
    """Returns a different scripted event list on each call."""

    def __init__(self, name, scripts):
        super().__init__(name)
        self.scripts = list(scripts)

    async def stream(self, model, system_prompt, messages, max_tokens=None, *, metadata=None):
        self.events = self.scripts[len(self.calls)]
        async for event in super().stream(model, system_prompt, messages, max_tokens, metadata=metadata):
            yield event


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(runtime_module, "RETRY_BACKOFF_INITIAL_SEC", 0)
    monkeypatch.setattr(runtime_module, "RETRY_BACKOFF_MAX_SEC", 0)


@pytest.mark.asyncio
async def test_dispatches_on_provider_and_passes_through_events():
    google = FakeAdapter("google", text_then_done("Hel", "lo", input_tokens=4, output_tokens=2))
    openai = FakeAdapter("openai")
    registry = ProviderRegistry(openai=openai, google=google)

    events = await collect(stream_completion(registry, GEMINI, "sys", MESSAGES))

    assert events == [TextEvent("Hel"), TextEvent("lo"), DoneEvent(4, 2, "stop")]
    assert google.calls[0]["model"] == "gemini-2.0-flash"
    assert google.calls[0]["system_prompt"] == "sys"
    assert openai.calls == []


@pytest.mark.asyncio
async def test_max_tokens_defaults_to_model_config():
    google = FakeAdapter("google", text_then_done())
    registry = ProviderRegistry(google=google)

    await collect(stream_completion(registry, GEMINI, None, MESSAGES))
    await collect(stream_completion(registry, GEMINI, None, MESSAGES, 99))

    assert [call["max_tokens"] for call in google.calls] == [2048, 99]


def test_unknown_provider_raises_before_any_adapter_runs():
    adapters = {name: FakeAdapter(name) for name in ("openai", "anthropic", "google")}
    registry = ProviderRegistry(**adapters)
    mistral = ModelConfig(provider="mistral", model="mistral-large", display_name="Mistral")

    with pytest.raises(UnknownProviderError, match="Unknown provider: mistral"):
        stream_completion(registry, mistral, None, MESSAGES)

    assert all(adapter.calls == [] for adapter in adapters.values())


def test_unconfigured_provider_raises_at_call_time():
    registry = ProviderRegistry(openai=FakeAdapter("openai"))

    with pytest.raises(NotConfiguredError, match="Provider google not configured"):
        stream_completion(registry, GEMINI, None, MESSAGES)


@pytest.mark.asyncio
async def test_mid_stream_failure_surfaces_without_done_event(caplog):
    google = FakeAdapter(
        "google",
        [TextEvent("par"), TextEvent("tial"), UpstreamError("google", "stream broke")],
    )
    registry = ProviderRegistry(google=google)

    seen = []
    with caplog.at_level(logging.INFO, logger="chatrelay"):
        with pytest.raises(UpstreamError, match="stream broke"):
            async for event in stream_completion(registry, GEMINI, None, MESSAGES):
                seen.append(event)

    assert seen == [TextEvent("par"), TextEvent("tial")]
    messages = [r.getMessage() for r in caplog.records]
    assert any('"event":"ai_error"' in m for m in messages)
    assert not any('"event":"ai_response"' in m for m in messages)


@pytest.mark.asyncio
async def test_successful_stream_logs_request_and_response(caplog):
    registry = ProviderRegistry(google=FakeAdapter("google", text_then_done("x")))

    with caplog.at_level(logging.INFO, logger="chatrelay"):
        await collect(stream_completion(registry, GEMINI, None, MESSAGES))

    events = [r.getMessage() for r in caplog.records]
    assert '"event":"ai_request"' in events[0]
    assert '"event":"ai_response"' in events[-1]


@pytest.mark.asyncio
async def test_abandoned_stream_closes_adapter_stream():
    google = FakeAdapter("google", text_then_done("a", "b", "c"))
    registry = ProviderRegistry(google=google)

    stream = stream_completion(registry, GEMINI, None, MESSAGES)
    assert await stream.__anext__() == TextEvent("a")
    await stream.aclose()

    assert google.finished is True


@pytest.mark.asyncio
async def test_complete_collects_text_and_usage():
    registry = ProviderRegistry(google=FakeAdapter("google", text_then_done("Hel", "lo")))

    result = await complete(registry, GEMINI, None, MESSAGES)

    assert result.text == "Hello"
    assert (result.input_tokens, result.output_tokens) == (10, 5)
    assert (result.provider, result.model) == ("google", "gemini-2.0-flash")


@pytest.mark.asyncio
async def test_complete_retries_transient_failures(no_backoff):
    google = _SequencedAdapter(
        "google",
        [
            [UpstreamError("google", "unavailable", status_code=503)],
            text_then_done("ok"),
        ],
    )
    registry = ProviderRegistry(google=google)

    result = await complete(registry, GEMINI, None, MESSAGES, retry_attempts=3)

    assert result.text == "ok"
    assert len(google.calls) == 2


@pytest.mark.asyncio
async def test_complete_does_not_retry_client_errors(no_backoff):
    google = _SequencedAdapter(
        "google",
        [[UpstreamError("google", "bad request", status_code=400)], text_then_done("ok")],
    )
    registry = ProviderRegistry(google=google)

    with pytest.raises(UpstreamError, match="bad request"):
        await complete(registry, GEMINI, None, MESSAGES, retry_attempts=3)

    assert len(google.calls) == 1


@pytest.mark.asyncio
async def test_complete_without_retry_attempts_fails_once():
    google = _SequencedAdapter(
        "google",
        [[UpstreamError("google", "overloaded", status_code=529)], text_then_done("ok")],
    )
    registry = ProviderRegistry(google=google)

    with pytest.raises(UpstreamError):
        await complete(registry, GEMINI, None, MESSAGES)

    assert len(google.calls) == 1


@pytest.mark.asyncio
async def test_complete_rejects_stream_without_done_event():
    registry = ProviderRegistry(google=FakeAdapter("google", [TextEvent("x")]))

    with pytest.raises(UpstreamError, match="without a done event"):
        await complete(registry, GEMINI, None, MESSAGES)


@pytest.mark.parametrize(
    "error,expected",
    [
        (UpstreamError("openai", "timeout", transport=True), True),
        (UpstreamError("google", "Invalid argument"), False),
        (UpstreamError("google", "stream ended without a done event"), False),
        (UpstreamError("openai", "rate", status_code=429), True),
        (UpstreamError("anthropic", "overloaded", status_code=529), True),
        (UpstreamError("openai", "bad", status_code=400), False),
        (ValueError("nope"), False),
    ],
)
def test_is_retryable_error(error, expected):
    assert is_retryable_error(error) is expected
