"""chatrelay - route chat turns across OpenAI, Anthropic, and Google models."""

from .ai import (
    CompletionResult,
    CostEstimate,
    DoneEvent,
    Message,
    ProviderRegistry,
    StreamEvent,
    TextEvent,
    calculate_cost,
    complete,
    estimate_cost,
    stream_completion,
)
from .config import load_relay_config, save_relay_config
from .domain import ModelConfig, RelayConfig
from .errors import (
    ConfigError,
    NotConfiguredError,
    ProtocolDecodeError,
    RelayError,
    UnknownProviderError,
    UpstreamError,
)
from .relay import ChatRelay, TurnResult
from .routing import RouteDecision, RoutePreview, preview_route, route_message

__version__ = "0.1.0"

__all__ = [
    "ChatRelay",
    "CompletionResult",
    "ConfigError",
    "CostEstimate",
    "DoneEvent",
    "Message",
    "ModelConfig",
    "NotConfiguredError",
    "ProtocolDecodeError",
    "ProviderRegistry",
    "RelayConfig",
    "RelayError",
    "RouteDecision",
    "RoutePreview",
    "StreamEvent",
    "TextEvent",
    "TurnResult",
    "UnknownProviderError",
    "UpstreamError",
    "calculate_cost",
    "complete",
    "estimate_cost",
    "load_relay_config",
    "preview_route",
    "route_message",
    "save_relay_config",
    "stream_completion",
]
