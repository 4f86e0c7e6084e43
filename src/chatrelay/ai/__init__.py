"""Provider adapters, multiplexer, and cost estimation."""

from .costing import CostEstimate, calculate_cost, estimate_cost, format_cost_usd
from .registry import ProviderRegistry
from .runtime import CompletionResult, complete, stream_completion
from .types import DoneEvent, Message, StreamEvent, StreamMetadata, TextEvent

__all__ = [
    "CompletionResult",
    "CostEstimate",
    "DoneEvent",
    "Message",
    "ProviderRegistry",
    "StreamEvent",
    "StreamMetadata",
    "TextEvent",
    "calculate_cost",
    "complete",
    "estimate_cost",
    "format_cost_usd",
    "stream_completion",
]
