"""Base interface for provider adapters.

This module defines the Protocol that all adapters implement.
"""

from __future__ import annotations

from typing import AsyncGenerator, Protocol, Sequence

from .types import Message, StreamEvent, StreamMetadata


class ProviderAdapter(Protocol):
    """Protocol for provider adapter implementations."""

    name: str

    def stream(
        self,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        max_tokens: int | None = None,
        *,
        metadata: StreamMetadata | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Stream a completion as normalized events.

        Args:
            model: Provider-specific model identifier (not validated locally)
            system_prompt: Optional system instructions; ``None`` or empty
                injects nothing
            messages: Ordered transcript, may be empty
            max_tokens: Optional output token cap
            metadata: Optional dict populated with stream diagnostics

        Yields:
            Zero or more ``TextEvent`` followed by exactly one ``DoneEvent``

        Raises:
            UpstreamError: If the provider rejects the request or fails
                mid-stream
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying client connections."""
        ...
