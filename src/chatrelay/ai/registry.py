"""Explicit, immutable set of initialized provider adapters.

A registry is built once at startup and passed by reference to the
multiplexer. Reloading keys means building a new registry and swapping the
reference; nothing here is mutated after construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, assert_never

from ..domain.config import SUPPORTED_PROVIDERS, ProviderName
from ..errors import NotConfiguredError, UnknownProviderError
from ..logging import log_event
from ..timeouts import DEFAULT_READ_TIMEOUT_SEC
from .anthropic_provider import AnthropicProvider
from .base import ProviderAdapter
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider


@dataclass(frozen=True, slots=True)
class ProviderRegistry:
    """Initialized adapters; ``None`` means the provider is not configured."""

    openai: OpenAIProvider | None = None
    anthropic: AnthropicProvider | None = None
    google: GoogleProvider | None = None

    @classmethod
    def from_keys(
        cls,
        keys: Mapping[str, str | None],
        timeout: float = DEFAULT_READ_TIMEOUT_SEC,
    ) -> ProviderRegistry:
        """Build adapters for every provider that has a non-empty key."""
        openai_key = (keys.get("openai") or "").strip()
        anthropic_key = (keys.get("anthropic") or "").strip()
        google_key = (keys.get("google") or "").strip()

        registry = cls(
            openai=OpenAIProvider.from_api_key(openai_key, timeout) if openai_key else None,
            anthropic=(
                AnthropicProvider.from_api_key(anthropic_key, timeout)
                if anthropic_key
                else None
            ),
            google=GoogleProvider(google_key, timeout=timeout) if google_key else None,
        )
        log_event("registry_init", level=logging.INFO, **registry.status())
        return registry

    def adapter_for(self, provider: str) -> ProviderAdapter:
        """Return the adapter for a provider tag.

        Raises:
            UnknownProviderError: If the tag is not a supported provider
            NotConfiguredError: If the provider has no client/key
        """
        if provider not in SUPPORTED_PROVIDERS:
            raise UnknownProviderError(provider)
        return self._require(provider)  # type: ignore[arg-type]

    def _require(self, provider: ProviderName) -> ProviderAdapter:
        adapter: ProviderAdapter | None
        match provider:
            case "openai":
                adapter = self.openai
            case "anthropic":
                adapter = self.anthropic
            case "google":
                adapter = self.google
            case _:
                assert_never(provider)
        if adapter is None:
            raise NotConfiguredError(provider)
        return adapter

    def is_available(self, provider: str) -> bool:
        """Check whether a provider is supported and configured."""
        if provider not in SUPPORTED_PROVIDERS:
            return False
        return getattr(self, provider) is not None

    def status(self) -> dict[str, bool]:
        """Availability of every supported provider."""
        return {name: self.is_available(name) for name in SUPPORTED_PROVIDERS}

    async def aclose(self) -> None:
        """Close every configured adapter's connections."""
        for name in SUPPORTED_PROVIDERS:
            adapter = getattr(self, name)
            if adapter is not None:
                await adapter.aclose()
