"""Typed exceptions for chatrelay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for chatrelay failures."""


class ConfigError(ValueError, RelayError):
    """Model/routing configuration or key file validation errors."""


class ProviderError(RelayError):
    """Base class for failures tied to a specific provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class NotConfiguredError(ProviderError):
    """Raised when a provider is selected but has no client or API key."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"Provider {provider} not configured")


class UnknownProviderError(ProviderError):
    """Raised when a provider tag matches none of the supported adapters."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"Unknown provider: {provider}")


class UpstreamError(ProviderError):
    """Raised for non-success provider responses and in-stream failures.

    ``detail`` carries the provider's error text verbatim where available.
    ``status_code`` is ``None`` for transport-level failures and in-stream
    error events; ``transport`` is set only for the former (timeouts,
    dropped connections).
    """

    def __init__(
        self,
        provider: str,
        detail: str,
        *,
        status_code: int | None = None,
        transport: bool = False,
    ) -> None:
        if status_code is not None:
            message = f"{provider} API error: {status_code} - {detail}"
        else:
            message = f"{provider} API error: {detail}"
        super().__init__(provider, message)
        self.detail = detail
        self.status_code = status_code
        self.transport = transport


class ProtocolDecodeError(ProviderError):
    """Raised when a streamed chunk cannot be decoded."""

    def __init__(self, provider: str, line: str, reason: str) -> None:
        super().__init__(provider, f"Malformed stream line ({reason}): {line[:200]}")
        self.line = line
        self.reason = reason
