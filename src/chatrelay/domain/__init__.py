"""Domain value objects shared by routing, streaming, and configuration."""

from .config import (
    SUPPORTED_PROVIDERS,
    ModelConfig,
    ModelTier,
    ProviderName,
    RelayConfig,
    RoutingConfig,
    RoutingThresholds,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "ModelConfig",
    "ModelTier",
    "ProviderName",
    "RelayConfig",
    "RoutingConfig",
    "RoutingThresholds",
]
