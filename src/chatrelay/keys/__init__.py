"""Provider API key loading."""

from .loader import KeyConfig, load_api_key, resolve_provider_keys

__all__ = ["KeyConfig", "load_api_key", "resolve_provider_keys"]
