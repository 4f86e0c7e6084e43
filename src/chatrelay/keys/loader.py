"""Unified API key loading interface for chatrelay."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Required, TypedDict, cast

from ..constants import PROVIDER_KEY_ENV_VARS
from ..errors import ConfigError
from .backends import load_from_env, load_from_json, read_json_object


class KeyConfig(TypedDict, total=False):
    """Typed configuration for API key loading.

    Discriminated by ``type`` field:
      env     -> key
      json    -> path, key
      direct  -> value (testing only)
    """

    type: Required[str]
    key: str
    value: str
    path: str


def load_api_key(provider: str, config: KeyConfig) -> str:
    """Load API key based on configuration.

    Example configs:
        {"type": "env", "key": "OPENAI_API_KEY"}
        {"type": "json", "path": "~/.chatrelay/secrets.json", "key": "google"}
        {"type": "direct", "value": "sk-..."} (testing only)

    Raises:
        ConfigError: If key cannot be loaded
    """
    key_type = config.get("type")

    if key_type == "direct":
        return cast(str, config["value"])
    elif key_type == "env":
        return load_from_env(cast(str, config["key"]))
    elif key_type == "json":
        return load_from_json(cast(str, config["path"]), cast(str, config["key"]))
    else:
        raise ConfigError(f"Unknown key type '{key_type}' for provider '{provider}'")


def resolve_provider_keys(
    secrets_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str | None]:
    """Resolve one key per provider: environment first, then secrets file.

    A missing secrets file is fine; a malformed one raises ``ConfigError``.
    """
    env = os.environ if environ is None else environ

    stored: dict[str, object] = {}
    if secrets_path is not None and Path(secrets_path).expanduser().exists():
        data = read_json_object(secrets_path)
        api_keys = data.get("apiKeys", data)
        if isinstance(api_keys, dict):
            stored = api_keys

    keys: dict[str, str | None] = {}
    for provider, env_var in PROVIDER_KEY_ENV_VARS.items():
        value = env.get(env_var) or stored.get(provider)
        keys[provider] = value if isinstance(value, str) and value else None
    return keys
