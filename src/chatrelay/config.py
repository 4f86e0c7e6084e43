"""Load and save the model/routing configuration file."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Mapping

from .constants import CONFIG_PATH_ENV_VAR, DEFAULT_CONFIG_PATH
from .domain.config import RelayConfig
from .errors import ConfigError

# Bundled defaults, used until a config file exists.
DEFAULT_CONFIG: dict[str, Any] = {
    "models": {
        "fast": {
            "provider": "google",
            "model": "gemini-2.5-flash",
            "displayName": "Gemini 2.5 Flash",
            "inputCost": 0.30,
            "outputCost": 2.50,
            "maxOutputTokens": 8192,
            "contextWindow": 1_000_000,
        },
        "full": {
            "provider": "anthropic",
            "model": "claude-sonnet-4-5",
            "displayName": "Claude Sonnet 4.5",
            "inputCost": 3.00,
            "outputCost": 15.00,
            "maxOutputTokens": 8192,
            "summarizationThreshold": 150_000,
            "contextWindow": 200_000,
        },
        "fallback": {
            "provider": "openai",
            "model": "gpt-4.1",
            "displayName": "GPT-4.1",
            "inputCost": 2.00,
            "outputCost": 8.00,
            "maxOutputTokens": 8192,
            "contextWindow": 1_000_000,
        },
    },
    "routing": {
        "fullPatterns": [
            "build",
            "create",
            "implement",
            "debug",
            "fix",
            "refactor",
            "architect",
            "design",
            "analyze",
            "explain in detail",
        ],
        "fastPatterns": [
            "^what is",
            "^what's",
            "^who is",
            "^define",
            "^how do i",
            "^list",
            "^summarize",
        ],
        "thresholds": {
            "shortMessageWords": 5,
            "longMessageWords": 50,
            "fileAttachmentTriggersFull": True,
        },
    },
}


def default_config() -> RelayConfig:
    """Parse the bundled default configuration."""
    return RelayConfig.from_dict(copy.deepcopy(DEFAULT_CONFIG))


def resolve_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Config path from ``CHATRELAY_CONFIG`` or the user data directory."""
    env = os.environ if environ is None else environ
    raw = env.get(CONFIG_PATH_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(raw).expanduser()


def load_relay_config(path: str | Path | None = None) -> RelayConfig:
    """Load config from JSON, falling back to bundled defaults if absent.

    Raises:
        ConfigError: If the file exists but is unreadable or invalid
    """
    config_path = Path(path).expanduser() if path else resolve_config_path()
    if not config_path.exists():
        return default_config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e

    return RelayConfig.from_dict(data)


def save_relay_config(config: RelayConfig, path: str | Path | None = None) -> Path:
    """Write config as pretty-printed JSON, creating parent directories."""
    config_path = Path(path).expanduser() if path else resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
        f.write("\n")
    return config_path
