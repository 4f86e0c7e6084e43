"""Credential backend loaders for environment variables and JSON files."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from ..errors import ConfigError


def load_from_env(var_name: str, environ: Mapping[str, str] | None = None) -> str:
    """Load API key from environment variable."""
    env = os.environ if environ is None else environ
    value = env.get(var_name)

    if not value:
        raise ConfigError(
            f"Environment variable '{var_name}' not set.\n"
            f"Set it with:\n"
            f"  Unix/macOS:  export {var_name}=your-api-key\n"
            f"  Windows CMD: set {var_name}=your-api-key\n"
            f"  PowerShell:  $env:{var_name} = 'your-api-key'"
        )
    return value


def read_json_object(path: str | Path) -> dict[str, Any]:
    """Read a JSON file that must contain an object."""
    json_path = Path(path).expanduser()
    if not json_path.exists():
        raise ConfigError(f"Key file not found: {json_path}")

    try:
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in key file {json_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Key file {json_path} must contain a JSON object")
    return data


def load_from_json(path: str | Path, key: str) -> str:
    """Load API key from a JSON file.

    Both flat files (``{"openai": "sk-..."}``) and secrets files with an
    ``apiKeys`` object are accepted.
    """
    data = read_json_object(path)
    keys = data.get("apiKeys") if isinstance(data.get("apiKeys"), dict) else data
    value = keys.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Key '{key}' not found in {Path(path).expanduser()}")
    return value
