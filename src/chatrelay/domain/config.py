"""Model and routing configuration value objects.

Config files use the camelCase keys of the original ``models.json`` layout::

    {
      "models": {
        "fast": {"provider": "google", "model": "gemini-2.0-flash",
                 "displayName": "Gemini Flash", "inputCost": 0.1,
                 "outputCost": 0.4, "maxOutputTokens": 8192},
        "full": {...},
        "fallback": {...}
      },
      "routing": {
        "fullPatterns": ["implement", "refactor"],
        "fastPatterns": ["^what is"],
        "thresholds": {"shortMessageWords": 5, "longMessageWords": 50,
                       "fileAttachmentTriggersFull": true}
      }
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, get_args

from ..errors import ConfigError

ProviderName = Literal["openai", "anthropic", "google"]
ModelTier = Literal["fast", "full"]

SUPPORTED_PROVIDERS: tuple[str, ...] = get_args(ProviderName)

REQUIRED_MODEL_KEYS: tuple[str, ...] = get_args(ModelTier)


def _require_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}: '{key}' must be a non-empty string")
    return value


def _optional_number(data: Mapping[str, Any], key: str, where: str, default: float) -> float:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"{where}: '{key}' must be a non-negative number")
    return float(value)


def _optional_positive_int(data: Mapping[str, Any], key: str, where: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{where}: '{key}' must be a positive integer")
    return value


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """One concrete model selection: provider, model id, and pricing.

    Costs are USD per 1,000,000 tokens.
    """

    provider: str
    model: str
    display_name: str
    input_cost: float = 0.0
    output_cost: float = 0.0
    max_output_tokens: int | None = None
    summarization_threshold: int | None = None
    context_window: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], key: str = "model") -> ModelConfig:
        """Parse a ``models.<key>`` block, rejecting unknown providers."""
        where = f"models.{key}"
        if not isinstance(data, Mapping):
            raise ConfigError(f"{where}: expected an object")

        provider = _require_str(data, "provider", where)
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"{where}: unknown provider '{provider}' "
                f"(expected one of: {', '.join(SUPPORTED_PROVIDERS)})"
            )
        model = _require_str(data, "model", where)
        display_name = data.get("displayName") or model
        if not isinstance(display_name, str):
            raise ConfigError(f"{where}: 'displayName' must be a string")

        return cls(
            provider=provider,
            model=model,
            display_name=display_name,
            input_cost=_optional_number(data, "inputCost", where, 0.0),
            output_cost=_optional_number(data, "outputCost", where, 0.0),
            max_output_tokens=_optional_positive_int(data, "maxOutputTokens", where),
            summarization_threshold=_optional_positive_int(
                data, "summarizationThreshold", where
            ),
            context_window=_optional_positive_int(data, "contextWindow", where),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the on-disk camelCase layout."""
        data: dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "displayName": self.display_name,
            "inputCost": self.input_cost,
            "outputCost": self.output_cost,
        }
        if self.max_output_tokens is not None:
            data["maxOutputTokens"] = self.max_output_tokens
        if self.summarization_threshold is not None:
            data["summarizationThreshold"] = self.summarization_threshold
        if self.context_window is not None:
            data["contextWindow"] = self.context_window
        return data


@dataclass(frozen=True, slots=True)
class RoutingThresholds:
    """Word-count thresholds and file-attachment policy for routing."""

    short_message_words: int = 5
    long_message_words: int = 50
    file_attachment_triggers_full: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RoutingThresholds:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("routing.thresholds: expected an object")

        defaults = cls()
        short_words = data.get("shortMessageWords", defaults.short_message_words)
        long_words = data.get("longMessageWords", defaults.long_message_words)
        for name, value in (
            ("shortMessageWords", short_words),
            ("longMessageWords", long_words),
        ):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(
                    f"routing.thresholds: '{name}' must be a non-negative integer"
                )

        triggers_full = data.get(
            "fileAttachmentTriggersFull", defaults.file_attachment_triggers_full
        )
        if not isinstance(triggers_full, bool):
            raise ConfigError(
                "routing.thresholds: 'fileAttachmentTriggersFull' must be a boolean"
            )

        return cls(
            short_message_words=short_words,
            long_message_words=long_words,
            file_attachment_triggers_full=triggers_full,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "shortMessageWords": self.short_message_words,
            "longMessageWords": self.long_message_words,
            "fileAttachmentTriggersFull": self.file_attachment_triggers_full,
        }


def _pattern_list(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    raw = data.get(key, [])
    if not isinstance(raw, (list, tuple)) or not all(isinstance(p, str) for p in raw):
        raise ConfigError(f"routing.{key}: expected a list of strings")
    return tuple(p for p in raw if p)


@dataclass(frozen=True, slots=True)
class RoutingConfig:
    """Ordered routing patterns plus thresholds.

    ``full_patterns`` are plain substrings; ``fast_patterns`` are regular
    expressions. Both are matched case-insensitively, first match wins.
    """

    full_patterns: tuple[str, ...] = ()
    fast_patterns: tuple[str, ...] = ()
    thresholds: RoutingThresholds = field(default_factory=RoutingThresholds)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RoutingConfig:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("routing: expected an object")

        fast_patterns = _pattern_list(data, "fastPatterns")
        for pattern in fast_patterns:
            try:
                re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise ConfigError(
                    f"routing.fastPatterns: invalid regular expression {pattern!r}: {e}"
                ) from e

        return cls(
            full_patterns=_pattern_list(data, "fullPatterns"),
            fast_patterns=fast_patterns,
            thresholds=RoutingThresholds.from_dict(data.get("thresholds")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fullPatterns": list(self.full_patterns),
            "fastPatterns": list(self.fast_patterns),
            "thresholds": self.thresholds.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class RelayConfig:
    """Everything routing and streaming need: model tiers plus routing rules."""

    models: Mapping[str, ModelConfig]
    routing: RoutingConfig = field(default_factory=RoutingConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RelayConfig:
        if not isinstance(data, Mapping):
            raise ConfigError("config: expected an object")

        raw_models = data.get("models")
        if not isinstance(raw_models, Mapping):
            raise ConfigError("config: 'models' must be an object")

        models = {
            str(key): ModelConfig.from_dict(value, str(key))
            for key, value in raw_models.items()
        }
        missing = [key for key in REQUIRED_MODEL_KEYS if key not in models]
        if missing:
            raise ConfigError(f"config: missing required models: {', '.join(missing)}")

        return cls(models=models, routing=RoutingConfig.from_dict(data.get("routing")))

    def to_dict(self) -> dict[str, Any]:
        return {
            "models": {key: model.to_dict() for key, model in self.models.items()},
            "routing": self.routing.to_dict(),
        }

    @property
    def fast(self) -> ModelConfig:
        return self.models["fast"]

    @property
    def full(self) -> ModelConfig:
        return self.models["full"]

    @property
    def fallback(self) -> ModelConfig | None:
        return self.models.get("fallback")
