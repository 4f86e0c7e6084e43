"""Shared pytest fixtures."""

import logging

import pytest

from chatrelay.config import default_config
from chatrelay.domain.config import RelayConfig


@pytest.fixture(autouse=True)
def _reset_logging():
    # setup_logging() reconfigures the root logger process-wide.
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig.from_dict(
        {
            "models": {
                "fast": {
                    "provider": "google",
                    "model": "gemini-2.0-flash",
                    "displayName": "Gemini Flash",
                    "inputCost": 0.1,
                    "outputCost": 0.4,
                },
                "full": {
                    "provider": "anthropic",
                    "model": "claude-sonnet-4-20250514",
                    "displayName": "Claude Sonnet",
                    "inputCost": 3.0,
                    "outputCost": 15.0,
                },
                "fallback": {
                    "provider": "openai",
                    "model": "gpt-4o",
                    "displayName": "GPT-4o",
                    "inputCost": 2.5,
                    "outputCost": 10.0,
                },
            },
            "routing": {
                "fullPatterns": ["fix", "implement", "refactor", "explain in detail"],
                "fastPatterns": ["^what is", "^define"],
                "thresholds": {
                    "shortMessageWords": 5,
                    "longMessageWords": 50,
                    "fileAttachmentTriggersFull": True,
                },
            },
        }
    )


@pytest.fixture
def bundled_config() -> RelayConfig:
    return default_config()
