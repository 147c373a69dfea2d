"""Configuration loading utilities."""

import copy
import json
import os
from pathlib import Path

DEFAULT_CONFIG = {
    "models": {
        "edit": "claude-3-5-haiku-latest",
        "tune": "claude-sonnet-4-20250514",
        "extract": "claude-3-5-haiku-latest",
        "rewrite": "claude-3-5-haiku-latest",
    },
    "limits": {
        "max_requirements": 24,
        "max_decision_attempts": 3,
        "max_resolutions_per_element": 2,
        "max_tune_attempts": 4,
        "max_rewrite_attempts": 3,
        "max_job_description_chars": 16_000,
        "max_extract_chars": 24_000,
        "cover_letter_max_pages": 1,
    },
    "client": {
        "retry_count": 2,
        "retry_delay": 1.0,
        "max_tokens": 8192,
    },
}


def load_config(config_path: str | None = None) -> dict:
    """Load configuration, layering config.json over the defaults.

    The file is looked up in this order: the explicit ``config_path``, the
    ``RESUME_TUNER_CONFIG`` environment variable, then ``config.json`` next to
    this module. Only an explicitly named file is required to exist.
    """
    explicit = config_path or os.environ.get("RESUME_TUNER_CONFIG")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = Path(__file__).parent / "config.json"

    config = copy.deepcopy(DEFAULT_CONFIG)
    if path.exists():
        with open(path) as f:
            _deep_merge(config, json.load(f))

    return config


def _deep_merge(base: dict, overrides: dict) -> dict:
    """Merge ``overrides`` into ``base`` in place, recursing into dicts."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def get_anthropic_api_key() -> str:
    """Get Anthropic API key from environment."""
    key = os.environ.get("ANTHROPIC_API_KEY")
    if not key:
        raise ValueError(
            "ANTHROPIC_API_KEY environment variable not set. "
            "Set it with: export ANTHROPIC_API_KEY=your-key"
        )
    return key


def get_limit(config: dict, name: str) -> int:
    """Read a numeric limit, falling back to the built-in default."""
    return config.get("limits", {}).get(name, DEFAULT_CONFIG["limits"][name])


def get_model(config: dict, purpose: str) -> str:
    """Model id configured for a purpose ("edit", "tune", "extract", "rewrite")."""
    return config.get("models", {}).get(purpose, DEFAULT_CONFIG["models"][purpose])
