"""Configuration loading utilities for wabridge."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from wabridge.config.schema import Config
from wabridge.utils.helpers import get_data_path

# Flat variables understood since the first bridge release.
AUTHORIZED_NUMBERS_ENV = "WA_AUTHORIZED_NUMBERS"
WORK_DIR_ENV = "WA_WORK_DIR"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_data_path() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, environment and defaults.

    The JSON file (camelCase keys) is optional. ``WA_AUTHORIZED_NUMBERS`` and
    ``WA_WORK_DIR`` override whatever the file says.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()
    data: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            if isinstance(raw, dict):
                # null sections fall back to their defaults
                data = {k: v for k, v in convert_keys(raw).items() if v is not None}
            else:
                logger.warning(f"Ignoring config at {path}: top level must be an object")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load config from {path}: {e}. Using defaults.")

    data = _apply_env_overrides(data)
    return Config(**data)


def _section(parent: dict[str, Any], key: str) -> dict[str, Any]:
    section = parent.setdefault(key, {})
    if not isinstance(section, dict):
        logger.warning(f"Config section '{key}' is not an object, using defaults")
        section = {}
        parent[key] = section
    return section


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    authorized = os.environ.get(AUTHORIZED_NUMBERS_ENV)
    if authorized is not None:
        whatsapp = _section(_section(data, "channels"), "whatsapp")
        whatsapp["allow_from"] = authorized

    work_dir = os.environ.get(WORK_DIR_ENV)
    if work_dir:
        assistant = _section(data, "assistant")
        assistant["work_dir"] = work_dir
    return data


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
