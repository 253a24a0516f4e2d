"""Configuration module for wabridge."""

from wabridge.config.loader import get_config_path, load_config
from wabridge.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
