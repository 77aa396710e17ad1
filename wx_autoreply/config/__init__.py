"""Configuration module for wx-autoreply."""

from wx_autoreply.config.loader import ConfigWatcher, get_config_path, load_config, save_config
from wx_autoreply.config.schema import Config

__all__ = ["Config", "ConfigWatcher", "load_config", "save_config", "get_config_path"]
