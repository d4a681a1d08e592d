"""Configuration module for the Enostics AI pipeline."""

from enostics_ai.config.loader import get_config_path, load_config, merge_config, save_config
from enostics_ai.config.presets import apply_environment
from enostics_ai.config.schema import Config

__all__ = ["Config", "apply_environment", "get_config_path", "load_config", "merge_config", "save_config"]
