"""Utilities package."""

from .config import Config, load_config
from .log import mask_argv, setup_logging

__all__ = ["Config", "load_config", "mask_argv", "setup_logging"]
