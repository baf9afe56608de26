"""
Configuration loading and transport chain assembly.
"""

from layover.config.builder import build_transport
from layover.config.loader import Config, load_config

__all__ = ["Config", "build_transport", "load_config"]
