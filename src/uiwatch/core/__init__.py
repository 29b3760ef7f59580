"""
Core shared components for UI Watch.

- config: Settings for thresholds, logging and the API server
"""

from .config import AppConfig, get_config, reload_config

__all__ = ["AppConfig", "get_config", "reload_config"]
