"""
Utility modules for the web crawler system.
"""

from .config import Config, ConfigError, ConfigManager, load_config, parse_config

__all__ = ['Config', 'ConfigError', 'ConfigManager', 'load_config', 'parse_config']
