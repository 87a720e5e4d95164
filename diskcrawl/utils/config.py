"""
Configuration management for the web crawler system.
"""

import re
import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, fields

from ..storage.session_storage import DEFAULT_STORAGE_DIR

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class ConfigError(ValueError):
    """Raised for missing or invalid configuration values."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=list)
    # 1 means serial crawling; above that, requests overlap
    max_pending_requests: int = 1
    request_overflow_cooldown: float = 200  # ms
    idle_poll_interval: float = 1000  # ms
    use_deep_parser: bool = False
    hostname_regex: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: int = 30
    stats_interval: float = 30


@dataclass
class StorageConfig:
    """Configuration for session storage."""
    directory: str = DEFAULT_STORAGE_DIR
    cleanup_on_exit: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]], section_name: str):
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section_name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in section '{section_name}': {', '.join(unknown)}")

    return section_cls(**data)


def parse_config(config_data: Optional[Dict[str, Any]]) -> Config:
    """Build a Config from already-loaded data, filling in defaults."""
    config_data = config_data or {}
    if not isinstance(config_data, dict):
        raise ConfigError("Configuration root must be a mapping")

    sections = {
        'crawler': CrawlerConfig,
        'storage': StorageConfig,
        'logging': LoggingConfig,
        'monitoring': MonitoringConfig,
    }
    unknown = sorted(set(config_data) - set(sections))
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")

    return Config(**{
        name: _build_section(section_cls, config_data.get(name), name)
        for name, section_cls in sections.items()
    })


def compile_hostname_regex(pattern: Optional[str]) -> Optional[re.Pattern]:
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"hostname_regex is not a valid pattern: {e}") from e


def validate_crawler_config(crawler: CrawlerConfig):
    """Validate crawler settings. Raises ConfigError on the first problem."""
    if not isinstance(crawler.seed_urls, list):
        raise ConfigError("seed_urls must be a list")

    if isinstance(crawler.max_pending_requests, bool) or \
            not isinstance(crawler.max_pending_requests, int):
        raise ConfigError("max_pending_requests must be an integer")

    if crawler.max_pending_requests < 1:
        raise ConfigError("max_pending_requests must be at least 1")

    if crawler.request_overflow_cooldown < 0:
        raise ConfigError("request_overflow_cooldown must be non-negative")

    if crawler.idle_poll_interval < 0:
        raise ConfigError("idle_poll_interval must be non-negative")

    if crawler.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")

    if crawler.stats_interval <= 0:
        raise ConfigError("stats_interval must be positive")

    compile_hostname_regex(crawler.hostname_regex)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file)

        self._config = parse_config(config_data)
        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        validate_crawler_config(self._config.crawler)

        if not self._config.storage.directory:
            raise ConfigError("storage.directory must not be empty")

        if not hasattr(logging, str(self._config.logging.level).upper()):
            raise ConfigError(f"Unknown log level: {self._config.logging.level}")

        logging.getLogger(__name__).info("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config()
