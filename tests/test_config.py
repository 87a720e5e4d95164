"""Tests for configuration loading and validation."""

import pytest

from diskcrawl.utils.config import (
    ConfigError, ConfigManager, CrawlerConfig, load_config,
    parse_config, validate_crawler_config
)

CONFIG_YAML = """
crawler:
  seed_urls:
    - "https://ex.com/"
  max_pending_requests: 10
  request_overflow_cooldown: 50
  use_deep_parser: true
  hostname_regex: "^(.+\\\\.)?ex\\\\.com$"

storage:
  directory: "{storage_dir}"

logging:
  level: "DEBUG"
"""


class TestParseConfig:
    """Tests for building Config objects from plain data."""

    def test_defaults(self):
        config = parse_config({})
        assert config.crawler.max_pending_requests == 1
        assert config.crawler.request_overflow_cooldown == 200
        assert config.crawler.idle_poll_interval == 1000
        assert config.crawler.use_deep_parser is False
        assert config.crawler.hostname_regex is None
        assert config.storage.directory == "_storage"
        assert config.monitoring.metrics_enabled is False

    def test_none_is_empty(self):
        assert parse_config(None).crawler.seed_urls == []

    def test_unknown_section(self):
        with pytest.raises(ConfigError):
            parse_config({'redis': {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            parse_config({'crawler': {'max_depth': 3}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError):
            parse_config({'crawler': ['https://ex.com/']})


class TestValidateCrawlerConfig:
    """Tests for crawler setting validation."""

    def test_valid(self):
        validate_crawler_config(CrawlerConfig(max_pending_requests=5, hostname_regex=r"ex\.com$"))

    @pytest.mark.parametrize("options", [
        {'max_pending_requests': 0},
        {'max_pending_requests': 2.5},
        {'max_pending_requests': True},
        {'request_overflow_cooldown': -1},
        {'idle_poll_interval': -1},
        {'request_timeout': 0},
        {'stats_interval': 0},
        {'hostname_regex': '('},
        {'seed_urls': 'https://ex.com/'},
    ])
    def test_invalid(self, options):
        with pytest.raises(ConfigError):
            validate_crawler_config(CrawlerConfig(**options))

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestConfigManager:
    """Tests for loading YAML files."""

    def test_load_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML.format(storage_dir=tmp_path / "store"))

        config = load_config(str(path))

        assert config.crawler.seed_urls == ["https://ex.com/"]
        assert config.crawler.max_pending_requests == 10
        assert config.crawler.use_deep_parser is True
        assert config.crawler.hostname_regex == r"^(.+\.)?ex\.com$"
        assert config.storage.directory == str(tmp_path / "store")
        assert config.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(str(tmp_path / "absent.yaml")).load_config()

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("crawler:\n  max_pending_requests: 0\n")
        with pytest.raises(ConfigError):
            ConfigManager(str(path)).load_config()

    def test_unknown_log_level(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: LOUD\n")
        with pytest.raises(ConfigError):
            ConfigManager(str(path)).load_config()

    def test_config_before_load(self, tmp_path):
        with pytest.raises(ConfigError):
            ConfigManager(str(tmp_path / "config.yaml")).config
