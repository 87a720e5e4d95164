"""Shared fixtures for the crawler test suite."""

import logging

import pytest

from diskcrawl.crawler.scheduler import CrawlerScheduler
from diskcrawl.storage.session_storage import StorageManager
from diskcrawl.utils.config import parse_config

from .helpers import FakeFetcher


@pytest.fixture
def storage(tmp_path):
    manager = StorageManager(tmp_path / "storage")
    manager.initialize()
    return manager


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def make_scheduler(storage, fake_fetcher):
    """Build a scheduler over temporary storage and the fake transport."""

    def _make(**crawler_options) -> CrawlerScheduler:
        crawler_options.setdefault('stats_interval', 60)
        config = parse_config({'crawler': crawler_options})
        return CrawlerScheduler(config, storage=storage, fetcher=fake_fetcher)

    return _make


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() so later tests keep pytest's own handlers."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
