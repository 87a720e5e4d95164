#!/usr/bin/env python3
"""
Main entry point for the web crawler system.
"""

import asyncio
import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from diskcrawl import __version__
from diskcrawl.crawler.fetcher import WebFetcher, TransportError
from diskcrawl.crawler.scheduler import CrawlerScheduler
from diskcrawl.storage.session_storage import StorageManager
from diskcrawl.utils.config import load_config, Config
from diskcrawl.utils.logger import setup_logging, log_system_info
from diskcrawl.utils.monitoring import CrawlerMonitor, format_stats, initialize_monitoring


class CrawlerApp:
    """Main application class for the web crawler."""

    def __init__(self, fetcher: Optional[WebFetcher] = None):
        self.fetcher = fetcher
        self.scheduler: Optional[CrawlerScheduler] = None
        self.storage: Optional[StorageManager] = None
        self.monitor: Optional[CrawlerMonitor] = None
        self.logger = logging.getLogger(__name__)
        self._crawl_task: Optional[asyncio.Task] = None
        self._last_report = 0.0

    def setup_signal_handlers(self):
        """Cancel the crawl on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            if self._crawl_task and not self._crawl_task.done():
                self._crawl_task.cancel()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except NotImplementedError:
                # not available on every platform's event loop
                pass

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(signum)
            except NotImplementedError:
                pass

    def print_stats(self, node: str):
        """Print statistics at most once per second."""
        if time.time() - self._last_report < 1:
            return
        print(format_stats(self.scheduler.get_stats()))
        self._last_report = time.time()

    async def run(self, config_path: str, seeds: List[str],
                  domains_file: Optional[str] = None,
                  dry_run: bool = False, cleanup: bool = False) -> int:
        """Run the web crawler."""
        try:
            config = load_config(config_path)
            setup_logging(config.logging)
            log_system_info(config.storage.directory)
            self.setup_signal_handlers()

            self.logger.info("=== WEB CRAWLER STARTING ===")
            self.logger.info(f"Configuration loaded from: {config_path}")
            self.logger.info(f"Seed URLs: {config.crawler.seed_urls + seeds}")
            self.logger.info(f"Max pending requests: {config.crawler.max_pending_requests}")
            self.logger.info(f"Hostname filter: {config.crawler.hostname_regex or 'none'}")
            self.logger.info(f"Storage directory: {config.storage.directory}")

            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                await self._dry_run(config, seeds)
                return 0

            # one manager for the whole session so storage is wiped only once
            self.storage = StorageManager(config.storage.directory)
            self.scheduler = CrawlerScheduler(config, storage=self.storage, fetcher=self.fetcher)
            await self.scheduler.initialize()

            self.monitor = initialize_monitoring(
                config.monitoring.metrics_enabled,
                config.monitoring.prometheus_port
            )
            self.monitor.attach(self.scheduler)

            if domains_file:
                domains_path = Path(domains_file)

                def write_domain(hostname: str):
                    with open(domains_path, 'a', encoding='utf-8') as f:
                        f.write(hostname + '\n')

                self.scheduler.on_visit_new_domain.subscribe(write_domain)

            self.scheduler.on_process_node.subscribe(self.print_stats)

            self.scheduler.add_seed_urls()
            if seeds:
                self.scheduler.add_nodes(*seeds)

            self._crawl_task = asyncio.create_task(self.scheduler.run())
            try:
                await self._crawl_task
            except asyncio.CancelledError:
                self.logger.info("Crawl cancelled")

            print(format_stats(self.scheduler.get_stats()))

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            self.remove_signal_handlers()
            if self.monitor:
                self.logger.info(f"Monitoring summary: {self.monitor.get_summary()}")
                self.monitor.detach()
            if self.scheduler:
                await self.scheduler.close()
                if cleanup or self.scheduler.config.storage.cleanup_on_exit:
                    self.storage.cleanup()
                    self.logger.info(f"Removed storage directory {self.storage.directory}")
            self.logger.info("=== WEB CRAWLER FINISHED ===")

        return 0

    async def _dry_run(self, config: Config, seeds: List[str]):
        """Check the configuration and fetch the first seed once."""
        candidates = config.crawler.seed_urls + seeds
        if not candidates:
            self.logger.warning("No seed URLs configured")
            return

        async with WebFetcher(
            user_agent=config.crawler.user_agent,
            request_timeout=config.crawler.request_timeout
        ) as fetcher:
            try:
                result = await fetcher.fetch(candidates[0])
                self.logger.info(
                    f"✓ Test fetch successful: {result.status_code} "
                    f"({result.content_type.mime_type or 'no content type'})"
                )
            except TransportError as e:
                self.logger.warning(f"Test fetch failed: {e}")

        self.logger.info("Dry run completed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Disk-backed Web Crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                # Run with default config.yaml
  python main.py --config my_config.yaml        # Run with custom config
  python main.py --seed https://example.com/    # Add a seed URL
  python main.py --domains-file domains.txt     # Record every new domain
  python main.py --dry-run                      # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--seed',
        action='append',
        default=[],
        metavar='URL',
        help='Seed URL to crawl in addition to the configured ones (repeatable)'
    )

    parser.add_argument(
        '--domains-file',
        help='Append each newly visited domain to this file'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )

    parser.add_argument(
        '--cleanup',
        action='store_true',
        help='Remove the storage directory when the crawl ends'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Disk-backed Web Crawler {__version__}'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            seeds=args.seed,
            domains_file=args.domains_file,
            dry_run=args.dry_run,
            cleanup=args.cleanup
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
