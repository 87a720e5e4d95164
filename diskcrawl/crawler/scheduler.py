"""
Crawler scheduler that coordinates crawling tasks and manages the overall crawl process.
"""

import asyncio
import contextlib
import logging
import time
from typing import Callable, Dict, Optional, Set, Tuple
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit, urlunsplit

from .events import EventManager
from .fetcher import WebFetcher, TransportError
from .parser import LinkExtractor, create_link_extractor
from .url_frontier import URLFrontier
from ..storage.dedup_set import DedupSet
from ..storage.session_storage import StorageManager
from ..utils.config import Config, compile_hostname_regex, validate_crawler_config


def canonicalize_url(url: str) -> str:
    """Drop the query component; scheme, host, path and fragment are kept as-is."""
    return urlunsplit(urlsplit(url)._replace(query=''))


def parse_url(url: str) -> Tuple[str, Optional[str]]:
    """Return the canonical form of a URL and its hostname."""
    return canonicalize_url(url), urlsplit(url).hostname


@dataclass
class CrawlStats:
    """Counters accumulated over a crawl."""
    start_time: float
    requests: int = 0
    non_ok_requests: int = 0
    failed_requests: int = 0
    time_spent_fetching: float = 0.0  # ms
    pruned_nodes: int = 0
    bytes_processed: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time


class CrawlerScheduler:
    """
    Drives the traversal: validates and deduplicates nodes, keeps the
    frontier on disk, bounds the number of in-flight requests and collects
    statistics.

    Everything runs on one asyncio event loop. In concurrent mode a visit
    is started as a task and the driving loop moves on; the outstanding
    request counter is raised before the task exists and lowered in a
    ``finally`` block once the fetch settles.

    Construction calls ``storage.initialize()``, which wipes the storage
    directory the first time a given StorageManager is initialized. When
    no ``storage`` is passed a fresh manager is built from the config, so
    two schedulers created that way over the same directory clear each
    other's files. Build the StorageManager once per session and pass it
    in. Each directory holds one scheduler's state.
    """

    def __init__(self, config: Config,
                 storage: Optional[StorageManager] = None,
                 fetcher: Optional[WebFetcher] = None,
                 link_extractor: Optional[LinkExtractor] = None):
        validate_crawler_config(config.crawler)

        self.config = config
        self.cfg = config.crawler
        self.logger = logging.getLogger(__name__)
        self.hostname_pattern = compile_hostname_regex(self.cfg.hostname_regex)

        if storage is None:
            storage = StorageManager(config.storage.directory)
        storage.initialize()
        self.storage = storage

        # Storage
        self.visited_pages = DedupSet("visited_pages", storage)
        self.visited_domains = DedupSet("visited_domains", storage)
        self.rejected_pages = DedupSet("rejected_pages", storage)
        self.nodes = URLFrontier("node_queue", storage)

        # Collaborators
        self.fetcher = fetcher or WebFetcher(
            user_agent=self.cfg.user_agent,
            request_timeout=self.cfg.request_timeout
        )
        self.link_extractor = link_extractor or create_link_extractor(self.cfg.use_deep_parser)

        # Events
        self.on_visit_page: EventManager[Callable[[str, str], None]] = EventManager("visit_page")
        self.on_visit_new_domain: EventManager[Callable[[str], None]] = EventManager("visit_new_domain")
        self.on_process_node: EventManager[Callable[[str], None]] = EventManager("process_node")

        # Crawl state
        self.stats = CrawlStats(start_time=time.time())
        self.processing_in_progress = 0
        self.is_running = False
        self._visit_tasks: Set[asyncio.Task] = set()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Open the transport session."""
        await self.fetcher.start()
        self.logger.info(
            f"Crawler scheduler initialized "
            f"(max_pending_requests={self.cfg.max_pending_requests}, "
            f"link_extractor={self.link_extractor.name})"
        )

    async def close(self):
        """Close the transport session. Storage files are left in place."""
        await self.fetcher.close()
        self.logger.info("Crawler scheduler closed")

    @property
    def concurrent(self) -> bool:
        return self.cfg.max_pending_requests > 1

    # -- validation ---------------------------------------------------------

    def validate_node(self, node: str) -> bool:
        """
        Check whether a node may be crawled: http(s) scheme, not yet
        visited, and inside the hostname pattern when one is configured.
        Rejections are counted here.
        """
        try:
            parts = urlsplit(node)
            hostname = parts.hostname
        except ValueError:
            parts, hostname = None, None

        if parts is None or parts.scheme not in ('http', 'https') or not hostname:
            self._prune(node, "unsupported scheme or malformed URL")
            return False

        canonical_url = urlunsplit(parts._replace(query=''))
        if self.visited_pages.has(canonical_url):
            self._prune(node, "already visited")
            return False

        if self.hostname_pattern is not None and not self.hostname_pattern.search(hostname):
            # out-of-scope URLs are only counted the first time they show up
            if self.rejected_pages.add(canonical_url):
                self._prune(node, "hostname outside crawl scope")
            return False

        return True

    def _prune(self, node: str, reason: str):
        self.stats.pruned_nodes += 1
        self.logger.debug(f"Pruned {node}: {reason}",
                          extra={'extra_fields': {'url': node, 'reason': reason}})

    def add_nodes(self, *nodes: str) -> int:
        """Validate nodes and queue the ones that pass. Returns how many were queued."""
        added_count = 0
        for node in nodes:
            if not self.validate_node(node):
                continue
            self.nodes.enqueue(node)
            added_count += 1
        return added_count

    def add_seed_urls(self) -> int:
        """Add seed URLs to the frontier."""
        added_count = self.add_nodes(*self.cfg.seed_urls)
        self.logger.info(f"Added {added_count} seed URLs to frontier")
        return added_count

    # -- traversal ----------------------------------------------------------

    async def run(self):
        """
        Crawl until the frontier is empty and no request is outstanding.

        Exceptions escaping a visit (a failing event handler, a storage
        error) end the crawl and are re-raised here.
        """
        if self.is_running:
            self.logger.warning("Crawler is already running")
            return

        self.is_running = True
        self.stats.start_time = time.time()
        stats_task = asyncio.create_task(self._stats_reporter())

        try:
            if self.concurrent:
                await self._concurrent_run()
            else:
                await self._series_run()
            self._log_final_stats()
        finally:
            self.is_running = False
            stats_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stats_task
            await self._cancel_visits()

    async def _series_run(self):
        while len(self.nodes) > 0:
            await self.visit_node(self.nodes.dequeue())

    async def _concurrent_run(self):
        cooldown = self.cfg.request_overflow_cooldown / 1000
        idle_interval = self.cfg.idle_poll_interval / 1000

        while len(self.nodes) > 0 or self.processing_in_progress > 0:
            self._raise_task_errors()

            # too many pending requests, let the in-flight fetches catch up
            if self.processing_in_progress > self.cfg.max_pending_requests:
                await asyncio.sleep(cooldown)
                continue

            if len(self.nodes) > 0:
                node = self.nodes.dequeue()
                url_info = self._begin_visit(node)
                if url_info is not None:
                    task = asyncio.create_task(self._fetch_and_process(node, *url_info))
                    self._visit_tasks.add(task)
                    task.add_done_callback(self._visit_done)

                self.on_process_node.publish(node)
                # give started fetches a chance to run
                await asyncio.sleep(0)
            else:
                self.logger.debug("Waiting for pending requests to finish...")
                await asyncio.sleep(idle_interval)

        self._raise_task_errors()

    def _visit_done(self, task: asyncio.Task):
        # failed visits stay tracked until the driving loop re-raises them
        if task.cancelled() or task.exception() is None:
            self._visit_tasks.discard(task)

    def _raise_task_errors(self):
        for task in list(self._visit_tasks):
            if task.done() and not task.cancelled() and task.exception() is not None:
                self._visit_tasks.discard(task)
                raise task.exception()

    async def _cancel_visits(self):
        if self._visit_tasks:
            for task in list(self._visit_tasks):
                task.cancel()
            await asyncio.gather(*self._visit_tasks, return_exceptions=True)
            self._visit_tasks.clear()

    async def visit_node(self, node: str):
        """Validate, fetch and process a single node."""
        url_info = self._begin_visit(node)
        if url_info is None:
            return
        await self._fetch_and_process(node, *url_info)

    def _begin_visit(self, node: str) -> Optional[Tuple[str, str]]:
        """
        Synchronous first half of a visit: re-validate, mark the page and
        domain as visited, and reserve an outstanding request slot.
        """
        if not self.validate_node(node):
            return None

        canonical_url, hostname = parse_url(node)
        self.visited_pages.add(canonical_url)

        if self.visited_domains.add(hostname):
            self.logger.info(f"Discovered new domain: {hostname}")
            self.on_visit_new_domain.publish(hostname)

        self.processing_in_progress += 1
        return canonical_url, hostname

    async def _fetch_and_process(self, node: str, canonical_url: str, hostname: str):
        """Second half of a visit; releases the slot taken by _begin_visit()."""
        try:
            self.stats.requests += 1
            start_time = time.monotonic()
            response = await self.fetcher.fetch(node)
            delta_ms = (time.monotonic() - start_time) * 1000
        except TransportError as e:
            self.stats.failed_requests += 1
            self.logger.warning(f"Failed to fetch {node}: {e}",
                                extra={'extra_fields': {'url': node}})
            return
        finally:
            self.processing_in_progress -= 1

        self.stats.bytes_processed += len(response.content.encode('utf-8'))
        self.stats.time_spent_fetching += delta_ms

        if response.content_type.mime_type == "text/html":
            self.on_visit_page.publish(canonical_url, response.content)
            self.process_html(response.content, canonical_url)

        if not response.ok:
            self.stats.non_ok_requests += 1
            self.logger.debug(f"Non-OK response {response.status_code} from {node}")

    def process_html(self, html_content: str, parent_url: str) -> int:
        """Queue the links found in a page, resolved against the page URL."""
        resolved = []
        for raw_link in self.link_extractor.extract_links(html_content):
            try:
                resolved.append(urljoin(parent_url, raw_link))
            except ValueError:
                continue

        added_count = self.add_nodes(*resolved)
        self.logger.debug(f"Queued {added_count} of {len(resolved)} links from {parent_url}")
        return added_count

    # -- statistics ---------------------------------------------------------

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        requests = self.stats.requests
        return {
            'visited_pages': len(self.visited_pages),
            'visited_domains': len(self.visited_domains),
            'nodes': len(self.nodes),
            'in_progress': self.processing_in_progress,
            'storage_size': (
                self.visited_pages.data_usage
                + self.visited_domains.data_usage
                + self.rejected_pages.data_usage
                + self.nodes.data_usage
            ),
            'fetch_fail_rate': self.stats.failed_requests / requests if requests else 0.0,
            'average_fetch_time': self.stats.time_spent_fetching / requests if requests else 0.0,
            'pruned_nodes': self.stats.pruned_nodes,
            'bytes_processed': self.stats.bytes_processed,
            'requests': requests,
            'non_ok_requests': self.stats.non_ok_requests,
            'failed_requests': self.stats.failed_requests,
        }

    async def _stats_reporter(self):
        """Periodically log crawl statistics."""
        while self.is_running:
            await asyncio.sleep(self.cfg.stats_interval)
            self._log_current_stats()

    def _log_current_stats(self):
        stats = self.get_stats()
        self.logger.info(
            f"Crawl Progress: "
            f"Visited={stats['visited_pages']}, "
            f"Domains={stats['visited_domains']}, "
            f"Queued={stats['nodes']}, "
            f"Pending={stats['in_progress']}, "
            f"Pruned={stats['pruned_nodes']}, "
            f"FailRate={stats['fetch_fail_rate'] * 100:.1f}%, "
            f"AvgTime={stats['average_fetch_time']:.0f}ms"
        )

    def _log_final_stats(self):
        stats = self.get_stats()
        self.logger.info("=== CRAWL COMPLETED ===")
        self.logger.info(f"Pages visited: {stats['visited_pages']}")
        self.logger.info(f"Domains visited: {stats['visited_domains']}")
        self.logger.info(f"Requests: {stats['requests']} "
                         f"(failed={stats['failed_requests']}, non-OK={stats['non_ok_requests']})")
        self.logger.info(f"Pruned nodes: {stats['pruned_nodes']}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.info(f"Data processed: {stats['bytes_processed'] / 1024 / 1024:.1f} MB")
        self.logger.info(f"Storage on disk: {self.storage.disk_usage() / 1024 / 1024:.1f} MB")
