"""
Monitoring and metrics collection for the web crawler system.
"""

import time
import logging
from typing import Dict, Optional, Any, List

from prometheus_client import Counter, Gauge, CollectorRegistry
from prometheus_client import start_http_server


def size_descriptor(size: float) -> str:
    """Render a byte count with a binary unit."""
    k = 1024
    if size >= k ** 3:
        return f"{size / k ** 3:.1f} GiB"
    if size >= k ** 2:
        return f"{size / k ** 2:.1f} MiB"
    if size >= k:
        return f"{size / k:.1f} KiB"
    return f"{int(size)} bytes"


def format_stats(stats: Dict[str, Any]) -> str:
    """Build the statistics block shown on the console during a crawl."""
    lines: List[str] = [
        "====== Statistics ======",
        f" visited pages:      {stats['visited_pages']}",
        f" visited domains:    {stats['visited_domains']}",
        f" current nodes:      {stats['nodes']}",
        f" pending reqs:       {stats['in_progress']}",
        f" data usage:         {size_descriptor(stats['storage_size'])}",
        f" fetch success rate: {(1 - stats['fetch_fail_rate']) * 100:.1f}%",
        f" avg. request time:  {int(stats['average_fetch_time'])}ms",
        f" pruned nodes:       {stats['pruned_nodes']}",
        f" data processed:     {size_descriptor(stats['bytes_processed'])}",
        "========================",
    ]
    return "\n".join(lines)


# Gauges mirrored from CrawlerScheduler.get_stats()
STAT_GAUGES = {
    'visited_pages': 'Number of distinct pages visited',
    'visited_domains': 'Number of distinct hostnames visited',
    'nodes': 'Number of nodes waiting in the frontier',
    'in_progress': 'Number of outstanding requests',
    'storage_size': 'Bytes held in session storage records',
    'fetch_fail_rate': 'Failed requests divided by requests issued',
    'average_fetch_time': 'Average fetch time in milliseconds',
    'pruned_nodes': 'Number of nodes rejected by validation',
    'bytes_processed': 'Total response bytes processed',
}


class MetricsCollector:
    """Holds the crawler's Prometheus metrics in a private registry."""

    def __init__(self, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.prometheus_port = prometheus_port
        self.registry = CollectorRegistry()

        self.counters = {
            'pages_visited': Counter(
                'crawler_pages_visited_total',
                'Total number of HTML pages visited',
                registry=self.registry
            ),
            'domains_discovered': Counter(
                'crawler_domains_discovered_total',
                'Total number of new domains discovered',
                registry=self.registry
            ),
            'nodes_processed': Counter(
                'crawler_nodes_processed_total',
                'Total number of nodes taken off the frontier',
                registry=self.registry
            ),
        }

        self.gauges = {
            name: Gauge(f'crawler_{name}', description, registry=self.registry)
            for name, description in STAT_GAUGES.items()
        }

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        start_http_server(self.prometheus_port, registry=self.registry)
        self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")

    def increment(self, name: str):
        self.counters[name].inc()

    def set_gauges(self, stats: Dict[str, Any]):
        for name, gauge in self.gauges.items():
            if name in stats:
                gauge.set(stats[name])

    def get_value(self, name: str) -> Optional[float]:
        return self.registry.get_sample_value(name)


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: MetricsCollector, min_update_interval: float = 1.0):
        self.metrics = metrics_collector
        self.logger = logging.getLogger(__name__)
        self.start_time = time.time()
        self.min_update_interval = min_update_interval
        self.scheduler = None
        self._subscriptions = []
        self._last_update = 0.0

    def attach(self, scheduler):
        """Subscribe to a scheduler's events."""
        self.scheduler = scheduler
        self._subscriptions = [
            scheduler.on_visit_page.subscribe(self.record_page_visited),
            scheduler.on_visit_new_domain.subscribe(self.record_new_domain),
            scheduler.on_process_node.subscribe(self.record_node_processed),
        ]

    def detach(self):
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.scheduler = None

    def record_page_visited(self, url: str, html_content: str):
        self.metrics.increment('pages_visited')

    def record_new_domain(self, hostname: str):
        self.metrics.increment('domains_discovered')

    def record_node_processed(self, node: str):
        self.metrics.increment('nodes_processed')
        if time.time() - self._last_update >= self.min_update_interval:
            self.update_from_stats()

    def update_from_stats(self):
        """Refresh gauges from the attached scheduler's statistics."""
        if self.scheduler is None:
            return
        self.metrics.set_gauges(self.scheduler.get_stats())
        self._last_update = time.time()

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        runtime = time.time() - self.start_time
        pages = self.metrics.get_value('crawler_pages_visited_total') or 0
        return {
            'runtime_seconds': runtime,
            'pages_visited': pages,
            'domains_discovered': self.metrics.get_value('crawler_domains_discovered_total') or 0,
            'nodes_processed': self.metrics.get_value('crawler_nodes_processed_total') or 0,
            'pages_per_minute': pages / (runtime / 60) if runtime > 0 else 0,
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Build a monitor, starting the metrics HTTP endpoint when enabled."""
    metrics_collector = MetricsCollector(prometheus_port)
    if enable_prometheus:
        metrics_collector.start_prometheus_server()
    return CrawlerMonitor(metrics_collector)
