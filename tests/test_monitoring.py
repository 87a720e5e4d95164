"""Tests for metrics collection and statistics formatting."""

from diskcrawl.utils.monitoring import (
    CrawlerMonitor, MetricsCollector, format_stats, initialize_monitoring, size_descriptor
)

from .helpers import html_response

SEED = "https://ex.com/a"


class TestSizeDescriptor:
    """Tests for human-readable byte counts."""

    def test_units(self):
        assert size_descriptor(0) == "0 bytes"
        assert size_descriptor(1023) == "1023 bytes"
        assert size_descriptor(1024) == "1.0 KiB"
        assert size_descriptor(1536) == "1.5 KiB"
        assert size_descriptor(5 * 1024 ** 2) == "5.0 MiB"
        assert size_descriptor(2 * 1024 ** 3) == "2.0 GiB"


class TestFormatStats:
    """Tests for the console statistics block."""

    def test_contains_every_figure(self):
        text = format_stats({
            'visited_pages': 12,
            'visited_domains': 3,
            'nodes': 40,
            'in_progress': 5,
            'storage_size': 2048,
            'fetch_fail_rate': 0.25,
            'average_fetch_time': 123.9,
            'pruned_nodes': 7,
            'bytes_processed': 3 * 1024 ** 2,
        })

        assert "visited pages:      12" in text
        assert "visited domains:    3" in text
        assert "current nodes:      40" in text
        assert "pending reqs:       5" in text
        assert "data usage:         2.0 KiB" in text
        assert "fetch success rate: 75.0%" in text
        assert "avg. request time:  123ms" in text
        assert "pruned nodes:       7" in text
        assert "data processed:     3.0 MiB" in text

    def test_formats_scheduler_stats(self, make_scheduler):
        text = format_stats(make_scheduler().get_stats())
        assert text.startswith("====== Statistics ======")


class TestMetricsCollector:
    """Tests for the Prometheus-backed collector."""

    def test_collectors_are_independent(self):
        first, second = MetricsCollector(), MetricsCollector()
        first.increment('pages_visited')
        assert first.get_value('crawler_pages_visited_total') == 1
        assert second.get_value('crawler_pages_visited_total') == 0

    def test_set_gauges(self):
        metrics = MetricsCollector()
        metrics.set_gauges({'nodes': 17, 'in_progress': 2, 'unrelated': 5})
        assert metrics.get_value('crawler_nodes') == 17
        assert metrics.get_value('crawler_in_progress') == 2


class TestCrawlerMonitor:
    """Tests for wiring the monitor to scheduler events."""

    async def test_counts_scheduler_events(self, make_scheduler, fake_fetcher):
        fake_fetcher.pages = {SEED: html_response(SEED, '<a href="/b">b</a>')}
        scheduler = make_scheduler(max_pending_requests=2, request_overflow_cooldown=1,
                                   idle_poll_interval=1)
        monitor = initialize_monitoring()
        monitor.attach(scheduler)
        scheduler.add_nodes(SEED)

        await scheduler.run()
        monitor.update_from_stats()
        summary = monitor.get_summary()

        assert summary['pages_visited'] == 1
        assert summary['domains_discovered'] == 1
        assert summary['nodes_processed'] == 2
        assert monitor.metrics.get_value('crawler_visited_pages') == 2
        assert monitor.metrics.get_value('crawler_nodes') == 0

    def test_detach(self, make_scheduler):
        scheduler = make_scheduler()
        monitor = CrawlerMonitor(MetricsCollector())
        monitor.attach(scheduler)
        assert len(scheduler.on_visit_page) == 1

        monitor.detach()

        assert len(scheduler.on_visit_page) == 0
        assert len(scheduler.on_visit_new_domain) == 0
        assert len(scheduler.on_process_node) == 0
        monitor.update_from_stats()
