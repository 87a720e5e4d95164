"""
Web crawler core components.
"""

from .url_frontier import URLFrontier, QueueChunk
from .fetcher import WebFetcher, FetchResult, ContentType, TransportError
from .parser import LinkExtractor, RegexLinkExtractor, DOMLinkExtractor, create_link_extractor
from .events import EventManager, Subscription
from .scheduler import CrawlerScheduler, CrawlStats, canonicalize_url, parse_url

__all__ = [
    'URLFrontier', 'QueueChunk',
    'WebFetcher', 'FetchResult', 'ContentType', 'TransportError',
    'LinkExtractor', 'RegexLinkExtractor', 'DOMLinkExtractor', 'create_link_extractor',
    'EventManager', 'Subscription',
    'CrawlerScheduler', 'CrawlStats', 'canonicalize_url', 'parse_url'
]
