"""
Disk-backed Web Crawler

A web crawler that keeps its visited sets and pending frontier on disk,
so a crawl can grow past the memory available to the process.
"""

__version__ = "1.0.0"
__description__ = "A web crawler with out-of-core deduplication and frontier storage"
