"""Test doubles and response builders shared by the test modules."""

import asyncio
from typing import Callable, Dict, List, Optional, Union

from diskcrawl.crawler.fetcher import ContentType, FetchResult


def html_response(url: str, body: str, status: int = 200) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=status,
        ok=200 <= status < 300,
        content=body,
        content_type=ContentType("text/html", "utf-8"),
    )


def text_response(url: str, body: str = "", status: int = 200) -> FetchResult:
    return FetchResult(
        url=url,
        status_code=status,
        ok=200 <= status < 300,
        content=body,
        content_type=ContentType("text/plain", "utf-8"),
    )


class FakeFetcher:
    """Scripted transport: maps URLs to responses or exceptions to raise."""

    def __init__(self, pages: Optional[Dict[str, Union[FetchResult, Exception]]] = None,
                 delay: float = 0.0):
        self.pages = pages or {}
        self.delay = delay
        self.requested: List[str] = []
        self.on_fetch: Optional[Callable[[str], None]] = None
        self.started = False

    async def start(self):
        self.started = True

    async def close(self):
        self.started = False

    async def fetch(self, url: str) -> FetchResult:
        self.requested.append(url)
        if self.on_fetch is not None:
            self.on_fetch(url)
        if self.delay:
            await asyncio.sleep(self.delay)

        response = self.pages.get(url)
        if response is None:
            return text_response(url, "not found", status=404)
        if isinstance(response, Exception):
            raise response
        return response

