"""
Web page fetcher: issues one GET per call over a shared aiohttp session.
"""

import asyncio
import aiohttp
import logging
import time
from typing import Optional
from dataclasses import dataclass
from aiohttp import ClientSession, ClientTimeout, ClientError

from ..utils.config import DEFAULT_USER_AGENT

DEFAULT_CHARSET = "utf-8"


class TransportError(Exception):
    """Raised when a request fails at the connection or protocol level."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


@dataclass
class ContentType:
    """Parsed Content-Type response header."""
    mime_type: str
    charset: str = DEFAULT_CHARSET


@dataclass
class FetchResult:
    """Result of a successful fetch operation."""
    url: str
    status_code: int
    ok: bool
    content: str
    content_type: ContentType
    fetch_time: float = 0.0


def parse_content_type(header: Optional[str]) -> ContentType:
    """
    Split a Content-Type header into its mime type and charset.

    The charset parameter is matched case-insensitively and lower-cased;
    it defaults to utf-8 when the header does not name one.
    """
    if not header:
        return ContentType(mime_type="")

    parts = header.split(';')
    mime_type = parts[0].strip().lower()
    charset = DEFAULT_CHARSET

    for param in parts[1:]:
        param = param.strip()
        if param.lower().startswith('charset='):
            value = param[len('charset='):].strip().strip('"\'').lower()
            if value:
                charset = value

    return ContentType(mime_type=mime_type, charset=charset)


def decode_body(body: bytes, charset: str) -> str:
    """Decode a response body, falling back to common encodings."""
    try:
        return body.decode(charset)
    except (UnicodeDecodeError, LookupError):
        for fallback_encoding in ['utf-8', 'latin-1', 'cp1252']:
            try:
                return body.decode(fallback_encoding)
            except UnicodeDecodeError:
                continue

        # If all else fails, decode with errors ignored
        return body.decode('utf-8', errors='ignore')


class WebFetcher:
    """
    Fetches web pages over a single aiohttp session.

    Concurrency is left entirely to the caller; the fetcher itself never
    queues or limits requests.
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, request_timeout: int = 30):
        self.user_agent = user_agent
        self.request_timeout = request_timeout

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=0,
                    ttl_dns_cache=300,
                    use_dns_cache=True
                )
            )
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult with the status, decoded body and content type

        Raises:
            TransportError: the request could not be completed
        """
        if self.session is None:
            await self.start()

        start_time = time.monotonic()

        try:
            async with self.session.get(url) as response:
                content_type = parse_content_type(response.headers.get('Content-Type'))
                body = await response.read()
                content = decode_body(body, content_type.charset)

                result = FetchResult(
                    url=url,
                    status_code=response.status,
                    ok=200 <= response.status < 300,
                    content=content,
                    content_type=content_type,
                    fetch_time=time.monotonic() - start_time
                )

                self.logger.debug(f"Fetched {url}: {response.status} ({len(body)} bytes)")
                return result

        except asyncio.TimeoutError as e:
            raise TransportError(url, "Request timeout") from e

        except ClientError as e:
            raise TransportError(url, f"Client error: {e}") from e
