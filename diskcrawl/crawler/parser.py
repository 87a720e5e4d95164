"""
Link extraction strategies.

Both strategies return raw attribute values exactly as they appear in the
page; turning them into absolute URLs is up to the caller.
"""

import re
import logging
from typing import List
from bs4 import BeautifulSoup


class LinkExtractor:
    """Base class for link extraction strategies."""

    name = "base"

    def extract_links(self, html_content: str) -> List[str]:
        """Return the raw, possibly relative links found in an HTML document."""
        raise NotImplementedError


class RegexLinkExtractor(LinkExtractor):
    """
    Lightweight strategy: pulls anchor href values out of the raw text
    with a regular expression. No DOM is built, so links inside comments
    or scripts are picked up too.
    """

    name = "regex"

    href_pattern = re.compile(r'''href\s*=\s*["']([^"'\s]{2,})["']''', re.IGNORECASE)

    def extract_links(self, html_content: str) -> List[str]:
        return self.href_pattern.findall(html_content)


class DOMLinkExtractor(LinkExtractor):
    """
    Full strategy: parses the document with BeautifulSoup (lxml) and
    returns every <a href> followed by every <script src>.
    """

    name = "dom"

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def extract_links(self, html_content: str) -> List[str]:
        soup = BeautifulSoup(html_content, 'lxml')

        hrefs = [a['href'].strip() for a in soup.find_all('a', href=True)]
        srcs = [script['src'].strip() for script in soup.find_all('script', src=True)]

        self.logger.debug(f"Extracted {len(hrefs)} anchors and {len(srcs)} scripts")
        return hrefs + srcs


def create_link_extractor(use_deep_parser: bool) -> LinkExtractor:
    """Pick the extraction strategy once, at construction time."""
    if use_deep_parser:
        return DOMLinkExtractor()
    return RegexLinkExtractor()
