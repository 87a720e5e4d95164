"""Tests for the link extraction strategies."""

from diskcrawl.crawler.parser import (
    DOMLinkExtractor, RegexLinkExtractor, create_link_extractor
)

PAGE = """
<html>
  <head><script src="/static/app.js"></script></head>
  <body>
    <a href="/about">About</a>
    <a href='https://other.com/x?y=1'>Other</a>
    <a href="#">Top</a>
    <a name="anchor-without-href">Nothing</a>
    <script src="https://cdn.example.com/lib.js"></script>
  </body>
</html>
"""


class TestRegexLinkExtractor:
    """Tests for the pattern-based strategy."""

    def test_returns_raw_hrefs_in_order(self):
        links = RegexLinkExtractor().extract_links(PAGE)
        assert links == ["/about", "https://other.com/x?y=1"]

    def test_ignores_script_sources(self):
        links = RegexLinkExtractor().extract_links(PAGE)
        assert "/static/app.js" not in links

    def test_adjacent_anchors_without_whitespace(self):
        html = '<a href="/one">1</a><a href="/two">2</a>'
        assert RegexLinkExtractor().extract_links(html) == ["/one", "/two"]

    def test_no_links(self):
        assert RegexLinkExtractor().extract_links("<p>plain</p>") == []


class TestDOMLinkExtractor:
    """Tests for the DOM-based strategy."""

    def test_returns_anchors_then_scripts(self):
        links = DOMLinkExtractor().extract_links(PAGE)
        assert links == [
            "/about",
            "https://other.com/x?y=1",
            "#",
            "/static/app.js",
            "https://cdn.example.com/lib.js",
        ]

    def test_handles_broken_markup(self):
        links = DOMLinkExtractor().extract_links('<div><a href="/a">unclosed <p><a href="/b">')
        assert links == ["/a", "/b"]


class TestCreateLinkExtractor:
    """Tests for strategy selection."""

    def test_deep_parser_selects_dom(self):
        assert isinstance(create_link_extractor(True), DOMLinkExtractor)

    def test_default_selects_regex(self):
        assert isinstance(create_link_extractor(False), RegexLinkExtractor)
