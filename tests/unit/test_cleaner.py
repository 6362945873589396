"""
Unit tests for content sanitization.
"""
import pytest
from bs4 import BeautifulSoup

from newscrawler.crawler.cleaner import CleanerConfig, ContentSanitizer
from newscrawler.crawler.errors import ContentRewriteError

BASE_URL = "http://x.tld/news/1"

CONTENT_HTML = """
<div id="page">
  <img class="thumbnail" src="/img/thumb.jpg">
  <div id="content">
    <p>Hello <a href="/foo">world</a></p>
    <aside><p>Related <a href="/bar">bar</a></p><aside>nested</aside></aside>
    <script>track();</script>
    <img src="pic.png">
    <a name="anchor">no href</a>
  </div>
</div>
"""


@pytest.fixture
def soup():
    return BeautifulSoup(CONTENT_HTML, "html.parser")


@pytest.fixture
def sanitizer():
    return ContentSanitizer()


class TestContentSanitizer:
    """Tests for ContentSanitizer.sanitize."""

    def test_removes_aside_and_script(self, soup, sanitizer):
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL)

        assert "<aside" not in html
        assert "<script" not in html
        assert "Related" not in html
        assert "track()" not in html
        assert "Hello" in html

    def test_links_made_absolute(self, soup, sanitizer):
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL)
        fragment = BeautifulSoup(html, "html.parser")

        assert fragment.find("a", href=True)["href"] == "http://x.tld/foo"
        assert fragment.find("img")["src"] == "http://x.tld/news/pic.png"

    def test_anchor_without_href_left_alone(self, soup, sanitizer):
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL)
        fragment = BeautifulSoup(html, "html.parser")

        anchor = fragment.find("a", attrs={"name": "anchor"})
        assert anchor is not None
        assert not anchor.has_attr("href")

    def test_thumbnail_prepended(self, soup, sanitizer):
        thumbnail = soup.select_one("img.thumbnail")
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL, thumbnail=thumbnail)
        fragment = BeautifulSoup(html, "html.parser")

        first = next(child for child in fragment.children if child.name is not None)
        assert first.name == "img"
        assert first["src"] == "http://x.tld/img/thumb.jpg"

    def test_output_is_inner_html(self, soup, sanitizer):
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL)
        assert 'id="content"' not in html

    def test_malformed_url_reported_and_rest_rewritten(self, soup, sanitizer):
        content = soup.select_one("#content")
        content.p.a["href"] = "http://[::1/broken"
        errors = []

        html = sanitizer.sanitize(content, BASE_URL, on_error=errors.append)

        assert len(errors) == 1
        assert isinstance(errors[0], ContentRewriteError)
        assert "http://[::1/broken" in html
        assert "http://x.tld/news/pic.png" in html

    def test_malformed_url_raises_without_handler(self, soup, sanitizer):
        content = soup.select_one("#content")
        content.p.a["href"] = "http://[::1/broken"

        with pytest.raises(ContentRewriteError):
            sanitizer.sanitize(content, BASE_URL)

    def test_custom_removed_tags(self, soup):
        sanitizer = ContentSanitizer(CleanerConfig(remove_tags=["script"]))
        html = sanitizer.sanitize(soup.select_one("#content"), BASE_URL)

        assert "<aside" in html
        assert "<script" not in html
