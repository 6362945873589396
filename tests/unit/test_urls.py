"""
Unit tests for URL canonicalization and resolution.
"""
import pytest

from newscrawler.core.config import QueryPolicy
from newscrawler.crawler.errors import ContentRewriteError, FailureKind
from newscrawler.crawler.urls import canonicalize_url, resolve_url


class TestCanonicalizeUrl:
    """Tests for canonicalize_url."""

    def test_fragment_removed_without_policy(self):
        assert canonicalize_url("http://x/news?item=1#top") == "http://x/news?item=1"

    def test_query_untouched_without_policy(self):
        assert canonicalize_url("http://x/news?b=2&a=1") == "http://x/news?b=2&a=1"

    def test_ignore_all_keeps_exceptions(self):
        policy = QueryPolicy(ignore_all=True, except_=["item"])
        assert canonicalize_url("http://x/news?item=1&ref=2", policy) == "http://x/news?item=1"

    def test_ignore_all_without_exceptions_removes_query(self):
        policy = QueryPolicy(ignore_all=True)
        assert canonicalize_url("http://x/news?item=1", policy) == "http://x/news"

    def test_keep_all_drops_exceptions(self):
        policy = QueryPolicy(ignore_all=False, except_=["utm_source", "ref"])
        result = canonicalize_url("http://x/news?utm_source=feed&id=4&ref=home", policy)
        assert result == "http://x/news?id=4"

    def test_keep_all_without_exceptions_leaves_query(self):
        policy = QueryPolicy(ignore_all=False)
        assert canonicalize_url("http://x/news?b=2&a=1#c", policy) == "http://x/news?b=2&a=1"

    def test_surviving_keys_are_sorted(self):
        policy = QueryPolicy(ignore_all=True, except_=["page", "item"])
        result = canonicalize_url("http://x/news?page=3&ref=1&item=9", policy)
        assert result == "http://x/news?item=9&page=3"

    def test_repeated_key_keeps_value_order(self):
        policy = QueryPolicy(ignore_all=True, except_=["tag"])
        result = canonicalize_url("http://x/?tag=b&x=1&tag=a", policy)
        assert result == "http://x/?tag=b&tag=a"

    def test_empty_query_drops_question_mark(self):
        policy = QueryPolicy(ignore_all=True, except_=["item"])
        assert canonicalize_url("http://x/news?ref=2", policy) == "http://x/news"

    @pytest.mark.parametrize("url", [
        "http://x/news?item=1&ref=2#frag",
        "http://x/a%20b?q=hello+world&item=",
        "https://x.tld/path/?item=%C3%A9&z=1",
    ])
    def test_idempotent(self, url):
        policy = QueryPolicy(ignore_all=True, except_=["item", "q"])
        once = canonicalize_url(url, policy)
        assert canonicalize_url(once, policy) == once


class TestResolveUrl:
    """Tests for resolve_url."""

    def test_absolute_path(self):
        assert resolve_url("http://x.tld/news/1", "/foo") == "http://x.tld/foo"

    def test_relative_path(self):
        assert resolve_url("http://x.tld/news/1", "pic.png") == "http://x.tld/news/pic.png"

    def test_absolute_url_unchanged(self):
        assert resolve_url("http://x.tld/news/1", "https://cdn.tld/a.png") == "https://cdn.tld/a.png"

    def test_malformed_url_raises(self):
        with pytest.raises(ContentRewriteError) as exc_info:
            resolve_url("http://x.tld/news/1", "http://[::1/broken")
        assert exc_info.value.kind == FailureKind.CONTENT_REWRITE
