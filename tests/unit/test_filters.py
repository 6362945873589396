"""
Unit tests for the visited set and the enqueue filter.
"""
from unittest.mock import AsyncMock

import pytest

from newscrawler.core.config import QueryPolicy, SelectorSet, UrlFilters, WebsiteConfig
from newscrawler.crawler.base import UrlContext
from newscrawler.crawler.errors import StorageError
from newscrawler.crawler.filters import EnqueueFilter, VisitedSet, load_visited_set


def _website(**overrides) -> WebsiteConfig:
    data = {
        "identifier": "acmenews",
        "start_point": "http://x/",
        "selectors": SelectorSet(title="h1", content="#content", date="time"),
        "date_format": "{MONTH_NUM}-{DAY_NUM}-{YEAR_LONG}",
    }
    data.update(overrides)
    return WebsiteConfig(**data)


@pytest.fixture
def website():
    return _website(
        query=QueryPolicy(ignore_all=True, except_=["item"]),
        filters=UrlFilters(restrict="^http://x/news", exclude="^http://x/news/sport"),
    )


class TestVisitedSet:
    """Tests for VisitedSet."""

    def test_urls_are_canonicalized(self):
        visited = VisitedSet(
            ["http://x/news?item=1&ref=a#top"],
            QueryPolicy(ignore_all=True, except_=["item"]),
        )
        assert "http://x/news?item=1" in visited
        assert len(visited) == 1

    def test_empty(self):
        visited = VisitedSet()
        assert "http://x/" not in visited
        assert list(visited) == []


class TestLoadVisitedSet:
    """Tests for load_visited_set."""

    @pytest.mark.asyncio
    async def test_loads_website_urls(self, website):
        source = AsyncMock()
        source.retrieve_article_urls_for_website.return_value = {"http://x/news?item=1#a"}

        visited = await load_visited_set(source, website)

        source.retrieve_article_urls_for_website.assert_awaited_once_with("acmenews")
        assert "http://x/news?item=1" in visited

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, website):
        source = AsyncMock()
        source.retrieve_article_urls_for_website.side_effect = StorageError("connection refused")

        with pytest.raises(StorageError):
            await load_visited_set(source, website)


class TestEnqueueFilter:
    """Tests for EnqueueFilter.should_enqueue."""

    def test_accepts_matching_url(self, website):
        ctx = UrlContext(url="http://x/news/1")
        assert EnqueueFilter(website).should_enqueue(ctx, is_visited=False)

    def test_rewrites_context_url(self, website):
        ctx = UrlContext(url="http://x/news?ref=home&item=2#comments")
        assert EnqueueFilter(website).should_enqueue(ctx, is_visited=False)
        assert ctx.url == "http://x/news?item=2"

    def test_rejects_already_visited_in_run(self, website):
        ctx = UrlContext(url="http://x/news/1")
        assert not EnqueueFilter(website).should_enqueue(ctx, is_visited=True)

    def test_rejects_stored_article(self, website):
        visited = VisitedSet(["http://x/news?item=1"], website.query)
        ctx = UrlContext(url="http://x/news?item=1&ref=feed")
        assert not EnqueueFilter(website, visited).should_enqueue(ctx, is_visited=False)

    def test_rejects_url_outside_restrict(self, website):
        ctx = UrlContext(url="http://x/about")
        assert not EnqueueFilter(website).should_enqueue(ctx, is_visited=False)

    def test_rejects_excluded_url(self, website):
        ctx = UrlContext(url="http://x/news/sport/1")
        assert not EnqueueFilter(website).should_enqueue(ctx, is_visited=False)

    def test_restrict_is_a_search(self):
        website = _website(filters=UrlFilters(restrict="/news/"))
        ctx = UrlContext(url="http://x/en/news/1")
        assert EnqueueFilter(website).should_enqueue(ctx, is_visited=False)

    def test_no_filters_accepts_everything(self):
        website = _website()
        ctx = UrlContext(url="http://x/anything?a=1#b")
        assert EnqueueFilter(website).should_enqueue(ctx, is_visited=False)
        assert ctx.url == "http://x/anything?a=1"
