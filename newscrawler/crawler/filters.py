"""
Enqueue filtering: decides which discovered URLs are worth fetching.
"""
from typing import Iterable, Iterator, Optional, Protocol, Set

from newscrawler.core.config import QueryPolicy, UrlFilters, WebsiteConfig
from newscrawler.crawler.base import UrlContext
from newscrawler.crawler.urls import canonicalize_url


class VisitedSet:
    """
    Canonical URLs of the articles already stored for a website.
    Read-only once loaded.
    """

    def __init__(self, urls: Iterable[str] = (), policy: Optional[QueryPolicy] = None):
        self._urls = frozenset(canonicalize_url(url, policy) for url in urls)

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)


class ArticleURLSource(Protocol):
    async def retrieve_article_urls_for_website(self, identifier: str) -> Set[str]:
        ...


async def load_visited_set(source: ArticleURLSource, website: WebsiteConfig) -> VisitedSet:
    """
    Load the URLs of a website's stored articles.

    Raises:
        StorageError: If the store can't be queried
    """
    urls = await source.retrieve_article_urls_for_website(website.identifier)
    return VisitedSet(urls, website.query)


class EnqueueFilter:
    """
    Tells whether a URL should be enqueued, according to whether it was
    already visited in the current crawl, matches an article already
    stored, and passes the website's restrict and exclude filters.
    """

    def __init__(self, website: WebsiteConfig, visited: Optional[VisitedSet] = None):
        self.website = website
        self.visited = visited if visited is not None else VisitedSet()
        self.filters = website.filters or UrlFilters()

    def canonicalize(self, url: str) -> str:
        return canonicalize_url(url, self.website.query)

    def matches_restrict(self, url: str) -> bool:
        if self.filters.restrict is None:
            return True
        return self.filters.restrict.search(url) is not None

    def matches_exclude(self, url: str) -> bool:
        if self.filters.exclude is None:
            return False
        return self.filters.exclude.search(url) is not None

    def should_enqueue(self, ctx: UrlContext, is_visited: bool) -> bool:
        """
        Canonicalize the context's URL in place, then check it.

        Args:
            ctx: The URL's context, shared with the rest of the crawl
            is_visited: Whether the engine already visited the URL in this run

        Returns:
            True if the URL should be fetched
        """
        ctx.url = self.canonicalize(ctx.url)

        if is_visited:
            return False
        if ctx.url in self.visited:
            return False
        if not self.matches_restrict(ctx.url):
            return False
        if self.matches_exclude(ctx.url):
            return False
        return True
