"""
The crawl policy of a news website: which URLs to visit, how to turn a
visited page into an article, and where to store it.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol, Union

from bs4 import BeautifulSoup

from newscrawler.core.config import WebsiteConfig
from newscrawler.crawler.base import UrlContext
from newscrawler.crawler.cleaner import ContentSanitizer
from newscrawler.crawler.errors import CrawlFailure, CrawlerError, FieldExtractionError, StorageError
from newscrawler.crawler.filters import EnqueueFilter, VisitedSet
from newscrawler.crawler.parser import ArticleExtractor, ExtractedArticle

logger = logging.getLogger(__name__)


class ArticleStore(Protocol):
    async def save_article(
        self,
        website_id: str,
        url: str,
        title: str,
        description: Optional[str],
        content: str,
        author: Optional[str],
        date: datetime,
    ) -> bool:
        ...


class ArticlePolicy:
    """
    CrawlPolicy of a news website.

    Failures are never raised to the engine: they are handed to the
    report callback and the page is skipped.
    """

    def __init__(
        self,
        website: WebsiteConfig,
        store: ArticleStore,
        visited: VisitedSet,
        report: Callable[[CrawlFailure], None],
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        sanitizer: Optional[ContentSanitizer] = None,
    ):
        self.website = website
        self.store = store
        self.report = report
        self.log = log or logger
        self.filter = EnqueueFilter(website, visited)
        self.extractor = ArticleExtractor(website.selectors, website.date_format, self.log)
        self.sanitizer = sanitizer or ContentSanitizer()
        self.articles_saved = 0
        self.duplicates_skipped = 0

    def should_enqueue(self, ctx: UrlContext, is_visited: bool) -> bool:
        return self.filter.should_enqueue(ctx, is_visited)

    def extract_article(self, ctx: UrlContext, document: BeautifulSoup) -> Optional[ExtractedArticle]:
        """
        Extract and sanitize the article on a page, if there is one.

        Returns:
            The article, or None if the page isn't an article or one of its
            fields couldn't be extracted
        """
        try:
            match = self.extractor.extract(document, ctx.url)
        except FieldExtractionError as e:
            self.on_failure(CrawlFailure.from_exception(e, ctx.url))
            return None

        if match is None:
            return None

        def rewrite_failed(error: CrawlerError) -> None:
            self.on_failure(CrawlFailure.from_exception(error, ctx.url))

        content = self.sanitizer.sanitize(
            match.content,
            ctx.document_url,
            thumbnail=match.thumbnail,
            on_error=rewrite_failed,
        )

        return ExtractedArticle(
            website=self.website.identifier,
            url=ctx.url,
            title=match.title,
            content=content,
            date=match.date,
            description=match.description,
            author=match.author,
        )

    async def save_article(self, ctx: UrlContext, article: ExtractedArticle) -> None:
        self.log.info(f"Saving article (title={article.title!r}, date={article.date.isoformat()})")
        try:
            saved = await self.store.save_article(
                article.website,
                article.url,
                article.title,
                article.description,
                article.content,
                article.author,
                article.date,
            )
        except StorageError as e:
            self.on_failure(CrawlFailure.from_exception(e, ctx.url))
            return

        if saved:
            self.articles_saved += 1
        else:
            self.duplicates_skipped += 1
            self.log.debug(f"Article {article.url} was already stored")

    def on_failure(self, failure: CrawlFailure) -> None:
        self.report(failure)
