"""
Persistence gateway for articles.
"""
import logging
from datetime import datetime
from typing import Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from newscrawler.core.database import Database
from newscrawler.crawler.errors import StorageError
from newscrawler.models.article import Article

logger = logging.getLogger(__name__)


class ArticleGateway:
    """
    Reads and writes articles in the database.

    Every call uses its own session, so the gateway can be shared by
    workers running concurrently.
    """

    def __init__(self, db: Database):
        self.db = db

    async def retrieve_article_urls_for_website(self, identifier: str) -> Set[str]:
        """
        Get the URLs of every article stored for a website.

        Args:
            identifier: The website's identifier

        Returns:
            Set of URLs

        Raises:
            StorageError: If the database can't be queried
        """
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    select(Article.url).where(Article.website == identifier)
                )
                return {row[0] for row in result.fetchall()}
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"could not load article URLs for {identifier}: {e}") from e

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
        """
        Store a new article.

        Returns:
            True if the article was inserted, False if an article with the
            same URL was already stored for the website

        Raises:
            StorageError: If the article couldn't be written
        """
        article = Article(
            website=website_id,
            url=url,
            title=title,
            description=description,
            content=content,
            author=author,
            date=date,
        )
        try:
            async with self.db.session() as session:
                session.add(article)
        except IntegrityError:
            logger.debug(f"Duplicate article {url} for website {website_id}")
            return False
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"could not save article {url}: {e}") from e
        return True

    async def count_articles(self, identifier: Optional[str] = None) -> int:
        """Count stored articles, optionally for a single website."""
        query = select(func.count(Article.id))
        if identifier is not None:
            query = query.where(Article.website == identifier)
        try:
            async with self.db.session() as session:
                result = await session.execute(query)
                return result.scalar_one()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"could not count articles: {e}") from e
