"""
Article detection and field extraction from fetched pages.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Union

import soupsieve
from bs4 import BeautifulSoup, Tag

from newscrawler.core.config import SelectorSet
from newscrawler.crawler.dates import parse_date
from newscrawler.crawler.errors import FieldExtractionError

logger = logging.getLogger(__name__)

# Characters trimmed around extracted text.
_TRIM = " \t\n"


@dataclass
class ArticleMatch:
    """Nodes and fields found on a page recognized as an article."""
    content: Tag
    title: str
    date: datetime
    description: Optional[str] = None
    author: Optional[str] = None
    thumbnail: Optional[Tag] = None


@dataclass
class ExtractedArticle:
    """An article ready to be stored."""
    website: str
    url: str
    title: str
    content: str
    date: datetime
    description: Optional[str] = None
    author: Optional[str] = None


def first_text(node: Tag) -> Optional[str]:
    """Get the first non-blank text node under an element, trimmed."""
    for text in node.strings:
        trimmed = text.strip(_TRIM)
        if trimmed:
            return trimmed
    return None


class ArticleExtractor:
    """
    Recognizes article pages and extracts their fields using a website's
    CSS selectors.
    """

    def __init__(
        self,
        selectors: SelectorSet,
        date_format: str,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.selectors = selectors
        self.date_format = date_format
        self.log = log or logger

    def extract(self, document: BeautifulSoup, page_url: str = "") -> Optional[ArticleMatch]:
        """
        Extract an article from a page.

        A page is an article if exactly one node matches the content
        selector, exactly one matches the title selector, and at least one
        matches the date selector. Only the first date match is used.

        Args:
            document: The parsed page
            page_url: URL of the page, for logging

        Returns:
            ArticleMatch, or None if the page isn't an article

        Raises:
            FieldExtractionError: If a selector is malformed, a required
                field is empty or the date can't be parsed
        """
        content_nodes = self._select(document, self.selectors.content)
        title_nodes = self._select(document, self.selectors.title)
        date_nodes = self._select(document, self.selectors.date)

        if len(content_nodes) != 1 or len(title_nodes) != 1 or not date_nodes:
            self.log.debug(
                f"Current page isn't an article (content_matches={len(content_nodes)}, "
                f"title_matches={len(title_nodes)}, date_matches={len(date_nodes)}, "
                f"page_url={page_url})"
            )
            return None

        title = first_text(title_nodes[0])
        if title is None:
            raise FieldExtractionError("title element has no text")

        date_text = first_text(date_nodes[0])
        if date_text is None:
            raise FieldExtractionError("date element has no text")
        date = parse_date(date_text, self.date_format)

        return ArticleMatch(
            content=content_nodes[0],
            title=title,
            date=date,
            description=self._extract_description(document),
            author=self._extract_author(document),
            thumbnail=self._extract_thumbnail(document),
        )

    def _select(self, document: BeautifulSoup, selector: str) -> List[Tag]:
        try:
            return document.select(selector)
        except soupsieve.SelectorSyntaxError as e:
            raise FieldExtractionError(f"malformed selector {selector!r}: {e}") from e

    def _first_match(self, document: BeautifulSoup, selector: Optional[str]) -> Optional[Tag]:
        if not selector:
            return None
        try:
            return document.select_one(selector)
        except soupsieve.SelectorSyntaxError as e:
            raise FieldExtractionError(f"malformed selector {selector!r}: {e}") from e

    def _extract_description(self, document: BeautifulSoup) -> Optional[str]:
        node = self._first_match(document, self.selectors.description)
        if node is None:
            return None
        return first_text(node)

    def _extract_author(self, document: BeautifulSoup) -> Optional[str]:
        node = self._first_match(document, self.selectors.author)
        if node is None:
            return None

        # The author's name is sometimes wrapped in a link to their page.
        first_child = next((c for c in node.children if not _is_blank(c)), None)
        if isinstance(first_child, Tag) and first_child.name == "a":
            node = first_child
        return first_text(node)

    def _extract_thumbnail(self, document: BeautifulSoup) -> Optional[Tag]:
        node = self._first_match(document, self.selectors.thumbnail)
        if node is None or node.name != "img":
            return None
        return node


def _is_blank(node: Any) -> bool:
    return not isinstance(node, Tag) and not str(node).strip(_TRIM)
