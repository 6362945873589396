"""
Sanitization of an article's content before it is stored.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from bs4 import Tag

from newscrawler.crawler.errors import ContentRewriteError
from newscrawler.crawler.urls import resolve_url


@dataclass
class CleanerConfig:
    """Configuration for content sanitization."""
    # Elements removed from the content, along with their children
    remove_tags: List[str] = field(default_factory=lambda: ["aside", "script"])

    # (element, attribute) pairs holding URLs made absolute
    url_attributes: List[Tuple[str, str]] = field(default_factory=lambda: [
        ("a", "href"),
        ("img", "src"),
    ])


class ContentSanitizer:
    """
    Cleans an article's content node: prepends the thumbnail, removes
    non-article elements and makes relative links absolute.
    """

    def __init__(self, config: Optional[CleanerConfig] = None):
        self.config = config or CleanerConfig()

    def sanitize(
        self,
        content: Tag,
        base_url: str,
        thumbnail: Optional[Tag] = None,
        on_error: Optional[Callable[[ContentRewriteError], None]] = None,
    ) -> str:
        """
        Sanitize a content node and serialize it.

        The node is modified in place.

        Args:
            content: The article's content element
            base_url: URL of the document the content comes from
            thumbnail: Image element to put at the top of the content
            on_error: Called with each URL that couldn't be rewritten;
                sanitization carries on with the other elements

        Returns:
            The inner HTML of the content element
        """
        if thumbnail is not None:
            content.insert(0, thumbnail)

        for name in self.config.remove_tags:
            self._remove_elements(content, name)

        for name, attribute in self.config.url_attributes:
            for element in content.find_all(name, attrs={attribute: True}):
                try:
                    self._make_absolute(element, attribute, base_url)
                except ContentRewriteError as e:
                    if on_error is None:
                        raise
                    on_error(e)

        return content.decode_contents()

    def _remove_elements(self, content: Tag, name: str) -> None:
        """Remove every descendant element with the given name."""
        for element in content.find_all(name):
            # Nested matches are gone with their ancestor.
            if not element.decomposed:
                element.decompose()

    def _make_absolute(self, element: Tag, attribute: str, base_url: str) -> None:
        """Replace a possibly relative URL attribute with an absolute one."""
        element[attribute] = resolve_url(base_url, element[attribute])
