"""
URL canonicalization and resolution.
"""
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from newscrawler.core.config import QueryPolicy
from newscrawler.crawler.errors import ContentRewriteError


def canonicalize_url(url: str, policy: Optional[QueryPolicy] = None) -> str:
    """
    Normalize a URL into the form used for deduplication and storage.

    The fragment is always removed. With a query policy, query keys are
    kept or dropped according to its exceptions, or the whole query is
    removed when every key is ignored and there is no exception.

    Args:
        url: The URL to normalize
        policy: The website's query policy, if any

    Returns:
        The canonical URL
    """
    parts = urlsplit(url)
    query = parts.query

    if policy is not None:
        if policy.exceptions:
            pairs = [
                (key, value)
                for key, value in parse_qsl(query, keep_blank_values=True)
                if not policy.drops(key)
            ]
            # Stable sort: values of a repeated key keep their order.
            pairs.sort(key=lambda pair: pair[0])
            query = urlencode(pairs)
        elif policy.ignore_all:
            query = ""

    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def resolve_url(base_url: str, target: str) -> str:
    """
    Resolve a possibly relative URL against a document's URL.

    Raises:
        ContentRewriteError: If the target URL is malformed
    """
    try:
        return urljoin(base_url, target)
    except ValueError as e:
        raise ContentRewriteError(f"malformed URL {target!r}: {e}") from e
