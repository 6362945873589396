"""
Failure taxonomy shared by the crawl pipeline and its workers.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Stage of the pipeline a failure was raised from."""
    FETCH = "fetch"
    PARSE = "parse"
    FIELD_EXTRACTION = "field extraction"
    CONTENT_REWRITE = "content rewrite"
    STORAGE = "storage"


class CrawlerError(Exception):
    """Base class for errors raised by the crawler."""
    kind: FailureKind = FailureKind.PARSE


class FetchError(CrawlerError):
    """A page couldn't be retrieved."""
    kind = FailureKind.FETCH

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FieldExtractionError(CrawlerError):
    """A field of an article page couldn't be extracted or parsed."""
    kind = FailureKind.FIELD_EXTRACTION


class ContentRewriteError(CrawlerError):
    """A link or image URL in an article's content couldn't be rewritten."""
    kind = FailureKind.CONTENT_REWRITE


class StorageError(CrawlerError):
    """The article store couldn't be read or written."""
    kind = FailureKind.STORAGE


@dataclass(frozen=True)
class CrawlFailure:
    """A single problem reported by a worker."""
    kind: FailureKind
    url: Optional[str] = None
    cause: Optional[BaseException] = None
    occurred_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_exception(cls, exc: BaseException, url: Optional[str] = None) -> "CrawlFailure":
        kind = getattr(exc, "kind", FailureKind.PARSE)
        return cls(kind=kind, url=url, cause=exc)

    @property
    def message(self) -> str:
        kind = self.kind.value
        if self.url is None:
            if self.cause is None:
                return f"unknown {kind} error"
            return f"{kind} error: {self.cause}"
        if self.cause is None:
            return f"unknown {kind} error on {self.url}"
        return f"{kind} error on {self.url}: {self.cause}"

    def __str__(self) -> str:
        return self.message
