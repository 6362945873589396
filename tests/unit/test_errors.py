"""
Unit tests for crawl failures.
"""
from newscrawler.crawler.errors import (
    CrawlFailure,
    FailureKind,
    FetchError,
    StorageError,
)


class TestCrawlFailureMessage:
    """Tests for the four message formats of CrawlFailure."""

    def test_no_url_no_cause(self):
        failure = CrawlFailure(kind=FailureKind.STORAGE)
        assert failure.message == "unknown storage error"

    def test_cause_only(self):
        failure = CrawlFailure(kind=FailureKind.STORAGE, cause=StorageError("disk full"))
        assert failure.message == "storage error: disk full"

    def test_url_only(self):
        failure = CrawlFailure(kind=FailureKind.PARSE, url="http://x.tld/a")
        assert failure.message == "unknown parse error on http://x.tld/a"

    def test_url_and_cause(self):
        failure = CrawlFailure(
            kind=FailureKind.FIELD_EXTRACTION,
            url="http://x.tld/a",
            cause=ValueError("bad date"),
        )
        assert failure.message == "field extraction error on http://x.tld/a: bad date"
        assert str(failure) == failure.message


class TestFromException:
    """Tests for CrawlFailure.from_exception."""

    def test_kind_taken_from_crawler_error(self):
        failure = CrawlFailure.from_exception(FetchError("HTTP 500", status_code=500), url="http://x.tld/")
        assert failure.kind == FailureKind.FETCH
        assert failure.cause.status_code == 500

    def test_other_exceptions_are_parse_failures(self):
        failure = CrawlFailure.from_exception(RuntimeError("boom"))
        assert failure.kind == FailureKind.PARSE
        assert failure.url is None
