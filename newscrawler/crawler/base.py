"""
Crawl engine: a queue of URLs fetched by a bounded pool of coroutines,
with a crawl delay, a visit budget and retries.

What to enqueue, what to extract from fetched pages and where to store it
is decided by a CrawlPolicy injected into the engine.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Protocol, Set, Union
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from newscrawler.crawler.errors import CrawlFailure, CrawlerError, FailureKind, FetchError
from newscrawler.crawler.urls import resolve_url

logger = logging.getLogger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]


class CrawlerStatus(str, Enum):
    """Crawler status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class EngineConfig:
    """Configuration for the crawl engine of one website."""
    user_agent: str = "Mozilla/5.0 (compatible; NewsCrawler/1.0)"

    # Minimum delay between two requests, in seconds
    crawl_delay: float = 1.0

    # Maximum number of pages fetched, 0 for no limit
    max_visits: int = 0

    # Retry settings
    max_retries: int = 3
    retry_delay_seconds: float = 5.0

    # Timeout settings
    request_timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0

    # Concurrent requests
    max_concurrent_requests: int = 5

    # Only follow links pointing to the start URL's host
    same_host_only: bool = True


@dataclass
class UrlContext:
    """
    A URL travelling through the engine.

    The same instance is handed to every policy hook, so a URL rewritten
    when it is enqueued is the one fetched and stored.
    """
    url: str
    source_url: Optional[str] = None
    depth: int = 0
    # URL of the fetched document, after redirects
    final_url: Optional[str] = None

    @property
    def document_url(self) -> str:
        return self.final_url or self.url


@dataclass
class CrawlResult:
    """Result of a single fetch."""
    url: str
    success: bool
    status_code: Optional[int] = None
    content: Optional[str] = None
    content_type: Optional[str] = None
    final_url: Optional[str] = None
    error: Optional[str] = None
    crawl_time: datetime = field(default_factory=datetime.utcnow)
    response_time_ms: Optional[float] = None

    @property
    def is_html(self) -> bool:
        return not self.content_type or "html" in self.content_type.lower()


@dataclass
class CrawlStats:
    """Counters for one run of the engine."""
    enqueued: int = 0
    visited: int = 0
    fetch_errors: int = 0
    articles: int = 0


class CrawlPolicy(Protocol):
    """Decisions the engine delegates to its user."""

    def should_enqueue(self, ctx: UrlContext, is_visited: bool) -> bool:
        """Tell whether a discovered URL should be fetched."""
        ...

    def extract_article(self, ctx: UrlContext, document: BeautifulSoup) -> Optional[Any]:
        """Extract an article from a fetched page, or return None."""
        ...

    async def save_article(self, ctx: UrlContext, article: Any) -> None:
        """Store an extracted article."""
        ...

    def on_failure(self, failure: CrawlFailure) -> None:
        """Receive a failure raised while crawling."""
        ...


class CrawlDelay:
    """Enforces a minimum interval between the start of two requests."""

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds
        self._last_request: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the next request is allowed."""
        async with self._lock:
            now = time.monotonic()
            if self._last_request is not None:
                wait_time = self._last_request + self.delay_seconds - now
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
            self._last_request = time.monotonic()


class CrawlEngine:
    """
    Crawls a website starting from one URL, following links found in the
    fetched pages and handing every page to a CrawlPolicy.
    """

    def __init__(
        self,
        policy: CrawlPolicy,
        config: Optional[EngineConfig] = None,
        log: Optional[Logger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.policy = policy
        self.config = config or EngineConfig()
        self.log = log or logger
        self.crawl_delay = CrawlDelay(self.config.crawl_delay)
        self.stats = CrawlStats()
        self.consecutive_fetch_errors = 0
        self._transport = transport
        self._status = CrawlerStatus.PENDING
        self._stop_requested = False
        self._client: Optional[httpx.AsyncClient] = None
        self._queue: Optional[asyncio.Queue] = None
        self._seen: Set[str] = set()
        self._host: Optional[str] = None

    @property
    def status(self) -> CrawlerStatus:
        """Get current crawler status."""
        return self._status

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.config.connect_timeout_seconds,
                read=self.config.request_timeout_seconds,
                write=self.config.request_timeout_seconds,
                pool=self.config.request_timeout_seconds,
            ),
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            follow_redirects=True,
            transport=self._transport,
        )
        self._status = CrawlerStatus.RUNNING
        self._stop_requested = False

    async def close(self) -> None:
        """Close the crawler and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._status == CrawlerStatus.RUNNING:
            self._status = CrawlerStatus.STOPPED

    def request_stop(self) -> None:
        """Request the crawler to stop. Pages being fetched are finished."""
        self._stop_requested = True

    async def fetch(self, url: str) -> CrawlResult:
        """
        Fetch a URL with crawl delay, retries, and error handling.

        Args:
            url: The URL to fetch

        Returns:
            CrawlResult with the response or error information
        """
        if not self._client:
            raise RuntimeError("Crawler not started. Use 'async with' or call start()")

        for attempt in range(self.config.max_retries):
            retry = attempt < self.config.max_retries - 1
            try:
                await self.crawl_delay.acquire()

                start_time = time.monotonic()
                response = await self._client.get(url)
                response_time = (time.monotonic() - start_time) * 1000

                if response.status_code == 200:
                    return CrawlResult(
                        url=url,
                        success=True,
                        status_code=response.status_code,
                        content=response.text,
                        content_type=response.headers.get("content-type"),
                        final_url=str(response.url),
                        response_time_ms=response_time,
                    )

                # Server errors and throttling might go away, other statuses won't.
                if retry and (response.status_code >= 500 or response.status_code == 429):
                    await asyncio.sleep(self.config.retry_delay_seconds)
                    continue

                return CrawlResult(
                    url=url,
                    success=False,
                    status_code=response.status_code,
                    final_url=str(response.url),
                    error=f"HTTP {response.status_code}",
                    response_time_ms=response_time,
                )

            except httpx.TimeoutException as e:
                if retry:
                    await asyncio.sleep(self.config.retry_delay_seconds)
                    continue
                return CrawlResult(url=url, success=False, error=f"Timeout: {str(e)}")

            except httpx.RequestError as e:
                if retry:
                    await asyncio.sleep(self.config.retry_delay_seconds)
                    continue
                return CrawlResult(url=url, success=False, error=f"Request error: {str(e)}")

        return CrawlResult(url=url, success=False, error="Max retries exceeded")

    def extract_links(self, document: BeautifulSoup, base_url: str) -> List[str]:
        """
        Extract the absolute http(s) URLs linked from a document.

        Args:
            document: The parsed page
            base_url: URL of the page

        Returns:
            List of URLs, in document order
        """
        links = []
        for anchor in document.find_all("a", href=True):
            try:
                link = resolve_url(base_url, anchor["href"].strip())
            except CrawlerError:
                continue
            parts = urlsplit(link)
            if parts.scheme not in ("http", "https"):
                continue
            if self.config.same_host_only and parts.hostname != self._host:
                continue
            links.append(link)
        return links

    def enqueue(self, url: str, source: Optional[UrlContext] = None) -> bool:
        """
        Ask the policy whether a URL should be crawled, and queue it if so.

        Returns:
            True if the URL was queued
        """
        ctx = UrlContext(
            url=url,
            source_url=source.url if source else None,
            depth=source.depth + 1 if source else 0,
        )
        if not self.policy.should_enqueue(ctx, url in self._seen):
            return False

        # The policy may have rewritten the URL into one already queued.
        if ctx.url in self._seen:
            self._seen.add(url)
            return False

        self._seen.update((url, ctx.url))
        self._queue.put_nowait(ctx)
        self.stats.enqueued += 1
        return True

    def _budget_spent(self) -> bool:
        return 0 < self.config.max_visits <= self.stats.visited

    async def _visit(self, ctx: UrlContext) -> None:
        """Fetch a page, queue its links and hand it to the policy."""
        self.log.debug(f"Visiting {ctx.url} (depth={ctx.depth}, found on {ctx.source_url or 'start'})")
        result = await self.fetch(ctx.url)
        if result.status_code is not None:
            self.consecutive_fetch_errors = 0

        if not result.success:
            self.stats.fetch_errors += 1
            if result.status_code is None:
                self.consecutive_fetch_errors += 1
            self.policy.on_failure(CrawlFailure(
                kind=FailureKind.FETCH,
                url=ctx.url,
                cause=FetchError(result.error or "fetch failed", result.status_code),
            ))
            return

        if not result.is_html:
            self.log.debug(f"Skipping non-HTML page {ctx.url} ({result.content_type})")
            return

        ctx.final_url = result.final_url
        document = BeautifulSoup(result.content or "", "html.parser")

        # Links are collected before the policy gets to modify the document.
        for link in self.extract_links(document, ctx.document_url):
            self.enqueue(link, source=ctx)

        article = self.policy.extract_article(ctx, document)
        if article is not None:
            self.stats.articles += 1
            await self.policy.save_article(ctx, article)

    async def _worker(self) -> None:
        while True:
            ctx = await self._queue.get()
            try:
                if self._stop_requested or self._budget_spent():
                    continue
                self.stats.visited += 1
                await self._visit(ctx)
            except Exception as e:
                self.log.exception(f"Unexpected error while crawling {ctx.url}")
                self.policy.on_failure(CrawlFailure(kind=FailureKind.PARSE, url=ctx.url, cause=e))
            finally:
                self._queue.task_done()

    async def run(self, start_url: str) -> CrawlStats:
        """
        Crawl a website until there is nothing left to visit, the visit
        budget is spent, or a stop is requested.

        Args:
            start_url: The URL to start discovering the website from

        Returns:
            CrawlStats of the run
        """
        if not self._client:
            raise RuntimeError("Crawler not started. Use 'async with' or call start()")

        self._queue = asyncio.Queue()
        self._seen = set()
        self._host = urlsplit(start_url).hostname
        self.stats = CrawlStats()

        if not self.enqueue(start_url):
            self.log.info(f"Start URL {start_url} was filtered out, nothing to crawl")

        workers = [
            asyncio.create_task(self._worker())
            for _ in range(max(1, self.config.max_concurrent_requests))
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        self._status = CrawlerStatus.STOPPED if self._stop_requested else CrawlerStatus.COMPLETED
        return self.stats
