"""
Per-website crawl worker.

A worker owns everything needed to crawl one website and reports to its
supervisor through two queues: one CrawlFailure per problem met, and at
most one abort reason when it can't carry on.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from newscrawler.core.config import Settings, WebsiteConfig, get_settings
from newscrawler.core.log import WebsiteLogger, website_logger
from newscrawler.crawler.base import CrawlEngine, EngineConfig
from newscrawler.crawler.errors import CrawlFailure, FailureKind, StorageError
from newscrawler.crawler.filters import load_visited_set
from newscrawler.crawler.policy import ArticlePolicy
from newscrawler.services.storage import ArticleGateway

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Worker status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class WorkerOutcome:
    """How a worker's run ended."""
    website: str
    status: WorkerStatus
    reason: Optional[str] = None
    pages_visited: int = 0
    articles_found: int = 0
    articles_saved: int = 0

    @property
    def aborted(self) -> bool:
        return self.status == WorkerStatus.ABORTED


class CrawlWorker:
    """Crawls a single website."""

    def __init__(
        self,
        website: WebsiteConfig,
        store: ArticleGateway,
        settings: Optional[Settings] = None,
        log: Optional[WebsiteLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.website = website
        self.store = store
        self.settings = settings or get_settings()
        self.log = log or website_logger(logger, website.identifier)
        self.failures: asyncio.Queue = asyncio.Queue()
        self.aborts: asyncio.Queue = asyncio.Queue()
        self.status = WorkerStatus.PENDING
        self._transport = transport
        self._engine: Optional[CrawlEngine] = None
        self._abort_reason: Optional[str] = None

    def engine_config(self) -> EngineConfig:
        """Build the crawl engine's configuration for this website."""
        return EngineConfig(
            user_agent=self.website.user_agent,
            crawl_delay=self.website.crawl_delay,
            max_visits=self.website.max_visits,
            max_retries=max(1, self.settings.MAX_RETRIES),
            retry_delay_seconds=self.settings.RETRY_DELAY_SECONDS,
            request_timeout_seconds=self.settings.REQUEST_TIMEOUT_SECONDS,
            connect_timeout_seconds=self.settings.CONNECT_TIMEOUT_SECONDS,
            max_concurrent_requests=self.settings.MAX_CONCURRENT_REQUESTS,
        )

    def report(self, failure: CrawlFailure) -> None:
        """Send a failure to the supervisor."""
        self.failures.put_nowait(failure)

        threshold = self.settings.MAX_CONSECUTIVE_FETCH_ERRORS
        if (
            failure.kind == FailureKind.FETCH
            and threshold > 0
            and self._engine is not None
            and self._engine.consecutive_fetch_errors >= threshold
        ):
            self.abort(f"{self._engine.consecutive_fetch_errors} consecutive fetch errors")

    def abort(self, reason: str) -> None:
        """Ask the supervisor to tear this worker down. Only the first reason is sent."""
        if self._abort_reason is not None:
            return
        self._abort_reason = reason
        self.log.error(f"Aborting crawl: {reason}")
        self.aborts.put_nowait(reason)

    def stop(self) -> None:
        """Stop the crawl engine; pages being fetched are finished."""
        if self._engine is not None:
            self._engine.request_stop()

    async def run(self) -> WorkerOutcome:
        """
        Load the website's stored article URLs, then crawl it.

        Returns:
            WorkerOutcome of the run
        """
        self.status = WorkerStatus.RUNNING
        try:
            visited = await load_visited_set(self.store, self.website)
        except StorageError as e:
            # Without the stored URLs, articles would be saved twice.
            self.report(CrawlFailure.from_exception(e))
            self.abort(f"could not load visited URLs: {e}")
            self.status = WorkerStatus.ABORTED
            return WorkerOutcome(
                website=self.website.identifier,
                status=self.status,
                reason=self._abort_reason,
            )

        self.log.info(f"Loaded {len(visited)} visited URLs for this website")

        policy = ArticlePolicy(
            website=self.website,
            store=self.store,
            visited=visited,
            report=self.report,
            log=self.log,
        )

        engine = CrawlEngine(policy, self.engine_config(), log=self.log, transport=self._transport)
        self._engine = engine
        async with engine:
            stats = await engine.run(self.website.start_point)

        self.status = WorkerStatus.ABORTED if self._abort_reason else WorkerStatus.COMPLETED
        self.log.info(
            f"Crawl {self.status.value}: {stats.visited} pages visited, "
            f"{policy.articles_saved} articles saved"
        )
        return WorkerOutcome(
            website=self.website.identifier,
            status=self.status,
            reason=self._abort_reason,
            pages_visited=stats.visited,
            articles_found=stats.articles,
            articles_saved=policy.articles_saved,
        )
