"""
Orchestration of a crawl run: one worker per configured website, all
running in parallel and supervised through their failure and abort queues.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import httpx

from newscrawler.core.config import AppConfig, Settings, WebsiteConfig, get_settings
from newscrawler.core.log import website_logger
from newscrawler.crawler.errors import CrawlFailure
from newscrawler.services.storage import ArticleGateway
from newscrawler.services.worker import CrawlWorker, WorkerOutcome, WorkerStatus

logger = logging.getLogger(__name__)


@dataclass
class WebsiteReport:
    """Outcome and failures of one website's crawl."""
    outcome: WorkerOutcome
    failures: List[CrawlFailure] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "website": self.outcome.website,
            "status": self.outcome.status.value,
            "reason": self.outcome.reason,
            "pages_visited": self.outcome.pages_visited,
            "articles_found": self.outcome.articles_found,
            "articles_saved": self.outcome.articles_saved,
            "failures": len(self.failures),
        }


@dataclass
class CrawlReport:
    """Aggregated result of a crawl run."""
    websites: Dict[str, WebsiteReport] = field(default_factory=dict)

    @property
    def aborted(self) -> List[str]:
        return [name for name, report in self.websites.items() if report.outcome.aborted]

    @property
    def failure_count(self) -> int:
        return sum(len(report.failures) for report in self.websites.values())

    @property
    def articles_saved(self) -> int:
        return sum(report.outcome.articles_saved for report in self.websites.values())


class CrawlOrchestrator:
    """
    Runs one CrawlWorker per website. A worker aborting or crashing never
    stops the others.
    """

    def __init__(
        self,
        config: AppConfig,
        store: ArticleGateway,
        settings: Optional[Settings] = None,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.store = store
        self.settings = settings or get_settings()
        self.log = log or logger
        self._transport = transport
        self._workers: Dict[str, CrawlWorker] = {}

    def create_worker(self, website: WebsiteConfig) -> CrawlWorker:
        base = self.log.logger if isinstance(self.log, logging.LoggerAdapter) else self.log
        return CrawlWorker(
            website=website,
            store=self.store,
            settings=self.settings,
            log=website_logger(base, website.identifier),
            transport=self._transport,
        )

    def stop(self, identifier: str) -> bool:
        """
        Stop a website's worker.

        Returns:
            True if a worker was found for the website
        """
        worker = self._workers.get(identifier)
        if worker is None:
            return False
        worker.stop()
        return True

    async def run(self, identifiers: Optional[Iterable[str]] = None) -> CrawlReport:
        """
        Crawl the configured websites in parallel.

        Args:
            identifiers: Only crawl these websites, all of them by default

        Returns:
            CrawlReport of the run

        Raises:
            KeyError: If an identifier isn't configured
        """
        if identifiers is None:
            websites = list(self.config.websites)
        else:
            websites = [self.config.website(identifier) for identifier in identifiers]

        self._workers = {website.identifier: self.create_worker(website) for website in websites}
        self.log.info(f"Starting crawl of {len(websites)} websites")

        reports = await asyncio.gather(
            *(self._supervise(worker) for worker in self._workers.values())
        )

        report = CrawlReport(websites={r.outcome.website: r for r in reports})
        self.log.info(
            f"Crawl finished: {report.articles_saved} articles saved, "
            f"{report.failure_count} failures, {len(report.aborted)} websites aborted"
        )
        return report

    async def _supervise(self, worker: CrawlWorker) -> WebsiteReport:
        """Run a worker while draining its failure and abort queues."""
        failures: List[CrawlFailure] = []
        drainer = asyncio.create_task(self._drain_failures(worker, failures))
        watcher = asyncio.create_task(self._watch_aborts(worker))

        try:
            outcome = await worker.run()
        except Exception as e:
            worker.log.exception("Worker crashed")
            outcome = WorkerOutcome(
                website=worker.website.identifier,
                status=WorkerStatus.ABORTED,
                reason=f"worker crashed: {e}",
            )
        finally:
            for task in (drainer, watcher):
                task.cancel()
            await asyncio.gather(drainer, watcher, return_exceptions=True)

        # Failures reported after the drainer's last pass.
        while not worker.failures.empty():
            self._record_failure(worker, failures, worker.failures.get_nowait())

        return WebsiteReport(outcome=outcome, failures=failures)

    async def _drain_failures(self, worker: CrawlWorker, failures: List[CrawlFailure]) -> None:
        while True:
            failure = await worker.failures.get()
            self._record_failure(worker, failures, failure)

    def _record_failure(self, worker: CrawlWorker, failures: List[CrawlFailure], failure: CrawlFailure) -> None:
        failures.append(failure)
        worker.log.warning(failure.message)

    async def _watch_aborts(self, worker: CrawlWorker) -> None:
        reason = await worker.aborts.get()
        worker.log.error(f"Worker asked to abort: {reason}")
        worker.stop()
