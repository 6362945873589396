"""Command-line entry point of the crawler."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from newscrawler.core.config import ConfigError, get_settings, load_config
from newscrawler.core.database import Database
from newscrawler.core.log import LogFormatConfig, configure_logging
from newscrawler.services.crawler import CrawlOrchestrator, CrawlReport
from newscrawler.services.storage import ArticleGateway

logger = logging.getLogger("newscrawler.main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Crawl the configured news websites and store new articles.",
    )
    parser.add_argument(
        "--config",
        default=settings.CONFIG_PATH,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Log debug messages",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the database tables before crawling",
    )
    parser.add_argument(
        "--website",
        action="append",
        dest="websites",
        help="Only crawl the website with this identifier (can be repeated)",
    )
    return parser.parse_args(argv)


def print_report(report: CrawlReport) -> None:
    for name, website in sorted(report.websites.items()):
        outcome = website.outcome
        line = (
            f"{name}: {outcome.status.value}, {outcome.pages_visited} pages, "
            f"{outcome.articles_saved} new articles, {len(website.failures)} failures"
        )
        if outcome.reason:
            line += f" ({outcome.reason})"
        print(line)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    log = configure_logging(LogFormatConfig(
        debug=args.debug,
        timestamp_format=settings.LOG_TIMESTAMP_FORMAT,
    ))

    try:
        config = load_config(args.config)
    except ConfigError as e:
        log.error(str(e))
        return 2

    db = Database(config.database)
    await db.connect()
    try:
        if args.init_db:
            await db.create_tables()
            log.info("Database tables created")

        orchestrator = CrawlOrchestrator(config, ArticleGateway(db), settings=settings, log=log)
        try:
            report = await orchestrator.run(args.websites)
        except KeyError as e:
            log.error(f"Unknown website {e}")
            return 2
    finally:
        await db.disconnect()

    print_report(report)
    return 1 if report.aborted else 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
