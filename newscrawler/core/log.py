"""
Logging setup.

Formatting options are carried by LogFormatConfig; each worker gets its
own logger handle tagged with the website it crawls.
"""
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional, TextIO, Tuple

DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogFormatConfig:
    """Formatting options for the crawler's log output."""
    debug: bool = False
    timestamp_format: str = "%Y-%m-%dT%H:%M:%S.%fZ"
    fmt: str = DEFAULT_FORMAT
    logger_name: str = "newscrawler"

    @property
    def level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO


class UTCFormatter(logging.Formatter):
    """Formatter writing record timestamps in UTC, with microseconds."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return created.strftime(datefmt)
        return created.isoformat()


class WebsiteLogger(logging.LoggerAdapter):
    """Logger adapter prefixing every message with a website identifier."""

    def __init__(self, logger: logging.Logger, website: str):
        super().__init__(logger, {"website": website})

    @property
    def website(self) -> str:
        return self.extra["website"]

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("website", self.website)
        kwargs["extra"] = extra
        return f"[{self.website}] {msg}", kwargs


def configure_logging(
    config: Optional[LogFormatConfig] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Install a UTC stream handler on the crawler's logger.

    Args:
        config: Formatting options
        stream: Where to write records, stderr by default

    Returns:
        The configured logger, to be handed to the orchestrator
    """
    config = config or LogFormatConfig()
    logger = logging.getLogger(config.logger_name)
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        if getattr(handler, "_newscrawler_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(UTCFormatter(config.fmt, datefmt=config.timestamp_format))
    handler._newscrawler_handler = True
    logger.addHandler(handler)
    return logger


def website_logger(logger: logging.Logger, website: str) -> WebsiteLogger:
    """Get the logger handle for a website's worker."""
    return WebsiteLogger(logger, website)
