"""
Configuration for the crawler.

Process-level settings come from the environment via pydantic-settings,
the crawl description (websites, database, feeds) from a YAML file
validated into frozen pydantic models.
"""
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Pattern, Union

import soupsieve
import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


class Settings(BaseSettings):
    """Process settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEWSCRAWLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    CONFIG_PATH: str = "config.yaml"
    DEBUG: bool = False
    LOG_TIMESTAMP_FORMAT: str = "%Y-%m-%dT%H:%M:%S.%fZ"

    # Crawl engine
    MAX_CONCURRENT_REQUESTS: int = 5
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    CONNECT_TIMEOUT_SECONDS: float = 10.0
    MAX_RETRIES: int = 3
    RETRY_DELAY_SECONDS: float = 5.0

    # Number of fetch failures in a row after which a worker gives up.
    # 0 disables the check.
    MAX_CONSECUTIVE_FETCH_ERRORS: int = 10


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CrawlerSettings(_FrozenModel):
    """Settings shared by every website's crawler."""
    user_agent: str = "Mozilla/5.0 (compatible; NewsCrawler/1.0)"
    robot_agent: str = "NewsCrawler"
    crawl_delay: float = Field(default=1.0, ge=0)


class SelectorSet(_FrozenModel):
    """CSS selectors matching each part of an article."""
    title: str
    content: str
    date: str
    description: Optional[str] = None
    author: Optional[str] = None
    thumbnail: Optional[str] = None

    @field_validator("title", "content", "date", "description", "author", "thumbnail")
    @classmethod
    def _check_selector(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            soupsieve.compile(value)
        except soupsieve.SelectorSyntaxError as e:
            raise ValueError(f"malformed selector {value!r}: {e}") from e
        return value


class QueryPolicy(_FrozenModel):
    """How to handle the query string of discovered URLs."""
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    ignore_all: bool
    except_: List[str] = Field(default_factory=list, alias="except")

    @field_validator("except_", mode="before")
    @classmethod
    def _split_exceptions(cls, value: Any) -> Any:
        # YAML folds an unquoted multi-line scalar into "news item".
        if isinstance(value, str):
            return value.split()
        if value is None:
            return []
        return value

    @property
    def exceptions(self) -> frozenset:
        return frozenset(self.except_)

    def drops(self, key: str) -> bool:
        """Tell whether a query key is removed from canonical URLs."""
        if key in self.exceptions:
            return not self.ignore_all
        return self.ignore_all


class UrlFilters(_FrozenModel):
    """Regular expressions restricting which URLs are crawled."""
    restrict: Optional[Pattern[str]] = None
    exclude: Optional[Pattern[str]] = None


class WebsiteConfig(_FrozenModel):
    """Everything needed to crawl a single website."""
    identifier: str = Field(min_length=1)
    start_point: str
    selectors: SelectorSet
    date_format: str
    max_visits: int = Field(default=0, ge=0)
    query: Optional[QueryPolicy] = None
    filters: Optional[UrlFilters] = None

    # Filled from the global crawler settings when absent.
    user_agent: str = CrawlerSettings().user_agent
    robot_agent: str = CrawlerSettings().robot_agent
    crawl_delay: float = Field(default=CrawlerSettings().crawl_delay, ge=0)

    @field_validator("start_point")
    @classmethod
    def _check_start_point(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("start_point must be an http(s) URL")
        return value

    @field_validator("date_format")
    @classmethod
    def _check_date_format(cls, value: str) -> str:
        from newscrawler.crawler.dates import translate_date_format

        # Raises ValueError on unknown tokens.
        translate_date_format(value)
        return value


class DatabaseConfig(_FrozenModel):
    """Connection settings for the article store."""
    driver: Literal["postgres", "sqlite3"]
    connection_data: str


class FeedsConfig(_FrozenModel):
    """Settings of the feeds generator."""
    type: Literal["rss", "atom"] = "rss"
    nb_items: int = Field(default=20, ge=1)
    interface: str = "127.0.0.1"
    port: int = Field(default=8888, ge=1, le=65535)


class AppConfig(_FrozenModel):
    """Root of the YAML configuration file."""
    crawler: CrawlerSettings = Field(default_factory=CrawlerSettings)
    websites: List[WebsiteConfig]
    database: DatabaseConfig
    feeds: Optional[FeedsConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _apply_crawler_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        crawler = data.get("crawler") or {}
        if isinstance(crawler, CrawlerSettings):
            crawler = crawler.model_dump()
        websites = []
        for website in data.get("websites") or []:
            if isinstance(website, dict):
                website = dict(website)
                for key in ("user_agent", "robot_agent", "crawl_delay"):
                    if key in crawler and website.get(key) is None:
                        website[key] = crawler[key]
            websites.append(website)
        return {**data, "websites": websites}

    @model_validator(mode="after")
    def _check_unique_identifiers(self) -> "AppConfig":
        seen = set()
        for website in self.websites:
            if website.identifier in seen:
                raise ValueError(f"duplicate website identifier: {website.identifier}")
            seen.add(website.identifier)
        return self

    def website(self, identifier: str) -> WebsiteConfig:
        for website in self.websites:
            if website.identifier == identifier:
                return website
        raise KeyError(identifier)


def parse_config(data: Dict[str, Any]) -> AppConfig:
    """Validate an already-decoded configuration mapping."""
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(path: Union[str, Path]) -> AppConfig:
    """
    Load and validate the YAML configuration file.

    Args:
        path: Path of the configuration file

    Returns:
        The validated AppConfig

    Raises:
        ConfigError: If the file can't be read or is invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Could not read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")

    return parse_config(data)
