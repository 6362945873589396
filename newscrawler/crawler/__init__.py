"""
Crawl pipeline: URL filtering, article extraction and content sanitization.
"""
from newscrawler.crawler.base import CrawlEngine, CrawlPolicy, CrawlStats, CrawlerStatus, EngineConfig, UrlContext
from newscrawler.crawler.cleaner import CleanerConfig, ContentSanitizer
from newscrawler.crawler.errors import CrawlFailure, FailureKind
from newscrawler.crawler.filters import EnqueueFilter, VisitedSet, load_visited_set
from newscrawler.crawler.parser import ArticleExtractor, ArticleMatch, ExtractedArticle
from newscrawler.crawler.policy import ArticlePolicy
from newscrawler.crawler.urls import canonicalize_url

__all__ = [
    "CrawlEngine",
    "CrawlPolicy",
    "CrawlStats",
    "CrawlerStatus",
    "EngineConfig",
    "UrlContext",
    "CleanerConfig",
    "ContentSanitizer",
    "CrawlFailure",
    "FailureKind",
    "EnqueueFilter",
    "VisitedSet",
    "load_visited_set",
    "ArticleExtractor",
    "ArticleMatch",
    "ExtractedArticle",
    "ArticlePolicy",
    "canonicalize_url",
]
