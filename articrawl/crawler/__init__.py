"""Crawler package — URL normalisation, fetch, extraction, assembly."""

from articrawl.crawler.assembler import CrawlResponse, assemble
from articrawl.crawler.errors import (
    CrawlError,
    CrawlTimeout,
    ExtractionFailed,
    FetchFailed,
    InvalidUrl,
    UnknownCrawlError,
    UnsupportedContentType,
)
from articrawl.crawler.extractor import extract
from articrawl.crawler.fetcher import fetch
from articrawl.crawler.models import (
    ArticleContent,
    CrawlRequest,
    CrawlStage,
    FetchConfig,
    FetchedDocument,
    NormalizedUrl,
)
from articrawl.crawler.service import CrawlerService, crawl_url
from articrawl.crawler.url import normalize

__all__ = [
    "normalize",
    "fetch",
    "extract",
    "assemble",
    "crawl_url",
    "CrawlerService",
    "CrawlResponse",
    "ArticleContent",
    "CrawlRequest",
    "CrawlStage",
    "FetchConfig",
    "FetchedDocument",
    "NormalizedUrl",
    "CrawlError",
    "CrawlTimeout",
    "ExtractionFailed",
    "FetchFailed",
    "InvalidUrl",
    "UnknownCrawlError",
    "UnsupportedContentType",
]
