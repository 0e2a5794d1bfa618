"""Crawl orchestration: Normalizing -> Fetching -> Extracting -> Assembling.

A :class:`CrawlerService` is cheap and holds no per-call state, so the API
builds one per request around the process-wide ``httpx.AsyncClient``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from articrawl.crawler.assembler import CrawlResponse, assemble
from articrawl.crawler.errors import CrawlError, UnknownCrawlError
from articrawl.crawler.extractor import MIN_TEXT_CHARS, extract
from articrawl.crawler.fetcher import fetch
from articrawl.crawler.models import CrawlRequest, CrawlStage, FetchConfig
from articrawl.crawler.url import normalize

logger = logging.getLogger(__name__)


class CrawlerService:
    """Runs one crawl per :meth:`crawl` call; no state survives between calls."""

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        min_text_chars: int = MIN_TEXT_CHARS,
    ) -> None:
        self.config = config or FetchConfig()
        self.client = client
        self.min_text_chars = min_text_chars

    async def crawl(self, raw_url: str) -> CrawlResponse:
        """Crawl *raw_url* (possibly double-encoded) and return the article.

        Raises:
            CrawlError: The subclass names the failure; ``stage`` says where
                it happened.  Unexpected exceptions arrive as
                :class:`UnknownCrawlError`.
        """
        request = CrawlRequest(raw_url=raw_url)
        stage = CrawlStage.NORMALIZING
        try:
            url = normalize(
                request.raw_url, allow_private_hosts=self.config.allow_private_hosts
            )

            stage = CrawlStage.FETCHING
            logger.debug("Fetching %s", url)
            doc = await fetch(url, self.config, client=self.client)

            stage = CrawlStage.EXTRACTING
            logger.debug("Extracting %s (%d bytes)", doc.final_url, len(doc.body))
            content = await asyncio.to_thread(
                extract, doc, min_text_chars=self.min_text_chars
            )

            stage = CrawlStage.ASSEMBLING
            response = assemble(content)
        except CrawlError as exc:
            exc.stage = stage
            logger.warning("Crawl failed while %s %r: %s", stage.value, raw_url, exc)
            raise
        except Exception as exc:
            logger.exception("Unexpected error while %s %r", stage.value, raw_url)
            error = UnknownCrawlError(str(exc) or type(exc).__name__)
            error.stage = stage
            raise error from exc

        logger.info(
            "Crawled %s: %r (%d words)", response.source_url, response.title, response.word_count
        )
        return response


async def crawl_url(
    raw_url: str,
    config: Optional[FetchConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    min_text_chars: int = MIN_TEXT_CHARS,
) -> CrawlResponse:
    """One-shot helper around :meth:`CrawlerService.crawl`."""
    service = CrawlerService(config, client=client, min_text_chars=min_text_chars)
    return await service.crawl(raw_url)
