"""Closed error taxonomy for the crawler.

Every pipeline stage raises exactly one of these.  The HTTP boundary and the
CLI read ``kind`` / ``http_status`` off the instance; nothing downstream has
to guess what went wrong from the exception type.
"""

from __future__ import annotations

from typing import Optional

from articrawl.crawler.models import CrawlStage


class CrawlError(Exception):
    """Base class for every failure the crawler reports."""

    kind = "unknown"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.stage: Optional[CrawlStage] = None

    def __str__(self) -> str:
        return self.message


class InvalidUrl(CrawlError):
    kind = "invalid_url"
    http_status = 400


class FetchFailed(CrawlError):
    """The remote could not be fetched (transport error, bad status, limits)."""

    kind = "fetch_failed"
    http_status = 502

    def __init__(
        self,
        cause: str,
        *,
        status_code: Optional[int] = None,
        redirect_loop: bool = False,
    ) -> None:
        if status_code is not None:
            message = f"Fetch failed with HTTP {status_code}: {cause}"
        else:
            message = f"Fetch failed: {cause}"
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code
        self.redirect_loop = redirect_loop


class UnsupportedContentType(CrawlError):
    kind = "unsupported_content_type"
    http_status = 415

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported content type: {content_type or '(none)'}")
        self.content_type = content_type


class ExtractionFailed(CrawlError):
    kind = "extraction_failed"
    http_status = 422


class CrawlTimeout(CrawlError):
    kind = "timeout"
    http_status = 504


class UnknownCrawlError(CrawlError):
    kind = "unknown"
    http_status = 500
