"""Crawler endpoint.

Routes
------
GET /api/v1/crawler?url=<percent-encoded (once or twice) URL>   → crawl

Failures always come back as ``{"error": "<message>"}``.  The status is a
flat 500 unless ``CRAWLER_MAP_ERROR_STATUS`` is set, in which case each
error kind carries its own status (400 / 415 / 422 / 502 / 504).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from articrawl.config import settings
from articrawl.crawler import CrawlError, CrawlerService

logger = logging.getLogger(__name__)

router = APIRouter()

MISSING_URL_MESSAGE = "URL 파라미터가 필요합니다."
UNKNOWN_ERROR_MESSAGE = "알 수 없는 오류가 발생했습니다."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _status_for(exc: CrawlError) -> int:
    return exc.http_status if settings.map_error_status else 500


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.get("")
async def crawl(request: Request, url: Optional[str] = None) -> Any:
    """Crawl an article and return its title, text and metadata.

    Args:
        url: Target URL.  It may arrive encoded twice; the crawler decodes it
            only as far as needed.
    """
    if not url or not url.strip():
        return _error(MISSING_URL_MESSAGE, 400)

    service = CrawlerService(
        settings.fetch_config(),
        client=getattr(request.app.state, "http_client", None),
        min_text_chars=settings.min_text_chars,
    )
    try:
        result = await service.crawl(url)
    except CrawlError as exc:
        return _error(exc.message or UNKNOWN_ERROR_MESSAGE, _status_for(exc))
    except Exception:  # noqa: BLE001
        logger.exception("Unhandled error crawling %r", url)
        return _error(UNKNOWN_ERROR_MESSAGE, 500)

    return result.to_json_dict()
