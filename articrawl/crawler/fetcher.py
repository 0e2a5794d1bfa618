"""HTTP fetcher: one bounded GET against a :class:`NormalizedUrl`."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional
from urllib.parse import urljoin

import httpx

from articrawl.crawler.errors import CrawlTimeout, FetchFailed, InvalidUrl, UnsupportedContentType
from articrawl.crawler.models import FetchConfig, FetchedDocument, NormalizedUrl
from articrawl.crawler.url import validate_url

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

_ACCEPT = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.1"


def _mime_type(content_type: str) -> str:
    """Return the bare media type; a missing header counts as HTML."""
    return content_type.split(";", 1)[0].strip().lower() or "text/html"


def _follow(response: httpx.Response, visited: List[str], config: FetchConfig) -> str:
    """Resolve the redirect target of *response* and check it may be followed."""
    target = urljoin(str(response.url), response.headers["location"])
    if len(visited) - 1 >= config.max_redirects:
        raise FetchFailed(
            f"more than {config.max_redirects} redirects",
            status_code=response.status_code,
            redirect_loop=True,
        )
    if target in visited:
        raise FetchFailed(
            f"redirect loop back to {target}",
            status_code=response.status_code,
            redirect_loop=True,
        )
    try:
        validate_url(target, allow_private_hosts=config.allow_private_hosts)
    except InvalidUrl as exc:
        raise FetchFailed(f"redirect to disallowed URL: {exc}") from exc
    return target


async def _read_document(
    response: httpx.Response, visited: List[str], config: FetchConfig
) -> FetchedDocument:
    status = response.status_code
    if not response.is_success:
        raise FetchFailed(response.reason_phrase or "unexpected status", status_code=status)

    mime = _mime_type(response.headers.get("content-type", ""))
    if mime not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedContentType(mime)

    limit = config.max_body_bytes
    declared = response.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise FetchFailed(f"response body exceeds {limit} bytes")

    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        if len(body) > limit:
            raise FetchFailed(f"response body exceeds {limit} bytes")

    return FetchedDocument(
        final_url=str(response.url),
        status_code=status,
        content_type=mime,
        body=bytes(body),
        encoding=response.charset_encoding,
        redirects=visited[1:],
    )


async def _fetch_with(
    client: httpx.AsyncClient, url: NormalizedUrl, config: FetchConfig
) -> FetchedDocument:
    headers = {"User-Agent": config.user_agent, "Accept": _ACCEPT}
    timeout = httpx.Timeout(config.timeout_seconds)
    visited = [url.url]
    current = url.url

    while True:
        request = client.build_request("GET", current, headers=headers, timeout=timeout)
        try:
            response = await client.send(request, stream=True, follow_redirects=False)
            try:
                if config.follow_redirects and response.is_redirect:
                    current = _follow(response, visited, config)
                    visited.append(current)
                    logger.debug("Redirect %d -> %s", response.status_code, current)
                    continue
                return await _read_document(response, visited, config)
            finally:
                await response.aclose()
        except httpx.TimeoutException as exc:
            raise CrawlTimeout(
                f"Timed out after {config.timeout_ms} ms fetching {current}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchFailed(str(exc) or type(exc).__name__) from exc


async def fetch(
    url: NormalizedUrl,
    config: Optional[FetchConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> FetchedDocument:
    """Fetch *url* and return a :class:`FetchedDocument`.

    Exactly one attempt is made; retries are the caller's business.  When no
    *client* is supplied a short-lived one is opened for this call.

    Raises:
        CrawlTimeout: If the whole fetch takes longer than ``timeout_ms``.
        FetchFailed: On transport errors, non-2xx status, oversized bodies
            and redirect loops.
        UnsupportedContentType: If the response is not HTML.
    """
    config = config or FetchConfig()

    async def _run() -> FetchedDocument:
        if client is not None:
            return await _fetch_with(client, url, config)
        async with httpx.AsyncClient() as own_client:
            return await _fetch_with(own_client, url, config)

    try:
        return await asyncio.wait_for(_run(), timeout=config.timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise CrawlTimeout(f"Timed out after {config.timeout_ms} ms fetching {url}") from exc
