"""Tests for the HTTP fetcher.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made.
- The wall-clock timeout is exercised by patching ``_fetch_with`` with a
  coroutine that sleeps past the deadline.
- Streaming and cancellation use respx routes backed by an async chunk
  generator and by a side effect that never returns.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import httpx
import pytest
import respx

from articrawl.crawler.errors import CrawlTimeout, FetchFailed, UnsupportedContentType
from articrawl.crawler.fetcher import fetch
from articrawl.crawler.models import FetchConfig, FetchedDocument
from articrawl.crawler.url import normalize

_HTML = "<html><head><title>T</title></head><body><p>Hello</p></body></html>"


def _url(value: str):
    return normalize(value)


# ---------------------------------------------------------------------------
# Successful fetches
# ---------------------------------------------------------------------------

class TestFetchSuccess:
    async def test_returns_fetched_document(self) -> None:
        with respx.mock:
            respx.get("https://example.com/article").mock(
                return_value=httpx.Response(200, html=_HTML)
            )
            doc = await fetch(_url("https://example.com/article"))

        assert isinstance(doc, FetchedDocument)
        assert doc.final_url == "https://example.com/article"
        assert doc.status_code == 200
        assert doc.content_type == "text/html"
        assert doc.encoding == "utf-8"
        assert doc.body == _HTML.encode()
        assert doc.redirects == []

    async def test_sends_configured_user_agent(self) -> None:
        config = FetchConfig(user_agent="test-agent/1.0")
        with respx.mock:
            route = respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, html=_HTML)
            )
            await fetch(_url("https://example.com/"), config)

        assert route.calls.last.request.headers["user-agent"] == "test-agent/1.0"

    async def test_uses_supplied_client(self) -> None:
        with respx.mock:
            respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, html=_HTML)
            )
            async with httpx.AsyncClient() as client:
                doc = await fetch(_url("https://example.com/"), client=client)
                assert not client.is_closed

        assert doc.status_code == 200

    async def test_xhtml_is_accepted(self) -> None:
        with respx.mock:
            respx.get("https://example.com/x").mock(
                return_value=httpx.Response(
                    200,
                    content=_HTML.encode(),
                    headers={"Content-Type": "application/xhtml+xml; charset=utf-8"},
                )
            )
            doc = await fetch(_url("https://example.com/x"))

        assert doc.content_type == "application/xhtml+xml"

    async def test_missing_content_type_treated_as_html(self) -> None:
        with respx.mock:
            respx.get("https://example.com/bare").mock(
                return_value=httpx.Response(200, content=_HTML.encode())
            )
            doc = await fetch(_url("https://example.com/bare"))

        assert doc.content_type == "text/html"


# ---------------------------------------------------------------------------
# Failure modes
# ---------------------------------------------------------------------------

class TestFetchFailures:
    async def test_non_2xx_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get("https://example.com/missing").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/missing"))

        assert excinfo.value.status_code == 404
        assert excinfo.value.redirect_loop is False

    async def test_image_is_unsupported(self) -> None:
        with respx.mock:
            respx.get("https://example.com/logo.png").mock(
                return_value=httpx.Response(
                    200, content=b"\x89PNG\r\n", headers={"Content-Type": "image/png"}
                )
            )
            with pytest.raises(UnsupportedContentType) as excinfo:
                await fetch(_url("https://example.com/logo.png"))

        assert excinfo.value.content_type == "image/png"

    async def test_plain_text_is_unsupported(self) -> None:
        with respx.mock:
            respx.get("https://example.com/a.txt").mock(
                return_value=httpx.Response(200, text="just text")
            )
            with pytest.raises(UnsupportedContentType):
                await fetch(_url("https://example.com/a.txt"))

    async def test_oversized_body_raises(self) -> None:
        config = FetchConfig(max_body_bytes=100)
        with respx.mock:
            respx.get("https://example.com/big").mock(
                return_value=httpx.Response(200, html="x" * 500)
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/big"), config)

        assert "exceeds 100 bytes" in str(excinfo.value)

    async def test_streamed_body_without_length_is_bounded(self) -> None:
        async def _chunks():
            for _ in range(10):
                yield b"<p>" + b"x" * 97 + b"</p>"

        config = FetchConfig(max_body_bytes=300)
        with respx.mock:
            respx.get("https://example.com/stream").mock(
                return_value=httpx.Response(
                    200, headers={"Content-Type": "text/html"}, content=_chunks()
                )
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/stream"), config)

        assert "response body exceeds 300 bytes" in str(excinfo.value)

    async def test_cancellation_propagates(self) -> None:
        started = asyncio.Event()
        never = asyncio.Event()

        async def _hang(request):
            started.set()
            await never.wait()

        config = FetchConfig(timeout_ms=60_000)
        with respx.mock(assert_all_called=False) as router:
            router.get("https://example.com/hang").mock(side_effect=_hang)
            task = asyncio.create_task(fetch(_url("https://example.com/hang"), config))
            await asyncio.wait_for(started.wait(), timeout=5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert task.cancelled()

    async def test_transport_timeout_raises_timeout(self) -> None:
        with respx.mock:
            respx.get("https://example.com/slow").mock(side_effect=httpx.ReadTimeout)
            with pytest.raises(CrawlTimeout):
                await fetch(_url("https://example.com/slow"))

    async def test_wall_clock_timeout_raises_timeout(self) -> None:
        async def _slow(*args, **kwargs):
            await asyncio.sleep(1)

        config = FetchConfig(timeout_ms=20)
        with patch("articrawl.crawler.fetcher._fetch_with", _slow):
            with pytest.raises(CrawlTimeout):
                await fetch(_url("https://example.com/"), config)

    async def test_connection_refused_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get("https://unreachable.example/").mock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://unreachable.example/"))

        assert excinfo.value.status_code is None
        assert "Connection refused" in str(excinfo.value)


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------

class TestRedirects:
    async def test_follows_relative_redirect(self) -> None:
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(301, headers={"Location": "/new"})
            )
            respx.get("https://example.com/new").mock(
                return_value=httpx.Response(200, html=_HTML)
            )
            doc = await fetch(_url("https://example.com/old"))

        assert doc.final_url == "https://example.com/new"
        assert doc.redirects == ["https://example.com/new"]

    async def test_redirect_loop_is_detected(self) -> None:
        with respx.mock:
            respx.get("https://example.com/a").mock(
                return_value=httpx.Response(302, headers={"Location": "https://example.com/b"})
            )
            respx.get("https://example.com/b").mock(
                return_value=httpx.Response(302, headers={"Location": "https://example.com/a"})
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/a"))

        assert excinfo.value.redirect_loop is True

    async def test_redirect_cap_is_enforced(self) -> None:
        config = FetchConfig(max_redirects=1)
        with respx.mock:
            respx.get("https://example.com/1").mock(
                return_value=httpx.Response(301, headers={"Location": "https://example.com/2"})
            )
            respx.get("https://example.com/2").mock(
                return_value=httpx.Response(301, headers={"Location": "https://example.com/3"})
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/1"), config)

        assert excinfo.value.redirect_loop is True
        assert "more than 1 redirects" in str(excinfo.value)

    async def test_redirects_disabled_reports_status(self) -> None:
        config = FetchConfig(follow_redirects=False)
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(301, headers={"Location": "/new"})
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/old"), config)

        assert excinfo.value.status_code == 301

    async def test_redirect_to_private_host_is_refused(self) -> None:
        with respx.mock:
            respx.get("https://example.com/jump").mock(
                return_value=httpx.Response(302, headers={"Location": "http://127.0.0.1/admin"})
            )
            with pytest.raises(FetchFailed) as excinfo:
                await fetch(_url("https://example.com/jump"))

        assert "disallowed" in str(excinfo.value)
