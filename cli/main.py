"""articrawl CLI — entry-point for crawler operations.

Usage:
    python cli/main.py --help

Commands:
    crawl   → fetch a URL and print the extracted article
    serve   → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from articrawl.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import dataclasses
import json
from typing import Optional

import typer

from articrawl.config import configure_logging, settings
from articrawl.crawler import CrawlError, crawl_url

app = typer.Typer(
    name="articrawl",
    help="Article crawler CLI.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Crawl
# ---------------------------------------------------------------------------
@app.command("crawl")
def crawl(
    url: str = typer.Argument(..., help="Article URL (may be percent-encoded)."),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response body."),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Fetch timeout in ms."),
    max_bytes: Optional[int] = typer.Option(None, "--max-bytes", help="Response size limit."),
    no_redirects: bool = typer.Option(False, "--no-redirects", help="Do not follow redirects."),
    allow_private: bool = typer.Option(
        False, "--allow-private", help="Allow localhost and private-network targets."
    ),
) -> None:
    """Crawl a URL and print the extracted article to stdout."""
    configure_logging()
    config = settings.fetch_config()
    overrides = {}
    if timeout_ms is not None:
        overrides["timeout_ms"] = timeout_ms
    if max_bytes is not None:
        overrides["max_body_bytes"] = max_bytes
    if no_redirects:
        overrides["follow_redirects"] = False
    if allow_private:
        overrides["allow_private_hosts"] = True
    config = dataclasses.replace(config, **overrides)

    try:
        result = asyncio.run(
            crawl_url(url, config, min_text_chars=settings.min_text_chars)
        )
    except CrawlError as exc:
        typer.echo(f"Error ({exc.kind}): {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_json_dict(), ensure_ascii=False, indent=2))
        return

    typer.echo(f"[crawl] Title  : {result.title}")
    typer.echo(f"[crawl] Source : {result.source_url}")
    if result.author:
        typer.echo(f"[crawl] Author : {result.author}")
    if result.publish_date:
        typer.echo(f"[crawl] Date   : {result.publish_date}")
    typer.echo(f"[crawl] Words  : {result.word_count}")
    typer.echo("")
    typer.echo(result.text)


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Run the crawler HTTP API."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run("articrawl.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
