"""Centralised settings for the article crawler.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from articrawl.crawler.models import FetchConfig

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("CRAWLER_TIMEOUT_MS", "10000"))
    )
    max_body_bytes: int = field(
        default_factory=lambda: int(os.environ.get("CRAWLER_MAX_BODY_BYTES", "5000000"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "CRAWLER_USER_AGENT", "articrawl/0.1 (+article crawler)"
        )
    )
    follow_redirects: bool = field(
        default_factory=lambda: _env_bool("CRAWLER_FOLLOW_REDIRECTS", "true")
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("CRAWLER_MAX_REDIRECTS", "5"))
    )
    allow_private_hosts: bool = field(
        default_factory=lambda: _env_bool("CRAWLER_ALLOW_PRIVATE_HOSTS", "false")
    )

    # ------------------------------------------------------------------
    # Extractor
    # ------------------------------------------------------------------
    min_text_chars: int = field(
        default_factory=lambda: int(os.environ.get("CRAWLER_MIN_TEXT_CHARS", "50"))
    )

    # ------------------------------------------------------------------
    # HTTP boundary
    # ------------------------------------------------------------------
    map_error_status: bool = field(
        default_factory=lambda: _env_bool("CRAWLER_MAP_ERROR_STATUS", "false")
    )
    cors_origins: List[str] = field(
        default_factory=lambda: [
            o.strip()
            for o in os.environ.get("CRAWLER_CORS_ORIGINS", "*").split(",")
            if o.strip()
        ]
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )

    def fetch_config(self) -> FetchConfig:
        """Build the fetcher configuration from the current settings."""
        return FetchConfig(
            timeout_ms=self.timeout_ms,
            max_body_bytes=self.max_body_bytes,
            user_agent=self.user_agent,
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
            allow_private_hosts=self.allow_private_hosts,
        )


def configure_logging(level: str | None = None) -> None:
    """Install the root handler used by the API server and the CLI."""
    logging.basicConfig(level=(level or settings.log_level), format=LOG_FORMAT)


# Module-level singleton — import this everywhere:
#   from articrawl.config import settings
settings = Settings()
