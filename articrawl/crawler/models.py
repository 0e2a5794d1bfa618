"""Data models for the crawler pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional


class CrawlStage(str, enum.Enum):
    """Pipeline states; every stage either advances or ends in ``FAILED``."""

    NORMALIZING = "normalizing"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    ASSEMBLING = "assembling"
    FAILED = "failed"


@dataclass(frozen=True)
class CrawlRequest:
    """A single inbound crawl call."""

    raw_url: str


@dataclass(frozen=True)
class NormalizedUrl:
    """A decoded, validated absolute http(s) URL."""

    url: str
    scheme: str
    host: str

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class FetchConfig:
    """Bounds for one outbound fetch."""

    timeout_ms: int = 10_000
    max_body_bytes: int = 5_000_000
    user_agent: str = "articrawl/0.1 (+article crawler)"
    follow_redirects: bool = True
    max_redirects: int = 5
    allow_private_hosts: bool = False

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


@dataclass
class FetchedDocument:
    """The raw HTTP response for a single URL fetch."""

    final_url: str
    status_code: int
    content_type: str
    body: bytes
    encoding: Optional[str] = None
    redirects: List[str] = field(default_factory=list)


@dataclass
class ArticleContent:
    """Readable article content extracted from a :class:`FetchedDocument`."""

    title: str
    text: str
    source_url: str
    author: Optional[str] = None
    published: Optional[str] = None
    publisher: Optional[str] = None
    site: Optional[str] = None
