"""Maps :class:`ArticleContent` onto the JSON shape served to clients."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from articrawl.crawler.models import ArticleContent


class CrawlResponse(BaseModel):
    """Public crawl result.  Serialised with camelCase keys; ``None`` fields are dropped."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    text: str
    source_url: str = Field(alias="sourceUrl")
    author: Optional[str] = None
    publish_date: Optional[str] = Field(default=None, alias="publishDate")
    publisher: Optional[str] = None
    site: Optional[str] = None
    word_count: int = Field(alias="wordCount")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def assemble(content: ArticleContent) -> CrawlResponse:
    """Package *content* for the route boundary.  Never fails."""
    return CrawlResponse(
        title=content.title,
        text=content.text,
        source_url=content.source_url,
        author=content.author,
        publish_date=content.published,
        publisher=content.publisher,
        site=content.site,
        word_count=len(content.text.split()),
    )
