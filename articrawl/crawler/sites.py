"""Publisher-specific extraction rules.

A :class:`SiteRule` is a set of CSS selectors tuned to one publisher's
markup.  Rules are tried before the generic heuristic; when a rule's body
comes up short the extractor falls back to the heuristic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

_WS = re.compile(r"\s+")
_BREAK = "\x00"


def clean_text(value: str) -> str:
    """Collapse runs of whitespace to single spaces and strip the ends."""
    return _WS.sub(" ", value).strip()


@dataclass(frozen=True)
class SiteRule:
    name: str
    hosts: Tuple[str, ...]
    title: Tuple[str, ...]
    body: Tuple[str, ...]
    author: Tuple[str, ...] = ()
    date: Tuple[str, ...] = ()
    publisher: Tuple[str, ...] = ()
    default_publisher: Optional[str] = None
    paragraph_filter: Optional[Callable[[str], bool]] = field(default=None, compare=False)
    author_parser: Optional[Callable[[BeautifulSoup], Optional[str]]] = field(
        default=None, compare=False
    )
    date_parser: Optional[Callable[[BeautifulSoup], Optional[str]]] = field(
        default=None, compare=False
    )

    def matches(self, host: str) -> bool:
        host = host.lower()
        return any(host == h or host.endswith("." + h) for h in self.hosts)


@dataclass
class SiteArticle:
    site: str
    title: str
    paragraphs: List[str]
    author: Optional[str] = None
    published: Optional[str] = None
    publisher: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.paragraphs)


def _first_text(soup: BeautifulSoup, selectors: Tuple[str, ...]) -> str:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is None:
            continue
        # <img alt="Publisher"> logos carry their text in the alt attribute
        value = node.get("alt", "") if node.name == "img" else node.get_text(" ")
        value = clean_text(value)
        if value:
            return value
    return ""


def _block_paragraphs(node: Tag) -> List[str]:
    # Naver keeps the whole story in one container separated by <br> tags;
    # source newlines inside a sentence are plain whitespace
    for br in node.find_all("br"):
        br.replace_with(_BREAK)
    return [clean_text(piece) for piece in node.get_text().split(_BREAK)]


def _paragraphs(soup: BeautifulSoup, selectors: Tuple[str, ...]) -> List[str]:
    for selector in selectors:
        nodes = soup.select(selector)
        if not nodes:
            continue
        if len(nodes) == 1 and nodes[0].find("p") is None:
            lines = _block_paragraphs(nodes[0])
        else:
            lines = [clean_text(n.get_text(" ")) for n in nodes]
        lines = [line for line in lines if line]
        if lines:
            return lines
    return []


# ---------------------------------------------------------------------------
# AP News: bylines and timestamps live inside the story body as paragraphs
# ---------------------------------------------------------------------------

def _ap_is_story(text: str) -> bool:
    return not (
        "Advertisement" in text
        or "___" in text
        or text.startswith("By ")
        or "Updated" in text
        or "Published" in text
    )


def _ap_author(soup: BeautifulSoup) -> Optional[str]:
    for p in soup.select(".RichTextStoryBody p"):
        text = clean_text(p.get_text(" "))
        if text.startswith("By "):
            return text[3:].strip() or None
    return None


def _ap_date(soup: BeautifulSoup) -> Optional[str]:
    for p in soup.select(".RichTextStoryBody p"):
        text = clean_text(p.get_text(" "))
        if "Updated" in text or "Published" in text:
            return text
    return None


NAVER = SiteRule(
    name="naver",
    hosts=("news.naver.com",),
    title=(".media_end_head_headline span", ".media_end_head_headline", "h2#title_area"),
    body=("#dic_area", "#newsct_article"),
    author=(".media_end_head_journalist_name", ".byline_s"),
    date=(".media_end_head_info_datestamp_time._ARTICLE_DATE_TIME",),
    publisher=(".media_end_head_top_logo_text", ".media_end_head_top_logo img"),
)

CNN = SiteRule(
    name="cnn",
    hosts=("cnn.com",),
    title=(".headline__text", "h1.headline"),
    body=(".article__content .paragraph",),
    author=(".byline__name", ".source__text"),
    publisher=(".source__text",),
    default_publisher="CNN",
)

AP = SiteRule(
    name="ap",
    hosts=("apnews.com",),
    title=("h1",),
    body=(".RichTextStoryBody p",),
    default_publisher="AP News",
    paragraph_filter=_ap_is_story,
    author_parser=_ap_author,
    date_parser=_ap_date,
)

SITE_RULES: Tuple[SiteRule, ...] = (NAVER, CNN, AP)


def find_rule(host: str) -> Optional[SiteRule]:
    """Return the rule registered for *host*, if any."""
    for rule in SITE_RULES:
        if rule.matches(host):
            return rule
    return None


def apply_rule(rule: SiteRule, soup: BeautifulSoup) -> SiteArticle:
    """Run *rule*'s selectors against *soup*.  Missing pieces come back empty."""
    paragraphs = _paragraphs(soup, rule.body)
    if rule.paragraph_filter is not None:
        paragraphs = [p for p in paragraphs if rule.paragraph_filter(p)]

    if rule.author_parser is not None:
        author = rule.author_parser(soup)
    else:
        author = _first_text(soup, rule.author) or None
    if rule.date_parser is not None:
        published = rule.date_parser(soup)
    else:
        published = _first_text(soup, rule.date) or None

    return SiteArticle(
        site=rule.name,
        title=_first_text(soup, rule.title),
        paragraphs=paragraphs,
        author=author,
        published=published,
        publisher=_first_text(soup, rule.publisher) or rule.default_publisher,
    )
