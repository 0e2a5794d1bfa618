"""Content extraction: turns a :class:`FetchedDocument` into :class:`ArticleContent`.

The main-content heuristic is implemented here explicitly on top of
BeautifulSoup:

1. Noise elements (scripts, navigation, asides, footers, forms, page-level
   headers, hidden nodes, and containers whose class/id look like
   boilerplate) are removed.
2. Every paragraph-like node with enough text scores
   ``1 + commas + min(len / 100, 3)``; the score is credited to its parent
   and, halved, to its grandparent.
3. Candidates get a tag bonus and a class/id weight, then are scaled by
   ``1 - link_density``.  The best candidate wins and strong siblings are
   merged back in document order.

If the result holds fewer than ``min_text_chars`` characters of body text
(headings do not count), the page is parsed again and the heuristic reruns
without the class/id pruning of step 1.

Known publishers are handled by selector rules (:mod:`articrawl.crawler.sites`)
before the heuristic runs.  ``trafilatura`` is only used for metadata
(author, date, site name), never for the text itself.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import trafilatura
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from articrawl.crawler.errors import ExtractionFailed
from articrawl.crawler.models import ArticleContent, FetchedDocument
from articrawl.crawler.sites import SiteArticle, apply_rule, clean_text, find_rule

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 50
MIN_PARAGRAPH_CHARS = 25
TITLE_FALLBACK_CHARS = 120

NOISE_TAGS = [
    "script", "style", "noscript", "nav", "aside", "footer", "form",
    "iframe", "svg", "template", "button", "select", "input", "object", "embed",
    "canvas",
]
PARAGRAPH_TAGS = ["p", "pre", "blockquote", "td"]
BLOCK_TAGS = frozenset([
    "address", "article", "blockquote", "dd", "div", "dl", "dt", "figcaption",
    "figure", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "li", "main", "ol", "p",
    "pre", "section", "table", "tbody", "thead", "tr", "td", "th", "ul",
])
_STRUCTURAL = frozenset(["html", "body", "article", "main"])
_CONTENT_ROOTS = ["article", "main"]
HEADING_TAGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])

_TAG_BONUS = {
    "article": 10, "main": 10, "div": 5, "section": 3, "td": 3, "blockquote": 3,
    "pre": 3, "ol": -3, "ul": -3, "li": -3, "dl": -3, "th": -5,
}

_UNLIKELY = re.compile(
    r"\bads?\b|advert|banner|breadcrumb|combx|comment|community|cookie|disqus|"
    r"gdpr|menu|modal|newsletter|pager|pagination|popup|promo|related|remark|"
    r"rss|share|shoutbox|sidebar|skyscraper|social|sponsor|subscribe|widget",
    re.IGNORECASE,
)
_MAYBE = re.compile(r"article|body|column|content|main|story|text", re.IGNORECASE)
_POSITIVE = re.compile(
    r"article|body|content|entry|hentry|main|page|post|text|blog|story",
    re.IGNORECASE,
)
_NEGATIVE = re.compile(
    r"\bads?\b|hidden|banner|combx|comment|contact|foot|footnote|masthead|"
    r"meta|outbrain|promo|related|scroll|share|shoutbox|sidebar|skyscraper|"
    r"sponsor|shopping|tags|tool|widget",
    re.IGNORECASE,
)
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
_COMMAS = re.compile(r"[,，、]")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _parse(doc: FetchedDocument) -> BeautifulSoup:
    return BeautifulSoup(doc.body, "html.parser", from_encoding=doc.encoding)


def _attr_text(tag: Tag) -> str:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return " ".join(classes + [tag.get("id") or ""]).strip()


def _is_hidden(tag: Tag) -> bool:
    return (
        tag.has_attr("hidden")
        or tag.get("aria-hidden") == "true"
        or bool(_HIDDEN_STYLE.search(tag.get("style") or ""))
    )


def _strip_noise(soup: BeautifulSoup, *, prune_classes: bool = True) -> None:
    """Remove boilerplate elements from *soup* in place.

    Page-level ``<header>`` elements go; an article's own header (headline,
    byline) stays.  Class/id pruning never removes an element that wraps an
    ``<article>`` or ``<main>``.
    """
    for tag in soup(NOISE_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for tag in soup("header"):
        if not tag.decomposed and tag.find_parent(_CONTENT_ROOTS) is None:
            tag.decompose()
    for tag in soup.find_all(True):
        if tag.decomposed or tag.name in _STRUCTURAL:
            continue
        if _is_hidden(tag):
            tag.decompose()
            continue
        if not prune_classes:
            continue
        attrs = _attr_text(tag)
        if (
            attrs
            and _UNLIKELY.search(attrs)
            and not _MAYBE.search(attrs)
            and tag.find(_CONTENT_ROOTS) is None
        ):
            tag.decompose()


def _text_len(tag: Tag) -> int:
    return len(clean_text(tag.get_text(" ")))


def _link_density(tag: Tag) -> float:
    """Share of *tag*'s visible text that sits inside ``<a>`` elements."""
    total = _text_len(tag)
    if not total:
        return 0.0
    linked = sum(_text_len(a) for a in tag.find_all("a"))
    return min(linked / total, 1.0)


def _class_weight(tag: Tag) -> int:
    weight = 0
    for value in (" ".join(tag.get("class") or []), tag.get("id") or ""):
        if not value:
            continue
        if _NEGATIVE.search(value):
            weight -= 25
        if _POSITIVE.search(value):
            weight += 25
    return weight


def _paragraphs(root: Tag) -> List[Tag]:
    """Paragraph-like nodes, including ``<div>`` leaves that hold bare text."""
    nodes = root.find_all(PARAGRAPH_TAGS)
    for div in root.find_all("div"):
        if div.find(list(BLOCK_TAGS)) is None:
            nodes.append(div)
    return nodes


def score_candidates(root: Tag) -> Dict[int, Tuple[Tag, float]]:
    """Return ``{id(node): (node, score)}`` for every scored container."""
    raw: Dict[int, Tuple[Tag, float]] = {}
    for para in _paragraphs(root):
        text = clean_text(para.get_text(" "))
        if len(text) < MIN_PARAGRAPH_CHARS:
            continue
        score = 1 + len(_COMMAS.findall(text)) + min(len(text) / 100, 3)
        parent = para.parent
        grandparent = parent.parent if parent is not None else None
        for ancestor, share in ((parent, 1.0), (grandparent, 0.5)):
            if ancestor is None or isinstance(ancestor, BeautifulSoup):
                continue
            key = id(ancestor)
            if key not in raw:
                base = _TAG_BONUS.get(ancestor.name, 0) + _class_weight(ancestor)
                raw[key] = (ancestor, float(base))
            node, current = raw[key]
            raw[key] = (node, current + score * share)

    return {
        key: (node, score * (1 - _link_density(node)))
        for key, (node, score) in raw.items()
    }


def select_region(soup: BeautifulSoup) -> List[Tag]:
    """Pick the main-content container plus any strong siblings, in order."""
    root = soup.body or soup
    candidates = score_candidates(root)
    if not candidates:
        return [root]

    top, top_score = max(candidates.values(), key=lambda item: item[1])
    parent = top.parent
    if parent is None or isinstance(parent, BeautifulSoup):
        return [top]

    threshold = max(10.0, top_score * 0.2)
    region: List[Tag] = []
    for sibling in parent.find_all(True, recursive=False):
        if sibling is top:
            region.append(sibling)
            continue
        entry = candidates.get(id(sibling))
        if entry is not None and entry[1] >= threshold:
            region.append(sibling)
        elif sibling.name == "p":
            if _text_len(sibling) >= 80 and _link_density(sibling) < 0.25:
                region.append(sibling)
    return region


def block_lines(node: Tag, *, skip: frozenset = frozenset()) -> List[str]:
    """Text of *node* split at block boundaries, whitespace collapsed.

    Elements named in *skip* are left out together with their contents.
    """
    lines: List[str] = []
    buffer: List[str] = []

    def flush() -> None:
        line = clean_text("".join(buffer))
        buffer.clear()
        if line:
            lines.append(line)

    def walk(element: Tag) -> None:
        for child in element.children:
            if isinstance(child, Tag):
                if child.name == "br":
                    flush()
                    continue
                if child.name in skip:
                    flush()
                    continue
                is_block = child.name in BLOCK_TAGS
                if is_block:
                    flush()
                walk(child)
                if is_block:
                    flush()
            elif isinstance(child, NavigableString) and not isinstance(
                child, PreformattedString
            ):
                buffer.append(str(child))

    walk(node)
    flush()
    return lines


def _page_title(soup: BeautifulSoup) -> str:
    for attrs in ({"property": "og:title"}, {"name": "og:title"}, {"name": "twitter:title"}):
        meta = soup.find("meta", attrs=attrs)
        if meta is not None and clean_text(meta.get("content") or ""):
            return clean_text(meta["content"])
    if soup.title is not None:
        return clean_text(soup.title.get_text())
    return ""


def choose_title(page_title: str, headings: List[str], region: List[Tag], text: str) -> str:
    """Prefer a confidently identified heading, then the page title.

    A heading is confident when it sits inside the extracted region or is
    the only ``<h1>`` on the page.
    """
    for node in region:
        h1 = node if node.name == "h1" else node.find("h1")
        if h1 is not None and clean_text(h1.get_text(" ")):
            return clean_text(h1.get_text(" "))
    if len(headings) == 1:
        return headings[0]
    if page_title:
        return page_title
    if headings:
        return headings[0]
    first_line = text.split("\n", 1)[0]
    return first_line[:TITLE_FALLBACK_CHARS].rstrip()


def _metadata(doc: FetchedDocument, soup: BeautifulSoup) -> Optional[object]:
    """Run trafilatura's metadata parser; failures only cost us the metadata."""
    encoding = soup.original_encoding or doc.encoding or "utf-8"
    try:
        html = doc.body.decode(encoding, errors="replace")
        return trafilatura.extract_metadata(html, default_url=doc.final_url)
    except Exception:  # noqa: BLE001
        logger.warning("Metadata extraction failed for %s", doc.final_url, exc_info=True)
        return None


def _generic_extract(
    soup: BeautifulSoup, *, prune_classes: bool = True
) -> Tuple[List[Tag], str, int]:
    """Return the region, its text, and the length of its text without headings."""
    _strip_noise(soup, prune_classes=prune_classes)
    region = select_region(soup)
    lines: List[str] = []
    body: List[str] = []
    for node in region:
        lines.extend(block_lines(node))
        body.extend(block_lines(node, skip=HEADING_TAGS))
    return region, "\n".join(lines), len("\n".join(body))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract(doc: FetchedDocument, *, min_text_chars: int = MIN_TEXT_CHARS) -> ArticleContent:
    """Extract the article title, text and metadata from *doc*.

    Raises:
        ExtractionFailed: If the main content holds fewer than
            *min_text_chars* characters of non-heading text.
    """
    soup = _parse(doc)
    meta = _metadata(doc, soup)
    page_title = _page_title(soup)
    headings = [t for t in (clean_text(h.get_text(" ")) for h in soup.find_all("h1")) if t]

    site: Optional[SiteArticle] = None
    rule = find_rule(urlsplit(doc.final_url).hostname or "")
    if rule is not None:
        site = apply_rule(rule, soup)
        logger.debug("Site rule %r matched %s", rule.name, doc.final_url)

    if site is not None and len(site.text) >= min_text_chars:
        text = site.text
        body_len = len(text)
        title = site.title or choose_title(page_title, headings, [], text)
    else:
        if site is not None:
            logger.info(
                "Site rule %r found too little text on %s; using the generic extractor",
                site.site,
                doc.final_url,
            )
        region, text, body_len = _generic_extract(soup)
        if body_len < min_text_chars:
            logger.debug(
                "Only %d characters on %s; retrying without class/id pruning",
                body_len,
                doc.final_url,
            )
            region, text, body_len = _generic_extract(_parse(doc), prune_classes=False)
        title = (site.title if site else "") or choose_title(page_title, headings, region, text)

    if body_len < min_text_chars:
        raise ExtractionFailed(
            f"Extracted text is too short ({body_len} < {min_text_chars} characters) "
            f"for {doc.final_url}"
        )

    return ArticleContent(
        title=title,
        text=text,
        source_url=doc.final_url,
        author=(site.author if site else None) or getattr(meta, "author", None),
        published=(site.published if site else None) or getattr(meta, "date", None),
        publisher=(site.publisher if site else None) or getattr(meta, "sitename", None),
        site=site.site if site else None,
    )
