"""
Extraction heuristics shared by the company adapters.

Every helper here degrades to an empty string rather than raising, so an
adapter can chain them: try a precise selector, then a broader one, then a
text-pattern heuristic, then a default.
"""

import logging
import re
from datetime import date
from typing import Iterable, Optional, Sequence

from bs4 import Tag

from worldballets.models import RawPerformance
from worldballets.normalize import clean_text, embed_video_url, parse_raw_dates

log = logging.getLogger(__name__)

# A month name followed somewhere by a four-digit year
DATE_LIKE_RE = re.compile(
    r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\b.*\d{4}",
    re.IGNORECASE,
)
MONTH_RE = re.compile(r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\b", re.IGNORECASE)
_BACKGROUND_RE = re.compile(r"background(?:-image)?\s*:\s*[^;]*url\(\s*['\"]?([^'\")]+)['\"]?\s*\)", re.IGNORECASE)
_IMG_ATTRS = ("src", "data-src", "data-lazy-src", "data-image-url", "data-original")


def first_text(el: Tag, selectors: Sequence[str]) -> str:
    """Text of the first element, across the selectors in order, that has any."""
    for selector in selectors:
        for node in el.select(selector):
            text = clean_text(node.get_text(" ", strip=True))
            if text:
                return text
    return ""


def looks_like_date(text: str) -> bool:
    return bool(DATE_LIKE_RE.search(text or ""))


def find_date_text(el: Tag, selectors: Sequence[str], fallback_tags: str = "p") -> str:
    """Date text from the given selectors, else the first paragraph that reads like a date."""
    text = first_text(el, selectors)
    if text:
        return text
    for node in el.select(fallback_tags):
        text = clean_text(node.get_text(" ", strip=True))
        if looks_like_date(text):
            return text
    return ""


def first_paragraph(
    el: Tag,
    min_length: int = 50,
    selector: str = "p",
    exclude: Iterable[str] = (),
) -> str:
    """
    First paragraph long enough to be body text.

    Shorter blocks are usually captions, dates or button labels. Paragraphs that
    read like a date, or that contain any of the `exclude` strings (e.g. the
    title), are passed over.
    """
    exclude = [e for e in exclude if e]
    for node in el.select(selector):
        text = clean_text(node.get_text(" ", strip=True))
        if len(text) <= min_length or looks_like_date(text):
            continue
        if any(e in text for e in exclude):
            continue
        return text
    return ""


def joined_paragraphs(el: Tag, selector: str = "p", min_length: int = 30, exclude: Iterable[str] = ()) -> str:
    """All substantial paragraphs joined with spaces (used for company descriptions)."""
    exclude = [e for e in exclude if e]
    parts = []
    for node in el.select(selector):
        text = clean_text(node.get_text(" ", strip=True))
        if len(text) > min_length and not any(e in text for e in exclude):
            parts.append(text)
    return " ".join(parts)


def background_image(style: Optional[str]) -> str:
    m = _BACKGROUND_RE.search(style or "")
    return m.group(1).strip() if m else ""


def img_src(img: Optional[Tag]) -> str:
    if img is None:
        return ""
    for attr in _IMG_ATTRS:
        value = (img.get(attr) or "").strip()
        if value and not value.startswith("data:"):
            return value
    srcset = (img.get("srcset") or "").strip()
    if srcset:
        return srcset.split(",")[0].split()[0]
    return ""


def find_image(el: Tag, selectors: Sequence[str] = ("img",), search_around: bool = True) -> str:
    """
    Image URL for a block, trying in order:
      1. an <img> inside the block (src, data-src and friends)
      2. an inline background-image on the block or any descendant
      3. an <img> in the parent, then in siblings
      4. a background-image on the parent
    Returns "" when nothing is found; the normalizer substitutes a placeholder.
    """
    for selector in selectors:
        for img in el.select(selector):
            src = img_src(img) if img.name == "img" else img_src(img.find("img"))
            if not src:
                src = img.get("data-image-url", "") or background_image(img.get("style"))
            if src:
                return src

    src = background_image(el.get("style"))
    if src:
        return src
    styled = el.select_one("[style*='background']")
    if styled is not None:
        src = background_image(styled.get("style"))
        if src:
            return src

    if not search_around:
        return ""

    parent = el.parent
    if isinstance(parent, Tag):
        src = img_src(parent.find("img"))
        if src:
            return src
        for sibling in el.find_next_siblings() + el.find_previous_siblings():
            src = img_src(sibling if sibling.name == "img" else sibling.find("img"))
            if src:
                return src
        src = background_image(parent.get("style"))
        if src:
            return src
    return ""


def find_video(el: Tag) -> str:
    """First YouTube/Vimeo link or iframe in the block, as an embeddable URL."""
    for node in el.select("a[href], iframe[src], iframe[data-src]"):
        url = node.get("href") or node.get("src") or node.get("data-src") or ""
        embed = embed_video_url(url)
        if embed:
            return embed
    return ""


def title_from_slug(url: str) -> str:
    """'https://site/performances/the-nutcracker/' -> 'The Nutcracker'."""
    slug = url.split("?")[0].split("#")[0].rstrip("/").rsplit("/", 1)[-1]
    return " ".join(word.capitalize() for word in slug.split("-") if word)


def title_key(title: str) -> str:
    return clean_text(title).casefold()


def dedupe(
    candidates: Iterable[RawPerformance],
    tolerance_days: int = 2,
    today: Optional[date] = None,
) -> list[RawPerformance]:
    """
    Drop repeats within one scrape pass: same normalized title and start dates
    no more than `tolerance_days` apart. The first occurrence is kept.
    """
    kept: list[RawPerformance] = []
    seen: list[tuple[str, date]] = []
    for raw in candidates:
        key = title_key(raw.title)
        start = parse_raw_dates(raw, today=today).start
        if any(k == key and abs((s - start).days) <= tolerance_days for k, s in seen):
            log.debug("Skipping duplicate candidate %r (%s)", raw.title, raw.date_text)
            continue
        kept.append(raw)
        seen.append((key, start))
    return kept


def season_years(today: date, count: int = 2) -> list[int]:
    """First years of the current and following seasons (seasons turn over on 1 August)."""
    first = today.year if today.month >= 8 else today.year - 1
    return [first + i for i in range(count)]
