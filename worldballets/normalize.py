import re
from datetime import date, datetime, timezone
from typing import Iterable, Optional
from urllib.parse import quote, urljoin

from worldballets.dates import DateRange, infer_year, parse_date_range, season_window
from worldballets.models import Performance, RawPerformance

DEFAULT_PLACEHOLDER_SERVICE = "https://via.placeholder.com/800x400.png"

# Ticketing and popularity banners that sites splice into description text
_NOISE_RE = re.compile(
    r"\b(?:selling fast|limited availability|low availability|sold out|"
    r"tickets (?:are )?on sale now|on sale now|buy tickets|book now|"
    r"few tickets (?:left|remaining)|last chance to (?:see|book)|best availability|"
    r"most popular|best ?seller|hot ticket|join the waiting list|waiting list)\b[!.:]*",
    re.IGNORECASE,
)
_SEPARATOR_RUN_RE = re.compile(r"(?:\s*[|•·]\s*){2,}")
_EDGE_SEPARATOR_RE = re.compile(r"^[\s|•·:\-–—]+|[\s|•·:\-–—]+$")

# Section headings and placeholder labels that selector heuristics mistake for productions
_EXCLUDED_TITLE_RE = re.compile(
    r"^upcoming(?: productions?| performances?| events?)?$|\bseason\b|\bproductions\b|"
    r"^unknown title$|^subscri|^(?:buy |get )?tickets?$|^explore$|^calendar$",
    re.IGNORECASE,
)

_YOUTUBE_RE = re.compile(
    r"(?:youtube(?:-nocookie)?\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts)/|.*[?&]v=)|youtu\.be/)"
    r"([^\"&?/\s]{11})"
)
_VIMEO_RE = re.compile(r"vimeo\.com/(?:video/|channels/[^/]+/|.*?/)?(\d+)")


def clean_text(text: Optional[str]) -> str:
    """Collapse all runs of whitespace (including newlines and nbsp) to single spaces."""
    return " ".join((text or "").split())


def is_excluded_title(title: str, patterns: Optional[Iterable[str]] = None) -> bool:
    """
    True for section headers ("Upcoming Productions", "2025/26 Season") and placeholder titles.

    `patterns` (case-insensitive regexes) replaces the built-in list.
    """
    text = clean_text(title)
    if patterns is None:
        return bool(_EXCLUDED_TITLE_RE.search(text))
    return any(re.search(p, text, re.IGNORECASE) for p in patterns)


def strip_noise(text: str) -> str:
    text = _NOISE_RE.sub(" ", text)
    text = _SEPARATOR_RUN_RE.sub(" | ", text)
    text = clean_text(text)
    return _EDGE_SEPARATOR_RE.sub("", text)


def resolve_url(url: Optional[str], base_url: str) -> str:
    """Make an image/video reference absolute against the company's base URL."""
    url = (url or "").strip()
    if not url or url.startswith(("data:", "javascript:")):
        return ""
    if url.startswith("//"):
        return "https:" + url
    if url.startswith(("http://", "https://")):
        return url
    return urljoin(base_url, url)


def embed_video_url(url: Optional[str]) -> str:
    """
    Canonicalise a YouTube or Vimeo link to its embeddable form.

    Returns "" for anything that isn't a recognised video host.
    """
    if not url:
        return ""
    m = _YOUTUBE_RE.search(url)
    if m:
        return f"https://www.youtube.com/embed/{m.group(1)}"
    m = _VIMEO_RE.search(url)
    if m:
        return f"https://player.vimeo.com/video/{m.group(1)}"
    return ""


def placeholder_image(title: str, service: str = DEFAULT_PLACEHOLDER_SERVICE) -> str:
    return f"{service}?text={quote(title)}"


def parse_raw_dates(
    raw: RawPerformance,
    today: Optional[date] = None,
    fallback_days: int = 14,
) -> DateRange:
    """
    Parse a candidate's date text, inferring a missing year from its title or page URL.

    A season label ("2024-25") also supplies the window used when nothing
    parses. Spring dates listed without a year belong to the season's second
    year, so a result that lands before the window is moved forward a year
    when that puts it inside.
    """
    window = season_window(raw.season)
    dates = parse_date_range(
        raw.date_text,
        today=today,
        default_year=infer_year(raw.title, raw.page_url, raw.season),
        context=window,
        fallback_days=fallback_days,
    )
    if window and not dates.fallback and dates.start < window[0]:
        shifted = _next_year(dates)
        if shifted and window[0] <= shifted.start <= window[1]:
            return shifted
    return dates


def _next_year(dates: DateRange) -> Optional[DateRange]:
    try:
        return dates._replace(
            start=dates.start.replace(year=dates.start.year + 1),
            end=dates.end.replace(year=dates.end.year + 1),
        )
    except ValueError:  # 29 February
        return None


def normalize(
    raw: RawPerformance,
    company_id: str,
    base_url: str,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    placeholder_service: str = DEFAULT_PLACEHOLDER_SERVICE,
    fallback_days: int = 14,
) -> Performance:
    """Turn an adapter candidate into a canonical Performance (not yet persisted)."""
    today = today or date.today()
    title = clean_text(raw.title)
    dates = parse_raw_dates(raw, today=today, fallback_days=fallback_days)

    image_url = resolve_url(raw.image_url, base_url) or placeholder_image(title, placeholder_service)
    video_url = embed_video_url(resolve_url(raw.video_url, base_url))

    return Performance(
        company_id=company_id,
        title=title,
        start_date=dates.start,
        end_date=dates.end,
        description=strip_noise(clean_text(raw.description)),
        image_url=image_url,
        video_url=video_url,
        is_past=dates.end < today,
        last_scraped=now or datetime.now(timezone.utc),
    )
