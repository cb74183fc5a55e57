"""
Free-text date range parsing.

Ballet company sites publish run dates in many ad hoc formats, e.g.

    "28 March–8 April 2025"        (Royal Ballet)
    "May 9–19, 2025"               (Boston Ballet)
    "February 27 – March 6 2026"   (National Ballet of Canada)
    "As of March 14, 2025 in the Opera House"   (Stuttgart Ballet)

parse_date_range() tries a fixed list of patterns in priority order and
returns the first that yields valid calendar dates. It never raises: text
that matches nothing gets the caller's context window (e.g. a season) or
"today through today + fallback_days".
"""

import re
from datetime import date, timedelta
from typing import NamedTuple, Optional

_MONTH_MAP = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_M = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
    r"aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\b\.?"
)
_D = r"\d{1,2}(?:st|nd|rd|th)?\b"
_Y = r"\d{4}"
_DASH = r"\s*(?:[-–—]|\bto\b|\buntil\b)\s*"
_OPT_YEAR = rf"(?:,?\s+(?P<y>{_Y}))?"


def _m(name: str) -> str:
    return rf"(?P<{name}>{_M})"


def _d(name: str) -> str:
    return rf"(?P<{name}>{_D})"


# (form name, compiled pattern), in priority order
_FORMS: list[tuple[str, re.Pattern]] = [
    (name, re.compile(pattern, re.IGNORECASE))
    for name, pattern in (
        # March 28, 2025 – April 8, 2025
        ("cross_month_full",
         rf"\b{_m('m1')}\s+{_d('d1')},?\s+(?P<y1>{_Y}){_DASH}{_m('m2')}\s+{_d('d2')},?\s+(?P<y2>{_Y})"),
        # 28 March 2025 – 8 April 2025
        ("day_month_full",
         rf"\b{_d('d1')}\s+{_m('m1')},?\s+(?P<y1>{_Y}){_DASH}{_d('d2')}\s+{_m('m2')},?\s+(?P<y2>{_Y})"),
        # March 28 – April 8, 2025
        ("cross_month",
         rf"\b{_m('m1')}\s+{_d('d1')}{_DASH}{_m('m2')}\s+{_d('d2')}{_OPT_YEAR}"),
        # May 9–19, 2025
        ("same_month",
         rf"\b{_m('m1')}\s+{_d('d1')}{_DASH}{_d('d2')}{_OPT_YEAR}"),
        # 28 March–8 April 2025
        ("day_month_cross",
         rf"\b{_d('d1')}\s+{_m('m1')}{_DASH}{_d('d2')}\s+{_m('m2')}{_OPT_YEAR}"),
        # 10–20 June 2025
        ("day_range_month",
         rf"\b{_d('d1')}{_DASH}{_d('d2')}\s+{_m('m1')}{_OPT_YEAR}"),
        # As of March 14, 2025
        ("as_of",
         rf"\bas\s+of\s+{_m('m1')}\s+{_d('d1')},?\s+(?P<y>{_Y})"),
        # July 20 / 27, 2025
        ("day_list",
         rf"\b{_m('m1')}\s+(?P<days>\d{{1,2}}(?:\s*/\s*\d{{1,2}})+)\b{_OPT_YEAR}"),
        # 28 March 2025
        ("single_day_month",
         rf"\b{_d('d1')}\s+{_m('m1')},?\s+(?P<y>{_Y})"),
        # March 28, 2025
        ("single_month_day",
         rf"\b{_m('m1')}\s+{_d('d1')},?\s+(?P<y>{_Y})"),
    )
]

_ISO_RE = re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)")
_MONTH_RE = re.compile(_M, re.IGNORECASE)
_DAY_RE = re.compile(r"(?<![\d:])(\d{1,2})(?:st|nd|rd|th)?(?![\d:])", re.IGNORECASE)
_YEAR_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")
_SEASON_RE = re.compile(r"(?<!\d)(20\d{2})\s*[-/–]?\s*(\d{2})(?!\d)")
_SINGLE_YEAR_RE = re.compile(r"(?<!\d)(20\d{2})(?!\d)")


class DateRange(NamedTuple):
    start: date
    end: date
    form: str   # name of the matching pattern, or "context" / "default"

    @property
    def fallback(self) -> bool:
        return self.form in ("context", "default")


def month_number(token: str) -> Optional[int]:
    """Return 1-12 for a month name or abbreviation ("Sept.", "MARCH"), else None."""
    token = token.strip().rstrip(".").lower()
    if not _MONTH_RE.fullmatch(token):
        return None
    return _MONTH_MAP.get(token[:3])


def _day(token: str) -> int:
    return int(re.match(r"\d+", token).group())


def parse_date_range(
    text: str,
    *,
    today: Optional[date] = None,
    default_year: Optional[int] = None,
    context: Optional[tuple[date, date]] = None,
    fallback_days: int = 14,
    open_run_days: int = 14,
) -> DateRange:
    """
    Parse a free-text date or date range.

    Args:
        text:          Text harvested from markup.
        today:         Reference date for the default window and year inference.
        default_year:  Year to use when the matched form has none. Callers infer it
                       from the title or page URL with infer_year(); falls back to
                       today's year.
        context:       Window to use when nothing matches (e.g. a season).
        fallback_days: Length of the default window when there is no context.
        open_run_days: Length of an "As of <date>" open run.
    """
    today = today or date.today()
    year = default_year or today.year
    text = " ".join((text or "").split())

    result = _parse_iso(text)
    if result is None:
        for name, pattern in _FORMS:
            match = pattern.search(text)
            if not match:
                continue
            try:
                result = _build(name, match, year, open_run_days)
            except ValueError:
                # Impossible calendar date such as "February 30"
                result = None
            if result is not None:
                break

    if result is None:
        result = _parse_loose(text, year)

    if result is None:
        if context is not None:
            return DateRange(min(context), max(context), "context")
        return DateRange(today, today + timedelta(days=fallback_days), "default")

    if result.end < result.start:
        result = DateRange(result.end, result.start, result.form)
    return result


def _parse_iso(text: str) -> Optional[DateRange]:
    found = []
    for y, m, d in _ISO_RE.findall(text):
        try:
            found.append(date(int(y), int(m), int(d)))
        except ValueError:
            continue
    if not found:
        return None
    return DateRange(found[0], found[-1], "iso")


def _build(name: str, match: re.Match, default_year: int, open_run_days: int) -> Optional[DateRange]:
    g = match.groupdict()
    m1 = month_number(g["m1"])
    m2 = month_number(g["m2"]) if g.get("m2") else m1
    if m1 is None or m2 is None:
        return None

    if name in ("cross_month_full", "day_month_full"):
        start = date(int(g["y1"]), m1, _day(g["d1"]))
        end = date(int(g["y2"]), m2, _day(g["d2"]))
        return DateRange(start, end, name)

    year = int(g["y"]) if g.get("y") else default_year

    if name == "as_of":
        start = date(year, m1, _day(g["d1"]))
        return DateRange(start, start + timedelta(days=open_run_days), name)

    if name == "day_list":
        days = [int(d) for d in re.findall(r"\d+", g["days"])]
        return DateRange(date(year, m1, days[0]), date(year, m1, days[-1]), name)

    if name in ("single_day_month", "single_month_day"):
        day = date(year, m1, _day(g["d1"]))
        return DateRange(day, day, name)

    # Shared year: the stated year belongs to the end date, so a run that
    # wraps December -> January starts in the previous year.
    start_year = year - 1 if m1 > m2 else year
    start = date(start_year, m1, _day(g["d1"]))
    end = date(year, m2, _day(g["d2"]))
    return DateRange(start, end, name)


def _parse_loose(text: str, default_year: int) -> Optional[DateRange]:
    """Last resort: any month tokens plus two day tokens anywhere in the text."""
    months = [month_number(m) for m in _MONTH_RE.findall(text)]
    months = [m for m in months if m]
    if not months:
        return None

    year_match = _YEAR_RE.search(text)
    year = int(year_match.group(1)) if year_match else default_year
    without_years = _YEAR_RE.sub(" ", text)
    days = [int(d) for d in _DAY_RE.findall(without_years)]
    days = [d for d in days if 1 <= d <= 31]
    if len(days) < 2:
        return None

    start_month = months[0]
    end_month = months[1] if len(months) > 1 else months[0]
    try:
        start = date(year, start_month, days[0])
        end = date(year, end_month, days[1])
    except ValueError:
        return None
    return DateRange(start, end, "loose")


def infer_year(*texts: Optional[str]) -> Optional[int]:
    """
    Return the first plausible year found in any of the texts (title, URL path...).

    Season slugs such as "202425" or "2024-25" yield their first year.
    """
    for text in texts:
        if not text:
            continue
        m = _SEASON_RE.search(text)
        if m and _is_season(m):
            return int(m.group(1))
        m = _SINGLE_YEAR_RE.search(text)
        if m:
            return int(m.group(1))
    return None


def season_window(text: Optional[str]) -> Optional[tuple[date, date]]:
    """
    Return the date window a season label covers.

    "2024-25" / "202425" -> 1 Aug 2024 .. 31 Jul 2025; "2025" -> the calendar year.
    """
    if not text:
        return None
    m = _SEASON_RE.search(text)
    if m and _is_season(m):
        first = int(m.group(1))
        return date(first, 8, 1), date(first + 1, 7, 31)
    m = _SINGLE_YEAR_RE.search(text)
    if m:
        year = int(m.group(1))
        return date(year, 1, 1), date(year, 12, 31)
    return None


def _is_season(m: re.Match) -> bool:
    first = int(m.group(1))
    return (first + 1) % 100 == int(m.group(2))
