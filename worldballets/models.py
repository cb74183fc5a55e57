from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass
class CompanyInfo:
    name: str
    short_name: str
    description: str
    logo_url: str
    website_url: str


@dataclass
class Company:
    company_id: str    # Unique slug, matches config.toml section and adapter company_id
    name: str
    short_name: str
    description: str
    logo_url: str
    website_url: str
    last_scraped: Optional[datetime] = None


@dataclass
class RawPerformance:
    """A candidate performance as extracted from markup, before normalization."""
    title: str
    date_text: str
    description: str = ""
    image_url: str = ""
    video_url: str = ""
    page_url: str = ""   # Page the candidate came from; used for URL resolution and year inference
    season: str = ""     # e.g. "2024-25"; gives the date parser a context window


@dataclass
class Performance:
    company_id: str    # Foreign key to Company.company_id
    title: str
    start_date: date
    end_date: date
    description: str = ""
    image_url: str = ""
    video_url: str = ""
    is_past: bool = False
    is_current: bool = False
    is_next: bool = False
    last_scraped: Optional[datetime] = None
    # Populated by DB layer after insert
    id: Optional[int] = field(default=None, repr=False)


@dataclass
class ScrapeResult:
    """Outcome of an adapter run, tagged with whether fallback data was used."""
    performances: list[RawPerformance]
    fallback_used: bool = False
    reason: Optional[str] = None
    fallback_version: Optional[str] = None

    def __len__(self) -> int:
        return len(self.performances)

    def __iter__(self):
        return iter(self.performances)
