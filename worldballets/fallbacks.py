"""
Versioned fallback datasets.

When an adapter cannot fetch or extract anything, it serves a fixed placeholder
list so the store (and the calendar built on it) never goes empty. The lists
live in a TOML file rather than in adapter code, so they can be revised
independently of the extraction logic. Each company's set carries a version
string that ends up on the ScrapeResult.

Dates are either full ISO dates ("2025-11-06") or month-day ("12-10"), the
latter anchored to the current year plus an optional year_offset.
"""

import tomllib
from dataclasses import dataclass, field
from datetime import date
from importlib import resources
from pathlib import Path
from typing import Any, Optional

from worldballets.models import CompanyInfo, RawPerformance


@dataclass
class FallbackSet:
    company_id: str
    version: str
    company: Optional[CompanyInfo] = None
    performances: list[dict[str, Any]] = field(default_factory=list)

    def raw_performances(self, today: Optional[date] = None) -> list[RawPerformance]:
        today = today or date.today()
        raws = []
        for entry in self.performances:
            offset = int(entry.get("year_offset", 0))
            start = _resolve(entry["start"], today.year + offset)
            end = _resolve(entry.get("end", entry["start"]), today.year + offset)
            raws.append(RawPerformance(
                title=entry["title"],
                date_text=f"{start.isoformat()} to {end.isoformat()}",
                description=entry.get("description", ""),
                image_url=entry.get("image_url", ""),
                video_url=entry.get("video_url", ""),
            ))
        return raws


def _resolve(value: str, year: int) -> date:
    parts = str(value).split("-")
    if len(parts) == 3:
        return date.fromisoformat(str(value))
    if len(parts) == 2:
        return date(year, int(parts[0]), int(parts[1]))
    raise ValueError(f"Unrecognised fallback date '{value}' (expected YYYY-MM-DD or MM-DD)")


def load(path: Optional[Path] = None) -> dict[str, FallbackSet]:
    """Load fallback sets from `path`, or from the dataset bundled with the package."""
    if path:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    else:
        source = resources.files("worldballets").joinpath("data", "fallbacks.toml")
        data = tomllib.loads(source.read_text(encoding="utf-8"))

    sets: dict[str, FallbackSet] = {}
    for company_id, section in data.items():
        info = section.get("company")
        sets[company_id] = FallbackSet(
            company_id=company_id,
            version=str(section.get("version", "0")),
            company=CompanyInfo(**info) if info else None,
            performances=list(section.get("performances", [])),
        )
    return sets
