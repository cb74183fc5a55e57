"""
Reconciliation of freshly scraped performances against the store.

Sites report slightly different dates for the same run from one scrape to
the next, so identity is fuzzy: a stored record and a candidate are the same
performance when they belong to the same company, have the same trimmed
title, and both their start and end dates lie within `tolerance_days` of each
other. A match is updated in place (dates included, last write wins);
anything unmatched is inserted.

After upsert, update_flags() recomputes is_past / is_current / is_next for
every stored performance of the company.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, NamedTuple, Optional

import worldballets.db as db_module
from worldballets.models import Performance
from worldballets.normalize import DEFAULT_PLACEHOLDER_SERVICE, is_excluded_title

log = logging.getLogger(__name__)


@dataclass
class UpsertSummary:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


class Flags(NamedTuple):
    is_past: bool
    is_current: bool
    is_next: bool


def is_same_performance(stored: Performance, candidate: Performance, tolerance_days: int = 3) -> bool:
    return (
        stored.company_id == candidate.company_id
        and stored.title.strip() == candidate.title.strip()
        and abs((stored.start_date - candidate.start_date).days) <= tolerance_days
        and abs((stored.end_date - candidate.end_date).days) <= tolerance_days
    )


def find_match(
    stored: Iterable[Performance],
    candidate: Performance,
    tolerance_days: int = 3,
    claimed: Optional[set[int]] = None,
) -> Optional[Performance]:
    """Return the first stored record (in start-date order) matching the candidate and not yet claimed."""
    claimed = claimed or set()
    for record in stored:
        if record.id in claimed:
            continue
        if is_same_performance(record, candidate, tolerance_days):
            return record
    return None


def upsert(
    conn: sqlite3.Connection,
    company_id: str,
    candidates: Iterable[Performance],
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    tolerance_days: int = 3,
    placeholder_service: str = DEFAULT_PLACEHOLDER_SERVICE,
    excluded_patterns: Optional[Iterable[str]] = None,
) -> UpsertSummary:
    """
    Insert or update each candidate for one company.

    Runs inside the caller's transaction; nothing is committed here. Each
    stored record is updated at most once per pass. A record inserted in
    this pass is still matchable, so a repeat of the same run updates it
    instead of adding a second row; a candidate whose only match was
    already updated in this pass is skipped as a duplicate.

    `excluded_patterns` (regexes) replaces the built-in section-header list.
    """
    today = today or date.today()
    now = now or datetime.now(timezone.utc)
    summary = UpsertSummary()

    stored = db_module.get_company_performances(conn, company_id)
    claimed: set[int] = set()

    for candidate in candidates:
        candidate.company_id = company_id
        candidate.title = candidate.title.strip()
        if not candidate.title or is_excluded_title(candidate.title, excluded_patterns):
            log.warning("%s: skipping non-performance title %r", company_id, candidate.title)
            summary.skipped += 1
            continue

        match = find_match(stored, candidate, tolerance_days, claimed)
        if match is None and find_match(stored, candidate, tolerance_days) is not None:
            log.debug("%s: duplicate of a run already updated this pass: %r", company_id, candidate.title)
            summary.skipped += 1
            continue
        if match is not None:
            _apply_update(match, candidate, today, now, placeholder_service)
            db_module.update_performance(conn, match)
            claimed.add(match.id)
            summary.updated += 1
            log.debug("%s: updated %r (id=%s)", company_id, match.title, match.id)
        else:
            record = Performance(
                company_id=company_id,
                title=candidate.title,
                start_date=candidate.start_date,
                end_date=candidate.end_date,
                description=candidate.description,
                image_url=candidate.image_url,
                video_url=candidate.video_url,
                is_past=candidate.end_date < today,
                is_current=False,
                is_next=False,
                last_scraped=now,
            )
            db_module.insert_performance(conn, record)
            stored.append(record)
            summary.inserted += 1
            log.debug("%s: inserted %r (id=%s)", company_id, record.title, record.id)

    return summary


def _apply_update(
    record: Performance,
    candidate: Performance,
    today: date,
    now: datetime,
    placeholder_service: str,
) -> None:
    record.start_date = candidate.start_date
    record.end_date = candidate.end_date
    # An empty scrape never erases stored text, and a placeholder never replaces a real image
    if candidate.description:
        record.description = candidate.description
    if candidate.image_url and not (
        candidate.image_url.startswith(placeholder_service)
        and record.image_url
        and not record.image_url.startswith(placeholder_service)
    ):
        record.image_url = candidate.image_url
    if candidate.video_url:
        record.video_url = candidate.video_url
    record.is_past = record.end_date < today
    record.last_scraped = now


def compute_flags(performances: Iterable[Performance], today: date) -> dict[int, Flags]:
    """
    Derive flags for one company's performances.

    is_current: today within [start, end]. is_past: end before today.
    is_next: the single earliest performance starting strictly after today
    (ties go to the lowest id). A run starting today is current, never next.
    """
    flags: dict[int, Flags] = {}
    next_id: Optional[int] = None
    for p in sorted(performances, key=lambda p: (p.start_date, p.id or 0)):
        current = p.start_date <= today <= p.end_date
        flags[p.id] = Flags(is_past=p.end_date < today, is_current=current, is_next=False)
        if next_id is None and not current and p.start_date > today:
            next_id = p.id
    if next_id is not None:
        flags[next_id] = flags[next_id]._replace(is_next=True)
    return flags


def update_flags(
    conn: sqlite3.Connection,
    company_id: str,
    today: Optional[date] = None,
) -> dict[int, Flags]:
    """Reset and recompute flags for every stored performance of the company."""
    today = today or date.today()
    performances = db_module.get_company_performances(conn, company_id)
    flags = compute_flags(performances, today)
    for performance_id, f in flags.items():
        db_module.set_performance_flags(conn, performance_id, f.is_past, f.is_current, f.is_next)
    return flags
