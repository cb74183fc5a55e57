"""
Scrape orchestration.

Per company the flow is linear: adapter (fetch + extract) -> normalize ->
reconcile -> flag pass. Nothing is written until every fetch for the company
has finished, and all writes happen in one transaction, so a failure or a
cancellation leaves the company exactly as it was.
"""

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

import worldballets.config as cfg_module
import worldballets.db as db_module
import worldballets.fallbacks as fallbacks_module
import worldballets.reconcile as reconcile
from worldballets.errors import ScrapeCancelled
from worldballets.fallbacks import FallbackSet
from worldballets.fetch import Fetcher
from worldballets.models import Company
from worldballets.normalize import normalize
from worldballets.scrapers import get_adapter_class

log = logging.getLogger(__name__)


@dataclass
class CompanyReport:
    company_id: str
    fetched: int = 0
    fallback_used: bool = False
    reason: Optional[str] = None
    fallback_version: Optional[str] = None
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    # Fallback data was ignored because stored performances already exist
    kept_last_known_good: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def make_fetcher(cfg: dict, cancel: Optional[threading.Event] = None) -> Fetcher:
    settings = cfg_module.get_pipeline(cfg)
    return Fetcher(
        user_agent=settings["user_agent"],
        timeout=settings["request_timeout"],
        render_timeout=settings["render_timeout"],
        min_delay=settings["min_delay"],
        max_delay=settings["max_delay"],
        cancel=cancel,
    )


def scrape_one(
    conn: sqlite3.Connection,
    cfg: dict,
    company_id: str,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    cancel: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
    fallbacks: Optional[dict[str, FallbackSet]] = None,
    fetcher: Optional[Fetcher] = None,
) -> CompanyReport:
    """
    Scrape one company and persist the result.

    Raises UnknownCompanyError, ScrapeCancelled, sqlite3.Error and anything
    unexpected from the adapter; fetch failures are absorbed as fallback data.
    `deadline` is a time.monotonic() value bounding the whole batch.
    """
    adapter_cls = get_adapter_class(company_id)
    settings = cfg_module.get_pipeline(cfg)
    today = today or date.today()
    now = now or datetime.now(timezone.utc)
    if fallbacks is None:
        fallbacks = fallbacks_module.load(cfg_module.get_fallbacks_path(cfg))
    fetcher = fetcher or make_fetcher(cfg, cancel)
    cancel = cancel or fetcher.cancel

    adapter = adapter_cls(
        cfg_module.get_company(cfg, company_id),
        fetcher.for_company(settings["company_timeout"], deadline),
        fallbacks.get(company_id),
        today=today,
        dedupe_tolerance_days=settings["dedupe_tolerance_days"],
    )

    log.info("%s: scraping %s", company_id, adapter.company_name)
    info = adapter.fetch_company_info()
    result = adapter.fetch_performances()
    report = CompanyReport(
        company_id=company_id,
        fetched=len(result),
        fallback_used=result.fallback_used,
        reason=result.reason,
        fallback_version=result.fallback_version,
    )

    candidates = [
        normalize(
            raw,
            company_id,
            adapter.base_url or adapter.website_url,
            today=today,
            now=now,
            placeholder_service=settings["placeholder_service"],
            fallback_days=settings["fallback_days"],
        )
        for raw in result
    ]

    if (cancel is not None and cancel.is_set()) or (deadline is not None and time.monotonic() >= deadline):
        raise ScrapeCancelled(f"{company_id}: cancelled before writing")

    with conn:
        db_module.upsert_company(conn, Company(
            company_id=company_id,
            name=info.name,
            short_name=info.short_name,
            description=info.description,
            logo_url=info.logo_url,
            website_url=info.website_url,
            last_scraped=now,
        ))
        if result.fallback_used and db_module.count_company_performances(conn, company_id):
            report.kept_last_known_good = True
            log.info("%s: keeping stored performances instead of fallback data", company_id)
        else:
            summary = reconcile.upsert(
                conn,
                company_id,
                candidates,
                today=today,
                now=now,
                tolerance_days=settings["match_tolerance_days"],
                placeholder_service=settings["placeholder_service"],
                excluded_patterns=settings.get("excluded_titles"),
            )
            report.inserted, report.updated, report.skipped = summary.inserted, summary.updated, summary.skipped
        reconcile.update_flags(conn, company_id, today)

    log.info(
        "%s: %d fetched%s, %d inserted, %d updated",
        company_id, report.fetched, " (fallback)" if report.fallback_used else "", report.inserted, report.updated,
    )
    return report


def scrape_all(
    conn: sqlite3.Connection,
    cfg: dict,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    cancel: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
    fallbacks: Optional[dict[str, FallbackSet]] = None,
    fetcher: Optional[Fetcher] = None,
) -> list[CompanyReport]:
    """
    Scrape every enabled company in turn.

    A failing company is logged and reported; the others still run. Once
    `cancel` is set or `deadline` passes, the remaining companies are
    reported as cancelled without being fetched.
    """
    cancel = cancel or threading.Event()
    if fallbacks is None:
        fallbacks = fallbacks_module.load(cfg_module.get_fallbacks_path(cfg))
    fetcher = fetcher or make_fetcher(cfg, cancel)
    shared: dict[str, Any] = dict(
        today=today, now=now, cancel=cancel, deadline=deadline, fallbacks=fallbacks, fetcher=fetcher,
    )

    reports: list[CompanyReport] = []
    for company_id in cfg_module.get_companies(cfg):
        if deadline is not None and time.monotonic() >= deadline:
            cancel.set()
        if cancel.is_set():
            log.warning("%s: skipped, batch cancelled", company_id)
            reports.append(CompanyReport(company_id, error="cancelled"))
            continue
        try:
            reports.append(scrape_one(conn, cfg, company_id, **shared))
        except ScrapeCancelled as exc:
            log.warning("%s: abandoned (%s)", company_id, exc)
            cancel.set()
            reports.append(CompanyReport(company_id, error="cancelled"))
        except Exception as exc:
            log.exception("%s: scrape failed", company_id)
            reports.append(CompanyReport(company_id, error=f"{type(exc).__name__}: {exc}"))
    return reports


def refresh_flags(conn: sqlite3.Connection, company_ids: list[str], today: Optional[date] = None) -> None:
    """Recompute flags without scraping (e.g. from a daily cron after midnight)."""
    with conn:
        for company_id in company_ids:
            reconcile.update_flags(conn, company_id, today)


def clear_company(conn: sqlite3.Connection, company_id: str) -> int:
    """Delete every stored performance of the company; the company row stays."""
    with conn:
        removed = db_module.delete_company_performances(conn, company_id)
    log.info("%s: removed %d performances", company_id, removed)
    return removed
