"""
Read-only HTTP API over the store, consumed by the calendar front end.

    uvicorn --factory worldballets.api:app_from_env   (or: wb serve)
"""

import logging
import sqlite3
import threading
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import worldballets.config as cfg_module
import worldballets.db as db_module
from worldballets.models import Company, Performance

log = logging.getLogger(__name__)

UPCOMING_DAYS = 30


def _company_json(company: Company) -> dict:
    return asdict(company)


def _performance_json(performance: Performance, company: Optional[Company] = None, enrich: bool = False) -> dict:
    data = asdict(performance)
    if enrich:
        data["company_name"] = company.name if company else "Unknown Company"
        data["company_short_name"] = company.short_name if company else "Unknown"
    return data


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date '{value}', expected YYYY-MM-DD") from None


def create_app(db_path: Union[Path, str], clock: Callable[[], date] = date.today) -> FastAPI:
    """
    Build the API over the database at `db_path`.

    `clock` supplies "today" for the current/upcoming/past filters.
    """
    conn = db_module.connect(db_path)
    # Sync endpoints run on a threadpool; sqlite3 connections are not safe for concurrent use
    lock = threading.Lock()
    app = FastAPI(title="World Ballets")
    app.state.conn = conn
    app.state.db_lock = lock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(sqlite3.Error)
    async def store_error(request: Request, exc: sqlite3.Error):
        log.error("Store error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Server error"})

    # --- Companies ---

    @app.get("/companies")
    def list_companies():
        with lock:
            companies = db_module.get_all_companies(conn)
        return [_company_json(c) for c in companies]

    @app.get("/companies/{company_id}")
    def get_company(company_id: str):
        with lock:
            company = db_module.get_company(conn, company_id)
        if company is None:
            raise HTTPException(status_code=404, detail="Company not found")
        return _company_json(company)

    @app.get("/companies/{company_id}/performances")
    def get_company_performances(company_id: str, past: bool = False):
        with lock:
            if db_module.get_company(conn, company_id) is None:
                raise HTTPException(status_code=404, detail="Company not found")
            performances = db_module.get_company_performances_by_status(conn, company_id, clock(), past=past)
        return [_performance_json(p) for p in performances]

    # --- Performances ---

    @app.get("/performances")
    def list_performances(
        current: bool = False,
        upcoming: bool = False,
        past: bool = False,
        limit: Optional[int] = Query(default=None, ge=1),
    ):
        with lock:
            listings = db_module.get_performances(
                conn, clock(), current=current, upcoming=upcoming, past=past, limit=limit,
            )
        return [_performance_json(p, c, enrich=True) for p, c in listings]

    @app.get("/performances/current")
    def current_performances():
        with lock:
            listings = db_module.get_current_performances(conn, clock())
        return [_performance_json(p, c, enrich=True) for p, c in listings]

    @app.get("/performances/upcoming")
    def upcoming_performances():
        with lock:
            listings = db_module.get_upcoming_performances(conn, clock(), days_ahead=UPCOMING_DAYS)
        return [_performance_json(p, c, enrich=True) for p, c in listings]

    @app.get("/performances/by-date/{day}")
    def performances_on(day: str):
        day = _parse_day(day)
        with lock:
            listings = db_module.get_performances_on(conn, day)
        return [_performance_json(p, c, enrich=True) for p, c in listings]

    @app.get("/performances/{performance_id}")
    def get_performance(performance_id: int):
        with lock:
            found = db_module.get_performance(conn, performance_id)
        if found is None:
            raise HTTPException(status_code=404, detail="Performance not found")
        performance, company = found
        return _performance_json(performance, company, enrich=True)

    return app


def app_from_env() -> FastAPI:
    """App factory for uvicorn: reads ./config.toml (and WORLDBALLETS_DATABASE)."""
    cfg = cfg_module.load()
    return create_app(cfg_module.get_database_path(cfg))
