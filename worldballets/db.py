"""
SQLite store for companies and performances.

Write helpers do not commit: the pipeline applies all of one company's
writes inside a single `with conn:` block so a failure rolls the whole
company back. Read helpers used by the API return (Performance, Company)
pairs, with Company None when the owning row is missing.
"""

import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional, Union

from worldballets.models import Company, Performance

PerformanceListing = tuple[Performance, Optional[Company]]


def connect(db_path: Union[Path, str]) -> sqlite3.Connection:
    if str(db_path) != ":memory:":
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
    # API requests may be served from a worker thread other than the one that connected;
    # callers sharing the connection across threads serialize access themselves
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    _create_schema(conn)
    return conn


def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS companies (
            company_id   TEXT PRIMARY KEY,
            name         TEXT NOT NULL,
            short_name   TEXT NOT NULL,
            description  TEXT NOT NULL DEFAULT '',
            logo_url     TEXT NOT NULL DEFAULT '',
            website_url  TEXT NOT NULL DEFAULT '',
            last_scraped TEXT
        );

        CREATE TABLE IF NOT EXISTS performances (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id   TEXT NOT NULL REFERENCES companies(company_id),
            title        TEXT NOT NULL,
            start_date   TEXT NOT NULL,
            end_date     TEXT NOT NULL,
            description  TEXT NOT NULL DEFAULT '',
            image_url    TEXT NOT NULL DEFAULT '',
            video_url    TEXT NOT NULL DEFAULT '',
            is_past      INTEGER NOT NULL DEFAULT 0,
            is_current   INTEGER NOT NULL DEFAULT 0,
            is_next      INTEGER NOT NULL DEFAULT 0,
            last_scraped TEXT,
            CHECK (start_date <= end_date)
        );

        CREATE INDEX IF NOT EXISTS idx_performances_company_start
            ON performances (company_id, start_date);
    """)
    conn.commit()


# --- Companies ---

def upsert_company(conn: sqlite3.Connection, company: Company) -> None:
    conn.execute(
        """
        INSERT INTO companies (company_id, name, short_name, description, logo_url, website_url, last_scraped)
        VALUES (:company_id, :name, :short_name, :description, :logo_url, :website_url, :last_scraped)
        ON CONFLICT(company_id) DO UPDATE SET
            name         = excluded.name,
            short_name   = excluded.short_name,
            description  = excluded.description,
            logo_url     = excluded.logo_url,
            website_url  = excluded.website_url,
            last_scraped = excluded.last_scraped
        """,
        {
            "company_id":   company.company_id,
            "name":         company.name,
            "short_name":   company.short_name,
            "description":  company.description,
            "logo_url":     company.logo_url,
            "website_url":  company.website_url,
            "last_scraped": company.last_scraped.isoformat() if company.last_scraped else None,
        },
    )


def get_company(conn: sqlite3.Connection, company_id: str) -> Optional[Company]:
    row = conn.execute("SELECT * FROM companies WHERE company_id = ?", (company_id,)).fetchone()
    return _row_to_company(row) if row else None


def get_all_companies(conn: sqlite3.Connection) -> list[Company]:
    rows = conn.execute("SELECT * FROM companies ORDER BY name").fetchall()
    return [_row_to_company(r) for r in rows]


# --- Performances: pipeline side ---

def insert_performance(conn: sqlite3.Connection, performance: Performance) -> int:
    cursor = conn.execute(
        """
        INSERT INTO performances (company_id, title, start_date, end_date, description, image_url,
                                  video_url, is_past, is_current, is_next, last_scraped)
        VALUES (:company_id, :title, :start_date, :end_date, :description, :image_url,
                :video_url, :is_past, :is_current, :is_next, :last_scraped)
        """,
        _performance_params(performance),
    )
    performance.id = cursor.lastrowid
    return performance.id


def update_performance(conn: sqlite3.Connection, performance: Performance) -> None:
    if performance.id is None:
        raise ValueError("cannot update a performance that has no id")
    conn.execute(
        """
        UPDATE performances SET
            title        = :title,
            start_date   = :start_date,
            end_date     = :end_date,
            description  = :description,
            image_url    = :image_url,
            video_url    = :video_url,
            is_past      = :is_past,
            is_current   = :is_current,
            is_next      = :is_next,
            last_scraped = :last_scraped
        WHERE id = :id
        """,
        {**_performance_params(performance), "id": performance.id},
    )


def set_performance_flags(
    conn: sqlite3.Connection,
    performance_id: int,
    is_past: bool,
    is_current: bool,
    is_next: bool,
) -> None:
    conn.execute(
        "UPDATE performances SET is_past = ?, is_current = ?, is_next = ? WHERE id = ?",
        (int(is_past), int(is_current), int(is_next), performance_id),
    )


def get_company_performances(conn: sqlite3.Connection, company_id: str) -> list[Performance]:
    rows = conn.execute(
        "SELECT * FROM performances WHERE company_id = ? ORDER BY start_date, id",
        (company_id,),
    ).fetchall()
    return [_row_to_performance(r) for r in rows]


def count_company_performances(conn: sqlite3.Connection, company_id: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM performances WHERE company_id = ?", (company_id,)
    ).fetchone()
    return row["n"]


def delete_company_performances(conn: sqlite3.Connection, company_id: str) -> int:
    cursor = conn.execute("DELETE FROM performances WHERE company_id = ?", (company_id,))
    return cursor.rowcount


# --- Performances: read views ---

_LISTING_SELECT = """
    SELECT p.*,
           c.company_id   AS c_company_id,
           c.name         AS c_name,
           c.short_name   AS c_short_name,
           c.description  AS c_description,
           c.logo_url     AS c_logo_url,
           c.website_url  AS c_website_url,
           c.last_scraped AS c_last_scraped
    FROM performances p
    LEFT JOIN companies c ON c.company_id = p.company_id
"""


def get_performances(
    conn: sqlite3.Connection,
    today: date,
    *,
    current: bool = False,
    upcoming: bool = False,
    past: bool = False,
    limit: Optional[int] = None,
) -> list[PerformanceListing]:
    """All performances, optionally filtered; current takes precedence over upcoming over past."""
    day = today.isoformat()
    if current:
        where, params = "p.start_date <= ? AND p.end_date >= ?", [day, day]
    elif upcoming:
        where, params = "p.start_date > ?", [day]
    elif past:
        where, params = "p.end_date < ?", [day]
    else:
        where, params = "1 = 1", []
    return _listings(conn, where, params, limit)


def get_current_performances(conn: sqlite3.Connection, today: date) -> list[PerformanceListing]:
    return get_performances(conn, today, current=True)


def get_upcoming_performances(
    conn: sqlite3.Connection,
    today: date,
    days_ahead: int = 30,
) -> list[PerformanceListing]:
    end = today + timedelta(days=days_ahead)
    return _listings(
        conn,
        "p.start_date > ? AND p.start_date <= ?",
        [today.isoformat(), end.isoformat()],
    )


def get_performances_on(conn: sqlite3.Connection, day: date) -> list[PerformanceListing]:
    iso = day.isoformat()
    return _listings(conn, "p.start_date <= ? AND p.end_date >= ?", [iso, iso])


def get_performance(conn: sqlite3.Connection, performance_id: int) -> Optional[PerformanceListing]:
    found = _listings(conn, "p.id = ?", [performance_id])
    return found[0] if found else None


def get_company_performances_by_status(
    conn: sqlite3.Connection,
    company_id: str,
    today: date,
    past: bool = False,
) -> list[Performance]:
    op = "<" if past else ">="
    rows = conn.execute(
        f"SELECT * FROM performances WHERE company_id = ? AND end_date {op} ? ORDER BY start_date, id",
        (company_id, today.isoformat()),
    ).fetchall()
    return [_row_to_performance(r) for r in rows]


def _listings(
    conn: sqlite3.Connection,
    where: str,
    params: list,
    limit: Optional[int] = None,
) -> list[PerformanceListing]:
    sql = f"{_LISTING_SELECT} WHERE {where} ORDER BY p.start_date, p.id"
    if limit is not None:
        sql += " LIMIT ?"
        params = [*params, limit]
    rows = conn.execute(sql, params).fetchall()
    return [(_row_to_performance(r), _row_to_joined_company(r)) for r in rows]


# --- Row mapping ---

def _performance_params(p: Performance) -> dict:
    return {
        "company_id":   p.company_id,
        "title":        p.title,
        "start_date":   p.start_date.isoformat(),
        "end_date":     p.end_date.isoformat(),
        "description":  p.description,
        "image_url":    p.image_url,
        "video_url":    p.video_url or "",
        "is_past":      1 if p.is_past else 0,
        "is_current":   1 if p.is_current else 0,
        "is_next":      1 if p.is_next else 0,
        "last_scraped": p.last_scraped.isoformat() if p.last_scraped else None,
    }


def _row_to_performance(row: sqlite3.Row) -> Performance:
    return Performance(
        id=row["id"],
        company_id=row["company_id"],
        title=row["title"],
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        description=row["description"],
        image_url=row["image_url"],
        video_url=row["video_url"],
        is_past=bool(row["is_past"]),
        is_current=bool(row["is_current"]),
        is_next=bool(row["is_next"]),
        last_scraped=datetime.fromisoformat(row["last_scraped"]) if row["last_scraped"] else None,
    )


def _row_to_company(row: sqlite3.Row, prefix: str = "") -> Company:
    last = row[prefix + "last_scraped"]
    return Company(
        company_id=row[prefix + "company_id"],
        name=row[prefix + "name"],
        short_name=row[prefix + "short_name"],
        description=row[prefix + "description"],
        logo_url=row[prefix + "logo_url"],
        website_url=row[prefix + "website_url"],
        last_scraped=datetime.fromisoformat(last) if last else None,
    )


def _row_to_joined_company(row: sqlite3.Row) -> Optional[Company]:
    if row["c_company_id"] is None:
        return None
    return _row_to_company(row, prefix="c_")
