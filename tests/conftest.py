from datetime import date

import pytest

import worldballets.db as db_module
from worldballets.fetch import Fetcher
from worldballets.models import Company, Performance


@pytest.fixture
def conn():
    conn = db_module.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def fetcher():
    """A fetcher with no politeness delay, for use with `responses`."""
    return Fetcher(min_delay=0, max_delay=0)


def make_performance(title, start, end, company_id="abt", **kwargs) -> Performance:
    return Performance(
        company_id=company_id,
        title=title,
        start_date=date.fromisoformat(start),
        end_date=date.fromisoformat(end),
        **kwargs,
    )


def make_company(company_id="abt", name="American Ballet Theatre", short_name="ABT") -> Company:
    return Company(
        company_id=company_id,
        name=name,
        short_name=short_name,
        description="",
        logo_url="",
        website_url=f"https://{company_id}.example",
    )
