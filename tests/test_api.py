from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from fastapi.testclient import TestClient

import worldballets.db as db_module
from worldballets.api import create_app

from conftest import make_company, make_performance

TODAY = date(2025, 6, 15)


@pytest.fixture
def client(tmp_path):
    db_path = tmp_path / "worldballets.db"
    conn = db_module.connect(db_path)
    with conn:
        db_module.upsert_company(conn, make_company("nbc", "National Ballet of Canada", "NBC"))
        db_module.upsert_company(conn, make_company("abt", "American Ballet Theatre", "ABT"))
        for p in [
            make_performance("Don Quixote", "2025-05-01", "2025-05-10", company_id="abt"),
            make_performance("Giselle", "2025-06-10", "2025-06-20", company_id="abt"),
            make_performance("Swan Lake", "2025-07-01", "2025-07-12", company_id="abt"),
            make_performance("Jewels", "2025-11-06", "2025-11-16", company_id="nbc"),
            make_performance("Onegin", "2025-06-14", "2025-06-16", company_id="gone"),
        ]:
            db_module.insert_performance(conn, p)
    conn.close()

    app = create_app(db_path, clock=lambda: TODAY)
    with TestClient(app) as client:
        yield client


def _titles(response):
    return [p["title"] for p in response.json()]


def test_companies_sorted_by_name(client):
    r = client.get("/companies")
    assert r.status_code == 200
    assert [c["company_id"] for c in r.json()] == ["abt", "nbc"]


def test_company_detail_and_404(client):
    assert client.get("/companies/nbc").json()["short_name"] == "NBC"
    r = client.get("/companies/pob")
    assert r.status_code == 404
    assert r.json() == {"detail": "Company not found"}


def test_company_performances_upcoming_and_past(client):
    assert _titles(client.get("/companies/abt/performances")) == ["Giselle", "Swan Lake"]
    assert _titles(client.get("/companies/abt/performances?past=true")) == ["Don Quixote"]
    assert client.get("/companies/pob/performances").status_code == 404


def test_all_performances_enriched_and_sorted(client):
    r = client.get("/performances")
    rows = r.json()
    assert _titles(r) == ["Don Quixote", "Giselle", "Onegin", "Swan Lake", "Jewels"]
    giselle = rows[1]
    assert giselle["company_name"] == "American Ballet Theatre"
    assert giselle["company_short_name"] == "ABT"
    assert giselle["start_date"] == "2025-06-10"
    assert isinstance(giselle["id"], int)
    onegin = rows[2]
    assert (onegin["company_name"], onegin["company_short_name"]) == ("Unknown Company", "Unknown")


def test_performance_filters(client):
    assert _titles(client.get("/performances?current=true")) == ["Giselle", "Onegin"]
    assert _titles(client.get("/performances?upcoming=true")) == ["Swan Lake", "Jewels"]
    assert _titles(client.get("/performances?past=true")) == ["Don Quixote"]
    # current wins over the other filters
    assert _titles(client.get("/performances?past=true&current=true")) == ["Giselle", "Onegin"]
    assert _titles(client.get("/performances?upcoming=true&limit=1")) == ["Swan Lake"]


def test_current_and_upcoming_views(client):
    assert _titles(client.get("/performances/current")) == ["Giselle", "Onegin"]
    # Jewels starts more than 30 days out
    assert _titles(client.get("/performances/upcoming")) == ["Swan Lake"]


def test_performances_by_date(client):
    assert _titles(client.get("/performances/by-date/2025-07-12")) == ["Swan Lake"]
    assert _titles(client.get("/performances/by-date/2025-01-01")) == []
    r = client.get("/performances/by-date/12-07-2025")
    assert r.status_code == 400
    assert "YYYY-MM-DD" in r.json()["detail"]


def test_performance_detail(client):
    first = client.get("/performances").json()[0]
    r = client.get(f"/performances/{first['id']}")
    assert r.status_code == 200
    assert r.json()["title"] == "Don Quixote"
    assert client.get("/performances/9999").status_code == 404


def test_store_error_gives_500(client):
    client.app.state.conn.execute("DROP TABLE performances")
    r = client.get("/performances")
    assert r.status_code == 500
    assert r.json() == {"message": "Server error"}


def test_concurrent_requests_share_the_connection_safely(client):
    assert client.app.state.db_lock is not None

    def fetch(path):
        r = client.get(path)
        return r.status_code, len(r.json())

    paths = ["/performances", "/companies", "/performances/current", "/companies/abt/performances"] * 10
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(fetch, paths))

    assert results == [(200, 5), (200, 2), (200, 2), (200, 2)] * 10
