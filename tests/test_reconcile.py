from datetime import date, datetime, timezone

import worldballets.db as db_module
from worldballets.reconcile import compute_flags, is_same_performance, update_flags, upsert

from conftest import make_performance

TODAY = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 6, 0, tzinfo=timezone.utc)


def _stored(conn, company_id="abt"):
    return db_module.get_company_performances(conn, company_id)


def test_same_performance_tolerance_boundary():
    stored = make_performance("Giselle", "2025-06-10", "2025-06-20")
    assert is_same_performance(stored, make_performance("Giselle", "2025-06-13", "2025-06-23"))
    assert not is_same_performance(stored, make_performance("Giselle", "2025-06-14", "2025-06-20"))
    assert not is_same_performance(stored, make_performance("Giselle ", "2025-06-10", "2025-06-24"))
    assert not is_same_performance(stored, make_performance("Giselle", "2025-06-10", "2025-06-20", company_id="nbc"))
    assert not is_same_performance(stored, make_performance("Swan Lake", "2025-06-10", "2025-06-20"))


def test_upsert_is_idempotent(conn):
    candidates = [
        make_performance("Giselle", "2025-06-10", "2025-06-20", description="Romantic ballet"),
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
    ]
    first = upsert(conn, "abt", candidates, today=TODAY, now=NOW)
    second = upsert(conn, "abt", [
        make_performance("Giselle", "2025-06-10", "2025-06-20", description="Romantic ballet"),
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
    ], today=TODAY, now=NOW)

    assert (first.inserted, first.updated) == (2, 0)
    assert (second.inserted, second.updated) == (0, 2)
    assert [p.title for p in _stored(conn)] == ["Giselle", "Swan Lake"]


def test_three_day_drift_updates_four_day_drift_inserts(conn):
    upsert(conn, "abt", [make_performance("Onegin", "2025-09-10", "2025-09-20")], today=TODAY, now=NOW)

    summary = upsert(conn, "abt", [make_performance("Onegin", "2025-09-13", "2025-09-23")], today=TODAY, now=NOW)
    assert summary.updated == 1
    stored = _stored(conn)
    assert len(stored) == 1
    assert (stored[0].start_date, stored[0].end_date) == (date(2025, 9, 13), date(2025, 9, 23))

    summary = upsert(conn, "abt", [make_performance("Onegin", "2025-09-17", "2025-09-23")], today=TODAY, now=NOW)
    assert summary.inserted == 1
    assert len(_stored(conn)) == 2


def test_repeat_of_an_updated_run_is_skipped_not_inserted(conn):
    upsert(conn, "abt", [make_performance("Swan Lake", "2025-07-01", "2025-07-12")], today=TODAY, now=NOW)

    summary = upsert(conn, "abt", [
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
        make_performance("Swan Lake", "2025-07-02", "2025-07-12"),
    ], today=TODAY, now=NOW)

    assert (summary.updated, summary.inserted, summary.skipped) == (1, 0, 1)
    [stored] = _stored(conn)
    assert stored.start_date == date(2025, 7, 1)


def test_repeat_of_a_run_inserted_in_the_same_pass_updates_it(conn):
    # Three days apart: outside the in-pass dedupe window, inside the match tolerance
    summary = upsert(conn, "abt", [
        make_performance("Giselle", "2025-06-10", "2025-06-20"),
        make_performance("Giselle", "2025-06-13", "2025-06-20", description="later listing"),
    ], today=TODAY, now=NOW)

    assert (summary.inserted, summary.updated) == (1, 1)
    [stored] = _stored(conn)
    assert stored.start_date == date(2025, 6, 13)
    assert stored.description == "later listing"


def test_distinct_stored_runs_are_each_updated_once(conn):
    upsert(conn, "abt", [
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
        make_performance("Swan Lake", "2025-09-01", "2025-09-12"),
    ], today=TODAY, now=NOW)

    summary = upsert(conn, "abt", [
        make_performance("Swan Lake", "2025-07-02", "2025-07-12"),
        make_performance("Swan Lake", "2025-09-02", "2025-09-12"),
    ], today=TODAY, now=NOW)

    assert (summary.updated, summary.inserted, summary.skipped) == (2, 0, 0)
    assert [p.start_date for p in _stored(conn)] == [date(2025, 7, 2), date(2025, 9, 2)]


def test_excluded_patterns_replace_builtin_list(conn):
    summary = upsert(conn, "abt", [
        make_performance("Upcoming Productions", "2025-07-01", "2025-07-12"),
        make_performance("Gala Evening", "2025-07-20", "2025-07-20"),
    ], today=TODAY, now=NOW, excluded_patterns=[r"^gala\b"])

    assert (summary.inserted, summary.skipped) == (1, 1)
    assert [p.title for p in _stored(conn)] == ["Upcoming Productions"]


def test_update_keeps_stored_text_and_real_image(conn):
    upsert(conn, "abt", [make_performance(
        "Giselle", "2025-06-10", "2025-06-20",
        description="Corrected by hand",
        image_url="https://www.abt.org/images/giselle.jpg",
    )], today=TODAY, now=NOW)

    upsert(conn, "abt", [make_performance(
        "Giselle", "2025-06-10", "2025-06-20",
        description="",
        image_url="https://via.placeholder.com/800x400.png?text=Giselle",
    )], today=TODAY, now=NOW)

    stored = _stored(conn)[0]
    assert stored.description == "Corrected by hand"
    assert stored.image_url == "https://www.abt.org/images/giselle.jpg"


def test_section_headers_are_skipped(conn):
    summary = upsert(conn, "abt", [
        make_performance("Upcoming Productions", "2025-06-10", "2025-06-20"),
        make_performance("2025/26 Season", "2025-08-01", "2026-07-31"),
        make_performance("Jewels", "2025-11-06", "2025-11-16"),
    ], today=TODAY, now=NOW)

    assert (summary.inserted, summary.skipped) == (1, 2)
    assert [p.title for p in _stored(conn)] == ["Jewels"]


def test_insert_sets_past_from_today(conn):
    upsert(conn, "abt", [make_performance("Don Quixote", "2025-05-01", "2025-05-10")], today=TODAY, now=NOW)
    stored = _stored(conn)[0]
    assert stored.is_past is True
    assert stored.is_current is False and stored.is_next is False
    assert stored.last_scraped == NOW


def test_giselle_rescrape_updates_single_record(conn):
    upsert(conn, "abt", [make_performance("Giselle", "2025-06-10", "2025-06-20")], today=TODAY, now=NOW)
    upsert(conn, "abt", [make_performance("Giselle", "2025-06-11", "2025-06-20", description="updated")],
           today=TODAY, now=NOW)

    stored = _stored(conn)
    assert len(stored) == 1
    assert stored[0].description == "updated"
    assert stored[0].start_date == date(2025, 6, 11)


def _with_ids(*performances):
    for i, p in enumerate(performances, start=1):
        p.id = i
    return list(performances)


def test_compute_flags():
    past, current, following, later = _with_ids(
        make_performance("Don Quixote", "2025-05-01", "2025-05-10"),
        make_performance("Giselle", "2025-06-10", "2025-06-20"),
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
        make_performance("Jewels", "2025-11-06", "2025-11-16"),
    )
    flags = compute_flags([later, following, current, past], TODAY)

    assert flags[past.id] == (True, False, False)
    assert flags[current.id] == (False, True, False)
    assert flags[following.id] == (False, False, True)
    assert flags[later.id] == (False, False, False)


def test_performance_starting_today_is_current_not_next():
    today_run, tomorrow_run = _with_ids(
        make_performance("Onegin", "2025-06-15", "2025-06-22"),
        make_performance("Manon", "2025-06-16", "2025-06-22"),
    )
    flags = compute_flags([today_run, tomorrow_run], TODAY)

    assert flags[today_run.id].is_current and not flags[today_run.id].is_next
    assert flags[tomorrow_run.id].is_next


def test_next_tie_goes_to_lowest_id():
    first, second = _with_ids(
        make_performance("Program A", "2025-07-01", "2025-07-05"),
        make_performance("Program B", "2025-07-01", "2025-07-03"),
    )
    flags = compute_flags([second, first], TODAY)
    assert flags[first.id].is_next and not flags[second.id].is_next


def test_update_flags_persists_and_resets(conn):
    upsert(conn, "abt", [
        make_performance("Giselle", "2025-06-10", "2025-06-20"),
        make_performance("Swan Lake", "2025-07-01", "2025-07-12"),
    ], today=TODAY, now=NOW)
    update_flags(conn, "abt", TODAY)

    giselle, swan_lake = _stored(conn)
    assert giselle.is_current and swan_lake.is_next

    # A month later Giselle is past, Swan Lake current and nothing is next
    update_flags(conn, "abt", date(2025, 7, 5))
    giselle, swan_lake = _stored(conn)
    assert giselle.is_past and not giselle.is_current
    assert swan_lake.is_current and not swan_lake.is_next
    assert sum(p.is_next for p in _stored(conn)) == 0
