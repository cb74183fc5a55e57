from datetime import date

import pytest

from worldballets.dates import infer_year, month_number, parse_date_range, season_window

TODAY = date(2025, 1, 10)


@pytest.mark.parametrize("text, start, end, form", [
    ("2025-03-28", date(2025, 3, 28), date(2025, 3, 28), "iso"),
    ("2025-03-28 to 2025-04-08", date(2025, 3, 28), date(2025, 4, 8), "iso"),
    ("March 28, 2025 – April 8, 2025", date(2025, 3, 28), date(2025, 4, 8), "cross_month_full"),
    ("28 March 2025 - 8 April 2025", date(2025, 3, 28), date(2025, 4, 8), "day_month_full"),
    ("February 27 – March 6 2026", date(2026, 2, 27), date(2026, 3, 6), "cross_month"),
    ("May 9–19, 2025", date(2025, 5, 9), date(2025, 5, 19), "same_month"),
    ("June 10 – 20, 2025", date(2025, 6, 10), date(2025, 6, 20), "same_month"),
    ("28 March–8 April 2025", date(2025, 3, 28), date(2025, 4, 8), "day_month_cross"),
    ("10–20 June 2025", date(2025, 6, 10), date(2025, 6, 20), "day_range_month"),
    ("As of March 14, 2025 in the Opera House", date(2025, 3, 14), date(2025, 3, 28), "as_of"),
    ("July 20 / 27, 2025", date(2025, 7, 20), date(2025, 7, 27), "day_list"),
    ("28 March 2025", date(2025, 3, 28), date(2025, 3, 28), "single_day_month"),
    ("Sept. 5, 2025", date(2025, 9, 5), date(2025, 9, 5), "single_month_day"),
    ("Performances on the 3rd and 9th of October 2025", date(2025, 10, 3), date(2025, 10, 9), "loose"),
])
def test_parse_forms(text, start, end, form):
    result = parse_date_range(text, today=TODAY)
    assert (result.start, result.end, result.form) == (start, end, form)
    assert not result.fallback


def test_month_names_are_case_insensitive():
    result = parse_date_range("MAY 9 - 19, 2025", today=TODAY)
    assert (result.start, result.end) == (date(2025, 5, 9), date(2025, 5, 19))


def test_missing_year_uses_default_year():
    result = parse_date_range("May 9–19", today=TODAY, default_year=2024)
    assert (result.start, result.end) == (date(2024, 5, 9), date(2024, 5, 19))


def test_missing_year_without_default_uses_current_year():
    result = parse_date_range("July 20 / 27 in the Opera House", today=TODAY)
    assert (result.start, result.end) == (date(2025, 7, 20), date(2025, 7, 27))


def test_december_to_january_starts_in_previous_year():
    result = parse_date_range("December 28 – January 4, 2026", today=TODAY)
    assert (result.start, result.end) == (date(2025, 12, 28), date(2026, 1, 4))


def test_reversed_days_are_swapped():
    result = parse_date_range("March 19–9, 2025", today=TODAY)
    assert (result.start, result.end) == (date(2025, 3, 9), date(2025, 3, 19))


def test_impossible_date_is_not_a_match():
    result = parse_date_range("February 30, 2025", today=TODAY)
    assert result.form == "default"


def test_open_run_length_is_configurable():
    result = parse_date_range("As of March 14, 2025", today=TODAY, open_run_days=7)
    assert result.end == date(2025, 3, 21)


def test_unparseable_text_uses_context_window():
    window = (date(2024, 8, 1), date(2025, 7, 31))
    result = parse_date_range("Dates to be announced", today=TODAY, context=window)
    assert (result.start, result.end, result.form) == (date(2024, 8, 1), date(2025, 7, 31), "context")
    assert result.fallback


@pytest.mark.parametrize("text", ["", None, "Coming soon", "Tickets from $35"])
def test_unparseable_text_defaults_to_today_plus_window(text):
    result = parse_date_range(text, today=TODAY, fallback_days=14)
    assert (result.start, result.end, result.form) == (TODAY, date(2025, 1, 24), "default")


@pytest.mark.parametrize("token, expected", [
    ("March", 3), ("MAR", 3), ("Sept.", 9), ("sep", 9), ("june", 6), ("Mayday", None), ("Smarch", None),
])
def test_month_number(token, expected):
    assert month_number(token) == expected


@pytest.mark.parametrize("texts, expected", [
    (("Swan Lake", "https://national.ballet.ca/performances/202425-season"), 2024),
    (("2025/26 Season",), 2025),
    (("Spring Experience 2026",), 2026),
    (("The Nutcracker", None, ""), None),
])
def test_infer_year(texts, expected):
    assert infer_year(*texts) == expected


def test_season_window():
    assert season_window("2024-25") == (date(2024, 8, 1), date(2025, 7, 31))
    assert season_window("202526") == (date(2025, 8, 1), date(2026, 7, 31))
    assert season_window("2025") == (date(2025, 1, 1), date(2025, 12, 31))
    assert season_window("") is None
