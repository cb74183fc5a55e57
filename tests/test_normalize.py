from datetime import date, datetime, timezone

import pytest

from worldballets.models import RawPerformance
from worldballets.normalize import (
    embed_video_url,
    is_excluded_title,
    normalize,
    parse_raw_dates,
    placeholder_image,
    resolve_url,
    strip_noise,
)

TODAY = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("url, expected", [
    ("//cdn.example.com/a.jpg", "https://cdn.example.com/a.jpg"),
    ("/assets/a.jpg", "https://national.ballet.ca/assets/a.jpg"),
    ("assets/a.jpg", "https://national.ballet.ca/assets/a.jpg"),
    ("https://images.example.com/a.jpg", "https://images.example.com/a.jpg"),
    ("data:image/gif;base64,R0lGOD", ""),
    ("", ""),
    (None, ""),
])
def test_resolve_url(url, expected):
    assert resolve_url(url, "https://national.ballet.ca") == expected


@pytest.mark.parametrize("url, expected", [
    ("https://www.youtube.com/watch?v=9rJoB7y6Ncs", "https://www.youtube.com/embed/9rJoB7y6Ncs"),
    ("https://youtu.be/9rJoB7y6Ncs", "https://www.youtube.com/embed/9rJoB7y6Ncs"),
    ("https://www.youtube.com/embed/9rJoB7y6Ncs?autoplay=1", "https://www.youtube.com/embed/9rJoB7y6Ncs"),
    ("https://vimeo.com/123456789", "https://player.vimeo.com/video/123456789"),
    ("https://www.abt.org/tickets", ""),
    ("", ""),
])
def test_embed_video_url(url, expected):
    assert embed_video_url(url) == expected


def test_strip_noise():
    assert strip_noise("Selling fast! A timeless classic. Book now") == "A timeless classic."
    assert strip_noise("Limited availability | Sold out") == ""
    assert strip_noise("A story of love and betrayal") == "A story of love and betrayal"


@pytest.mark.parametrize("title, excluded", [
    ("Upcoming Productions", True),
    ("2025/26 Season", True),
    ("Subscribe", True),
    ("Tickets", True),
    ("Giselle", False),
    ("The Sleeping Beauty", False),
])
def test_is_excluded_title(title, excluded):
    assert is_excluded_title(title) is excluded


def test_normalize_fills_placeholder_and_cleans_text():
    raw = RawPerformance(
        title="  Swan\n  Lake ",
        date_text="June 10 – 20, 2025",
        description="Selling fast!   The timeless   tale.\n",
    )
    p = normalize(raw, "abt", "https://www.abt.org", today=TODAY, now=NOW)

    assert p.title == "Swan Lake"
    assert p.company_id == "abt"
    assert (p.start_date, p.end_date) == (date(2025, 6, 10), date(2025, 6, 20))
    assert p.description == "The timeless tale."
    assert p.image_url == placeholder_image("Swan Lake")
    assert p.image_url == "https://via.placeholder.com/800x400.png?text=Swan%20Lake"
    assert p.video_url == ""
    assert p.is_past is False
    assert p.last_scraped == NOW


def test_normalize_resolves_media_and_sets_past():
    raw = RawPerformance(
        title="Giselle",
        date_text="March 1–8, 2025",
        image_url="/images/giselle.jpg",
        video_url="https://youtu.be/eSx_kqe6ox0",
    )
    p = normalize(raw, "abt", "https://www.abt.org", today=TODAY, now=NOW)

    assert p.image_url == "https://www.abt.org/images/giselle.jpg"
    assert p.video_url == "https://www.youtube.com/embed/eSx_kqe6ox0"
    assert p.is_past is True


def test_normalize_uses_custom_placeholder_service():
    raw = RawPerformance(title="Onegin", date_text="")
    p = normalize(raw, "stuttgart", "https://www.stuttgart-ballet.de", today=TODAY, now=NOW,
                  placeholder_service="https://img.example/ph")
    assert p.image_url == "https://img.example/ph?text=Onegin"
    assert (p.start_date, p.end_date) == (TODAY, date(2025, 6, 29))


def test_spring_dates_fall_in_second_year_of_season():
    raw = RawPerformance(title="Swan Lake", date_text="March 5–20", season="2024-25")
    result = parse_raw_dates(raw, today=TODAY)
    assert (result.start, result.end) == (date(2025, 3, 5), date(2025, 3, 20))


def test_autumn_dates_stay_in_first_year_of_season():
    raw = RawPerformance(title="Jewels", date_text="November 6–16", season="2024-25")
    result = parse_raw_dates(raw, today=TODAY)
    assert (result.start, result.end) == (date(2024, 11, 6), date(2024, 11, 16))


def test_year_inferred_from_page_url():
    raw = RawPerformance(
        title="The Nutcracker",
        date_text="December 10–31",
        page_url="https://www.bostonballet.org/performances/nutcracker-2026/",
    )
    result = parse_raw_dates(raw, today=TODAY)
    assert (result.start, result.end) == (date(2026, 12, 10), date(2026, 12, 31))


def test_unparseable_dates_use_season_window():
    raw = RawPerformance(title="Mixed Programme", date_text="Dates TBA", season="2025-26")
    result = parse_raw_dates(raw, today=TODAY)
    assert (result.start, result.end, result.form) == (date(2025, 8, 1), date(2026, 7, 31), "context")
