"""
Boston Ballet.

The site has no single listing that carries every production, so candidates
come from three places, in order:
  1. the tickets/performances home page, via primary then alternative block
     selectors
  2. the individual production pages it links to, plus any configured
     `detail_urls`
  3. the season page, for productions not already found
Past productions are dropped.
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

from worldballets.errors import FetchError
from worldballets.models import CompanyInfo, RawPerformance
from worldballets.normalize import parse_raw_dates, resolve_url
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.extract import (
    find_date_text,
    find_image,
    find_video,
    first_paragraph,
    first_text,
    img_src,
    joined_paragraphs,
    looks_like_date,
    season_years,
    title_from_slug,
    title_key,
)

log = logging.getLogger(__name__)

_PRIMARY_BLOCKS = (
    ".ticket-performance, .performanceFromHome, .performanceShortcode, "
    ".perfomance_wrapper, .profomance_single_box, .section-area"
)
_ALTERNATIVE_BLOCKS = (
    ".imgBox, .wrap-performance-txt, .performance-card, .event-card, .show-card, "
    ".production-card, .card, .event, .show, .production"
)
_SEASON_BLOCKS = (
    ".performance-card, .event-card, .show-card, .production-card, .season-item, "
    ".section-area, .wrap-performance-txt"
)
_TITLE_SELECTORS = (".title", ".card-title", "h3", "h4", ".performance-title", ".event-title", "strong")
_DATE_SELECTORS = (".dates", ".date-range", ".card-dates", ".performance-dates", ".event-dates")
_DETAIL_DATE_SELECTORS = (
    ".performance-dates", ".dates", ".date-range", ".date-info", ".show-dates", ".event-dates", ".calendar-dates",
)
_DETAIL_TITLE_SELECTORS = (
    "h1", ".performance-title", ".page-title", ".title", ".event-title", ".show-title", ".production-title",
)

# Slugs whose title-cased form is wrong
_TITLE_MAP = {
    "romeo-et-juliette": "Roméo et Juliette",
    "sensory-friendly-nutcracker": "Sensory-Friendly Nutcracker",
    "boston-ballet-on-tour": "Boston Ballet on Tour",
}

_MAX_DETAIL_PAGES = 15


class BostonBalletAdapter(BaseAdapter):
    company_id = "boston"
    company_name = "Boston Ballet"
    short_name = "BOSTON"
    website_url = "https://www.bostonballet.org"
    base_url = "https://www.bostonballet.org"

    about_url = "https://www.bostonballet.org/about/"
    listing_url = "https://www.bostonballet.org/home/tickets-performances/"

    def extract_company_info(self) -> Optional[CompanyInfo]:
        soup = self.fetch(self.company_cfg.get("about_url", self.about_url), render=False)
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=joined_paragraphs(
                soup, selector=".about-content p, .content-text p, .about-text p, .main-content p"
            ),
            logo_url=resolve_url(img_src(soup.select_one(".logo img")), self.base_url),
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        url = self.company_cfg.get("url", self.listing_url)
        soup = self.fetch(url)

        blocks = soup.select(_PRIMARY_BLOCKS) or soup.select(_ALTERNATIVE_BLOCKS)
        found = self.extract_blocks(blocks, lambda el: self._from_block(el, url))

        for detail_url in self._detail_links(soup)[:_MAX_DETAIL_PAGES]:
            raw = self._from_detail_page(detail_url)
            if raw is not None:
                found.append(raw)

        found.extend(self._from_season_page({title_key(r.title) for r in found}))
        return [raw for raw in found if not self._is_past(raw)]

    # --- Home page ---

    def _from_block(self, el: Tag, page_url: str, date_selectors=_DATE_SELECTORS) -> Optional[RawPerformance]:
        title = _block_title(el)
        date_text = find_date_text(el, date_selectors)
        if not title or not looks_like_date(date_text):
            return None
        return RawPerformance(
            title=title,
            date_text=date_text,
            description=first_paragraph(el, min_length=50)
            or first_text(el, [".description", ".summary"])
            or f"{title} - A performance by Boston Ballet.",
            image_url=find_image(el, search_around=False),
            video_url=find_video(el),
            page_url=page_url,
        )

    def _detail_links(self, soup: BeautifulSoup) -> list[str]:
        links: list[str] = []
        candidates = [a["href"] for a in soup.select('a[href*="/performances/"]')]
        candidates += [a["href"] for a in _explore_links(soup)]
        candidates += list(self.company_cfg.get("detail_urls", []))
        for href in candidates:
            if "#" in href:
                continue
            url = resolve_url(href, self.base_url)
            if url.rstrip("/").endswith("/performances") or "-season" in url:
                continue
            if url not in links:
                links.append(url)
        return links

    # --- Production pages ---

    def _from_detail_page(self, url: str) -> Optional[RawPerformance]:
        try:
            soup = self.fetch(url, render=False)
        except FetchError as exc:
            log.warning("boston: production page unavailable (%s)", exc)
            return None

        slug = url.rstrip("/").rsplit("/", 1)[-1]
        title = _TITLE_MAP.get(slug) or title_from_slug(url) or first_text(soup, _DETAIL_TITLE_SELECTORS)
        date_text = find_date_text(soup, _DETAIL_DATE_SELECTORS, fallback_tags="p, h2, h3, h4, .content-text")
        if not title or not date_text:
            log.debug("boston: no title or dates on %s", url)
            return None

        main = soup.select_one("main, .content-text, .wrap-performance-txt") or soup
        return RawPerformance(
            title=title,
            date_text=date_text,
            description=first_paragraph(main, min_length=50) or f"{title} - A performance by Boston Ballet.",
            image_url=_og_image(soup) or find_image(main, search_around=False),
            video_url=find_video(main),
            page_url=url,
        )

    # --- Season page ---

    def _from_season_page(self, known_titles: set[str]) -> list[RawPerformance]:
        year = season_years(self.today, 1)[0]
        season = f"{year}-{(year + 1) % 100:02d}"
        url = self.company_cfg.get("season_url", f"{self.base_url}/performances/{season}-season/")
        try:
            soup = self.fetch(url, render=False)
        except FetchError as exc:
            log.warning("boston: season page unavailable (%s)", exc)
            return []

        found = []
        for raw in self.extract_blocks(
            soup.select(_SEASON_BLOCKS),
            lambda el: self._from_block(el, url, date_selectors=(".dates", ".date-range", ".card-dates")),
        ):
            if title_key(raw.title) in known_titles:
                continue
            raw.season = season
            known_titles.add(title_key(raw.title))
            found.append(raw)
        return found

    def _is_past(self, raw: RawPerformance) -> bool:
        return parse_raw_dates(raw, today=self.today).end < self.today


def _explore_links(el: Tag) -> list[Tag]:
    return [a for a in el.select("a.sectionBtn[href]") if "explore" in a.get_text().lower()]


def _block_title(el: Tag) -> str:
    title = first_text(el, [".section-title-medium h4"])
    if title:
        return title
    for link in _explore_links(el):
        container = link.find_parent(class_=["wrap-performance-txt", "section-area"])
        if container is not None:
            title = first_text(container, ["strong", "h4", "h3", "h2", "h1"])
            if title:
                return title
    return first_text(el, _TITLE_SELECTORS)


def _og_image(soup: BeautifulSoup) -> str:
    meta = soup.select_one('meta[property="og:image"]')
    return (meta.get("content") or "").strip() if meta else ""
