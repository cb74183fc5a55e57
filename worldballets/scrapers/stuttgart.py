import logging
from typing import Optional

from bs4 import Tag

from worldballets.errors import FetchError
from worldballets.models import CompanyInfo, RawPerformance
from worldballets.normalize import clean_text, parse_raw_dates, resolve_url
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.extract import background_image, first_text, img_src, joined_paragraphs, season_years

log = logging.getLogger(__name__)


class StuttgartBalletAdapter(BaseAdapter):
    company_id = "stuttgart"
    company_name = "Stuttgart Ballet"
    short_name = "STUTTGART"
    website_url = "https://www.stuttgart-ballet.de"
    base_url = "https://www.stuttgart-ballet.de"

    about_url = "https://www.stuttgart-ballet.de/company/"

    def schedule_url(self) -> tuple[str, str]:
        """Schedule page for the running season, e.g. ".../schedule/season-2025-26/"."""
        year = season_years(self.today, 1)[0]
        season = f"{year}-{(year + 1) % 100:02d}"
        return self.company_cfg.get("url", f"{self.base_url}/schedule/season-{season}/"), season

    def extract_company_info(self) -> Optional[CompanyInfo]:
        soup = self.fetch(self.company_cfg.get("about_url", self.about_url), render=False)
        logo = soup.select_one(".site-logo img, .logo img, header img")
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=joined_paragraphs(soup.select_one(".content-text, main") or soup),
            logo_url=resolve_url(img_src(logo), self.base_url),
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        url, season = self.schedule_url()
        soup = self.fetch(url)

        def parse(item: Tag) -> Optional[RawPerformance]:
            title = first_text(item, [".teaser__headline a", ".teaser__headline"])
            if not title:
                return None
            # e.g. "As of March 14, 2025 in the Opera House" or "July 20 / 27, 2025"
            raw = RawPerformance(
                title=title,
                date_text=first_text(item, [".teaser__bottom"]),
                page_url=url,
                season=season,
            )
            if parse_raw_dates(raw, today=self.today).end < self.today:
                log.debug("stuttgart: skipping past performance %r", title)
                return None

            link = item.select_one(".teaser__headline a[href]")
            raw.description = (
                first_text(item, [".teaser__subtitle"])
                or (self._detail_description(resolve_url(link["href"], self.base_url)) if link else "")
                or f"{title} - A performance by the Stuttgart Ballet."
            )
            raw.image_url = self._image(item)
            return raw

        return self.extract_blocks(soup.select(".teaser__item"), parse)

    def _detail_description(self, url: str) -> str:
        try:
            soup = self.fetch(url, render=False)
        except FetchError as exc:
            log.warning("stuttgart: detail page unavailable (%s)", exc)
            return ""
        return clean_text(" ".join(p.get_text(" ", strip=True) for p in soup.select(".content-text p")))

    @staticmethod
    def _image(item: Tag) -> str:
        image = item.select_one(".teaser__image")
        if image is not None:
            src = image.get("data-image-url") or img_src(image if image.name == "img" else image.find("img"))
            if src:
                return src
        return background_image(item.get("style"))
