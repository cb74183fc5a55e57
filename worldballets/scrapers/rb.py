from typing import Optional

from bs4 import Tag

from worldballets.models import CompanyInfo, RawPerformance
from worldballets.normalize import resolve_url
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.extract import (
    MONTH_RE,
    find_image,
    find_video,
    first_text,
    img_src,
    joined_paragraphs,
)

_BLOCK_SELECTOR = 'article, .event-card, .production-card, [class*="event"], [class*="production"]'
_TITLE_SELECTORS = ("h1", "h2", "h3", "h4", '[class*="title"]')
_DATE_SELECTORS = ('[class*="date"]', "time", '[class*="when"]')
_DESCRIPTION_SELECTOR = 'p, [class*="description"], [class*="summary"]'


class RoyalBalletAdapter(BaseAdapter):
    """
    The Royal Ballet at the Royal Opera House.

    The listing is assembled client-side, so it is fetched in render mode.
    Dates read like "28 March–8 April 2025" or "8–19 July 2025".
    """

    company_id = "rb"
    company_name = "The Royal Ballet"
    short_name = "RB"
    website_url = "https://www.rbo.org.uk/about/the-royal-ballet"
    base_url = "https://www.rbo.org.uk"
    render = True

    about_url = "https://www.rbo.org.uk/about/the-royal-ballet"
    listing_url = "https://www.rbo.org.uk/tickets-and-events?event-type=ballet-and-dance&venue=main-stage"

    def extract_company_info(self) -> Optional[CompanyInfo]:
        soup = self.fetch(self.company_cfg.get("about_url", self.about_url), render=False)
        logo = soup.select_one(".site-logo img, .logo img")
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=joined_paragraphs(soup.select_one("main") or soup),
            logo_url=resolve_url(img_src(logo), self.base_url),
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        url = self.company_cfg.get("url", self.listing_url)
        soup = self.fetch(url)

        def parse(block: Tag) -> Optional[RawPerformance]:
            title = first_text(block, _TITLE_SELECTORS)
            date_text = first_text(block, _DATE_SELECTORS)
            if not title or not MONTH_RE.search(date_text):
                return None
            return RawPerformance(
                title=title,
                date_text=date_text,
                description=self._description(block, title, date_text),
                image_url=find_image(block, search_around=False),
                video_url=find_video(block),
                page_url=url,
            )

        return self.extract_blocks(soup.select(_BLOCK_SELECTOR), parse)

    @staticmethod
    def _description(block: Tag, title: str, date_text: str) -> str:
        parts: list[str] = []
        for node in block.select(_DESCRIPTION_SELECTOR):
            text = node.get_text(" ", strip=True)
            if len(text) > 30 and title not in text and date_text not in text and text not in parts:
                parts.append(text)
        return " ".join(parts)
