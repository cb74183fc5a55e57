from typing import Optional

from bs4 import Tag

from worldballets.models import CompanyInfo, RawPerformance
from worldballets.normalize import resolve_url
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.extract import (
    find_date_text,
    find_image,
    find_video,
    first_paragraph,
    first_text,
    img_src,
    joined_paragraphs,
)

_BLOCK_SELECTOR = ".performance-item, .event-item, .production"
_TITLE_SELECTORS = ("h3", ".production-title", "h2", ".title")
_DATE_SELECTORS = (".dates", ".date-range", ".performance-dates", "time")
_DESCRIPTION_SELECTORS = (".description", ".production-description", ".excerpt")


class ABTAdapter(BaseAdapter):
    company_id = "abt"
    company_name = "American Ballet Theatre"
    short_name = "ABT"
    website_url = "https://www.abt.org"
    base_url = "https://www.abt.org"

    about_url = "https://www.abt.org/about/"
    listing_url = "https://www.abt.org/performances/"

    def extract_company_info(self) -> Optional[CompanyInfo]:
        soup = self.fetch(self.company_cfg.get("about_url", self.about_url), render=False)
        content = soup.select_one(".about-content, .entry-content, main") or soup
        logo = soup.select_one(".logo img, .site-logo img, header img")
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=joined_paragraphs(content),
            logo_url=resolve_url(img_src(logo), self.base_url),
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        url = self.company_cfg.get("url", self.listing_url)
        soup = self.fetch(url)

        def parse(block: Tag) -> Optional[RawPerformance]:
            title = first_text(block, _TITLE_SELECTORS)
            date_text = find_date_text(block, _DATE_SELECTORS)
            if not title or not date_text:
                return None
            return RawPerformance(
                title=title,
                date_text=date_text,
                description=first_text(block, _DESCRIPTION_SELECTORS)
                or first_paragraph(block, min_length=30, exclude=[title]),
                image_url=find_image(block, search_around=False),
                video_url=find_video(block),
                page_url=url,
            )

        return self.extract_blocks(soup.select(_BLOCK_SELECTOR), parse)
