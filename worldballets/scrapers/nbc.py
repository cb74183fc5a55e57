from typing import Optional

from bs4 import BeautifulSoup, Tag

from worldballets.models import CompanyInfo, RawPerformance
from worldballets.normalize import resolve_url
from worldballets.scrapers.base import BaseAdapter
from worldballets.scrapers.extract import (
    DATE_LIKE_RE,
    find_image,
    find_video,
    first_text,
    img_src,
    joined_paragraphs,
    season_years,
)

# Images the listing never carries for these productions
_KNOWN_IMAGES = {
    "Anna Karenina": "https://national.ballet.ca/assets/uploads/images/Anna-Karenina-1920x1080.jpg",
}

_GENERIC_BLOCKS = "section, article, div[class*='production'], div[class*='performance'], div[class*='event']"


class NBCAdapter(BaseAdapter):
    company_id = "nbc"
    company_name = "National Ballet of Canada"
    short_name = "NBC"
    website_url = "https://national.ballet.ca"
    base_url = "https://national.ballet.ca"

    about_url = "https://national.ballet.ca/our-history/about-the-national-ballet-of-canada"

    def season_urls(self) -> list[tuple[str, str]]:
        """(url, season) pairs for the current and next season pages, e.g. ".../202526-season"."""
        if urls := self.company_cfg.get("urls"):
            return [(u, "") for u in urls]
        pairs = []
        for year in season_years(self.today):
            slug = f"{year}{(year + 1) % 100:02d}"
            pairs.append((f"{self.base_url}/performances/{slug}-season", f"{year}-{(year + 1) % 100:02d}"))
        return pairs

    def extract_company_info(self) -> Optional[CompanyInfo]:
        soup = self.fetch(self.company_cfg.get("about_url", self.about_url), render=False)
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description=joined_paragraphs(soup.select_one(".entry-content") or soup, min_length=0),
            logo_url=resolve_url(img_src(soup.select_one(".site-logo img")), self.base_url),
            website_url=self.website_url,
        )

    def extract_performances(self) -> list[RawPerformance]:
        found: list[RawPerformance] = []
        for url, season in self.season_urls():
            soup = self.fetch(url)
            season_found = self._upcoming_list(soup, url, season)
            if not season_found:
                season_found = self._generic_sections(soup, url, season)
            found.extend(season_found)
        return found

    def _upcoming_list(self, soup: BeautifulSoup, url: str, season: str) -> list[RawPerformance]:
        def parse(item: Tag) -> Optional[RawPerformance]:
            date_text = first_text(item, [".upcoming-themed-pretitle p", ".upcoming-themed-pretitle"])
            title = first_text(item, [".accent"])
            if not date_text or not title:
                return None
            return self._candidate(item, title, date_text, url, season)

        return self.extract_blocks(soup.select(".upcoming-list-item"), parse)

    def _generic_sections(self, soup: BeautifulSoup, url: str, season: str) -> list[RawPerformance]:
        def parse(el: Tag) -> Optional[RawPerformance]:
            date_text = first_text(el, ["time", "[class*='date']", "[class*='Date']"])
            if not date_text:
                first_child = el.find(True)
                m = DATE_LIKE_RE.search(first_child.get_text(" ", strip=True)) if first_child else None
                date_text = m.group(0) if m else ""
            if not DATE_LIKE_RE.search(date_text):
                return None
            title = first_text(el, ["h1", "h2", "h3"])
            if not title:
                return None
            return self._candidate(el, title, date_text, url, season)

        return self.extract_blocks(soup.select(_GENERIC_BLOCKS), parse)

    def _candidate(self, el: Tag, title: str, date_text: str, url: str, season: str) -> RawPerformance:
        paragraphs = [
            p.get_text(" ", strip=True) for p in el.select("p")
            if len(p.get_text(strip=True)) > 5 and date_text not in p.get_text(" ", strip=True)
        ]
        return RawPerformance(
            title=title,
            date_text=date_text,
            description=" ".join(paragraphs) or f"{title} - National Ballet of Canada performance",
            image_url=_KNOWN_IMAGES.get(title) or find_image(el),
            video_url=find_video(el),
            page_url=url,
            season=season,
        )
