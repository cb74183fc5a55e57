import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Iterable, Optional

from bs4 import BeautifulSoup, Tag

from worldballets.errors import FetchError, ScrapeCancelled
from worldballets.fallbacks import FallbackSet
from worldballets.fetch import Fetcher
from worldballets.models import CompanyInfo, RawPerformance, ScrapeResult
from worldballets.normalize import is_excluded_title
from worldballets.scrapers.extract import dedupe

log = logging.getLogger(__name__)


class BaseAdapter(ABC):
    # Subclasses must set these class attributes
    company_id: str = ""
    company_name: str = ""
    short_name: str = ""
    website_url: str = ""
    # Base for resolving relative image/video URLs
    base_url: str = ""
    # Default fetch mode; [companies.<id>] render = true|false overrides it
    render: bool = False

    def __init__(
        self,
        company_cfg: dict,
        fetcher: Optional[Fetcher] = None,
        fallback: Optional[FallbackSet] = None,
        *,
        today: Optional[date] = None,
        dedupe_tolerance_days: int = 2,
    ):
        """
        Args:
            company_cfg: The [companies.<id>] section from config.toml as a dict.
                         May set 'enabled', 'render' and adapter-specific
                         URL overrides ('urls', 'about_url', 'detail_urls').
            fetcher:     Shared Fetcher carrying this company's deadline and
                         the batch cancellation event.
            fallback:    The company's placeholder dataset, served when the
                         site yields nothing.
        """
        self.company_cfg = company_cfg
        self.render = bool(company_cfg.get("render", type(self).render))
        self.fetcher = fetcher or Fetcher()
        self.fallback = fallback
        self.today = today or date.today()
        self.dedupe_tolerance_days = dedupe_tolerance_days

    # --- Subclass hooks ---

    @abstractmethod
    def extract_performances(self) -> list[RawPerformance]:
        """Fetch the company's pages and return raw candidates (possibly empty)."""
        ...

    def extract_company_info(self) -> Optional[CompanyInfo]:
        """Scrape company metadata. Returning None means the defaults are used as-is."""
        return None

    # --- Public interface ---

    def fetch_company_info(self) -> CompanyInfo:
        defaults = self.default_company_info()
        try:
            info = self.extract_company_info()
        except FetchError as exc:
            log.warning("%s: company info unavailable (%s), using defaults", self.company_id, exc)
            return defaults
        if info is None:
            return defaults
        return CompanyInfo(
            name=info.name or defaults.name,
            short_name=info.short_name or defaults.short_name,
            description=info.description or defaults.description,
            logo_url=info.logo_url or defaults.logo_url,
            website_url=info.website_url or defaults.website_url,
        )

    def fetch_performances(self) -> ScrapeResult:
        """
        Run extraction and apply the fallback policy.

        Fetch failures and empty extractions return the fallback set with
        fallback_used=True. ScrapeCancelled and unexpected errors propagate.
        """
        try:
            candidates = self.extract_performances()
        except FetchError as exc:
            return self._fallback(f"fetch failed: {exc}")

        kept = []
        for raw in candidates:
            if not raw.title.strip() or is_excluded_title(raw.title):
                log.warning("%s: skipping section header %r", self.company_id, raw.title)
                continue
            kept.append(raw)
        kept = dedupe(kept, self.dedupe_tolerance_days, today=self.today)

        if not kept:
            return self._fallback("no performances extracted")
        log.info("%s: extracted %d performances", self.company_id, len(kept))
        return ScrapeResult(kept)

    def default_company_info(self) -> CompanyInfo:
        if self.fallback is not None and self.fallback.company is not None:
            return self.fallback.company
        return CompanyInfo(
            name=self.company_name,
            short_name=self.short_name,
            description="",
            logo_url="",
            website_url=self.website_url,
        )

    # --- Helpers for subclasses ---

    def fetch(self, url: str, render: Optional[bool] = None, wait_for: Optional[str] = None) -> BeautifulSoup:
        return self.fetcher.fetch(url, render=self.render if render is None else render, wait_for=wait_for)

    def extract_blocks(
        self,
        blocks: Iterable[Tag],
        parse: Callable[[Tag], Optional[RawPerformance]],
    ) -> list[RawPerformance]:
        """Apply `parse` to each block, skipping blocks it rejects or chokes on."""
        found = []
        for block in blocks:
            try:
                raw = parse(block)
            except ScrapeCancelled:
                raise
            except Exception as exc:
                log.warning("%s: skipping malformed block (%s: %s)", self.company_id, type(exc).__name__, exc)
                continue
            if raw is not None:
                found.append(raw)
        return found

    def _fallback(self, reason: str) -> ScrapeResult:
        if self.fallback is None:
            log.warning("%s: %s and no fallback data is available", self.company_id, reason)
            return ScrapeResult([], fallback_used=True, reason=reason)
        log.warning("%s: %s, using fallback data v%s", self.company_id, reason, self.fallback.version)
        return ScrapeResult(
            self.fallback.raw_performances(self.today),
            fallback_used=True,
            reason=reason,
            fallback_version=self.fallback.version,
        )
