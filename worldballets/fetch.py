"""
Page fetching for adapters.

Two modes:
  - get():    plain HTTP fetch with requests, parsed with BeautifulSoup/lxml
  - render(): load the page in headless Chromium via Playwright, then parse
              the rendered DOM the same way

Every request is bounded by a per-request timeout and by an optional
deadline for the whole company. Requests after the first are spaced by a
random delay so target sites see a polite, human-ish request rate.
"""

import logging
import random
import threading
import time
from typing import Optional

import requests
from bs4 import BeautifulSoup

from worldballets.errors import FetchError, FetchTimeout, ScrapeCancelled

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Cookie consent buttons worth clicking before reading a rendered page
_CONSENT_SELECTORS = (
    "#onetrust-accept-btn-handler",
    "button#accept-recommended-btn-handler",
    ".onetrust-accept-btn-handler",
    "button[data-cookiefirst-action='accept']",
)


class Fetcher:
    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 15,
        render_timeout: float = 45,
        min_delay: float = 1.0,
        max_delay: float = 3.0,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            timeout:        Seconds allowed for one raw HTTP request.
            render_timeout: Seconds allowed for one browser page load.
            min_delay, max_delay: Bounds of the random pause between requests.
            deadline:       time.monotonic() value after which no further request
                            is started (FetchTimeout instead).
            cancel:         Event that, once set, makes the next request raise
                            ScrapeCancelled.
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.render_timeout = render_timeout
        self.min_delay = min_delay
        self.max_delay = max(max_delay, min_delay)
        self.deadline = deadline
        self.cancel = cancel
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent, **_HEADERS})
        self._requests_made = 0

    def for_company(self, seconds: Optional[float], batch_deadline: Optional[float] = None) -> "Fetcher":
        """Return a fetcher sharing this one's session and cancel event, with a fresh deadline."""
        deadline = time.monotonic() + seconds if seconds is not None else None
        if batch_deadline is not None:
            deadline = batch_deadline if deadline is None else min(deadline, batch_deadline)
        return Fetcher(
            user_agent=self.user_agent,
            timeout=self.timeout,
            render_timeout=self.render_timeout,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            deadline=deadline,
            cancel=self.cancel,
            session=self.session,
        )

    def fetch(self, url: str, render: bool = False, wait_for: Optional[str] = None) -> BeautifulSoup:
        if render:
            return self.render(url, wait_for=wait_for)
        return self.get(url)

    def get(self, url: str) -> BeautifulSoup:
        timeout = self._before_request(url, self.timeout)
        log.debug("GET %s", url)
        try:
            r = self.session.get(url, timeout=timeout)
            r.raise_for_status()
        except requests.Timeout as exc:
            raise FetchTimeout(url, f"timed out after {timeout:.0f}s") from exc
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc
        return BeautifulSoup(r.text, "lxml")

    def render(self, url: str, wait_for: Optional[str] = None) -> BeautifulSoup:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import TimeoutError as PlaywrightTimeout
        from playwright.sync_api import sync_playwright

        timeout = self._before_request(url, self.render_timeout)
        timeout_ms = int(timeout * 1000)
        log.debug("RENDER %s", url)
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    page = browser.new_page(user_agent=self.user_agent)
                    page.goto(url, wait_until="networkidle", timeout=timeout_ms)

                    for selector in _CONSENT_SELECTORS:
                        btn = page.query_selector(selector)
                        if btn and btn.is_visible():
                            btn.click()
                            page.wait_for_timeout(1000)
                            break

                    if wait_for:
                        page.wait_for_selector(wait_for, timeout=timeout_ms)
                    html = page.content()
                finally:
                    browser.close()
        except PlaywrightTimeout as exc:
            raise FetchTimeout(url, f"render timed out after {timeout:.0f}s") from exc
        except PlaywrightError as exc:
            raise FetchError(url, f"render failed: {exc}") from exc
        return BeautifulSoup(html, "lxml")

    def _before_request(self, url: str, timeout: float) -> float:
        """Check cancellation and deadline, pause politely, and return the usable timeout."""
        self._check(url)
        if self._requests_made and self.max_delay > 0:
            pause = random.uniform(self.min_delay, self.max_delay)
            if self.deadline is not None:
                pause = min(pause, max(self.deadline - time.monotonic(), 0))
            time.sleep(pause)
            self._check(url)
        self._requests_made += 1

        if self.deadline is not None:
            timeout = min(timeout, self.deadline - time.monotonic())
        return timeout

    def _check(self, url: str) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise ScrapeCancelled(f"cancelled before fetching {url}")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise FetchTimeout(url, "company deadline exceeded")
