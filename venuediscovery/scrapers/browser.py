"""
Headless Chromium sessions for listings rendered client-side.

A session lives for exactly one preview/scrape call:

    with renderer.session() as browser:
        page = browser.load(url, ready_selector=".eb-item")

Each load() opens its own page and closes it before returning, and the
browser is closed when the `with` block exits, error or not.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from venuediscovery.errors import SourceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    url: str
    html: str
    data: Any = None   # result of the `evaluate` expression, if one was given


class BrowserSession:
    def __init__(self, browser, page_timeout: float, ready_timeout: float):
        self._browser = browser
        self.page_timeout = page_timeout
        self.ready_timeout = ready_timeout

    def load(
        self,
        url: str,
        wait_until: str = "domcontentloaded",
        ready_selector: Optional[str] = None,
        ready_function: Optional[str] = None,
        evaluate: Optional[str] = None,
    ) -> RenderedPage:
        """
        Load `url`, wait for the widget data to exist, and return the HTML.

        `ready_selector` / `ready_function` are waited on separately from the
        page load because widgets populate after the base document. Timeouts
        and browser errors surface as SourceUnavailableError.
        """
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = self._browser.new_page()
        try:
            page.goto(url, wait_until=wait_until, timeout=self.page_timeout * 1000)
            if ready_selector:
                page.wait_for_selector(ready_selector, state="attached", timeout=self.ready_timeout * 1000)
            if ready_function:
                page.wait_for_function(ready_function, polling=500, timeout=self.ready_timeout * 1000)
            data = page.evaluate(evaluate) if evaluate else None
            html = page.content()
        except PlaywrightTimeoutError as exc:
            raise SourceUnavailableError(f"Timed out rendering {url}: {exc}", url=url) from exc
        except PlaywrightError as exc:
            raise SourceUnavailableError(f"Failed to render {url}: {exc}", url=url) from exc
        finally:
            try:
                page.close()
            except PlaywrightError as exc:
                logger.debug("Ignoring page close error for %s: %s", url, exc)
        return RenderedPage(url=url, html=html, data=data)


class PageRenderer:
    def __init__(self, page_timeout: float = 60.0, ready_timeout: float = 30.0, headless: bool = True):
        self.page_timeout = page_timeout
        self.ready_timeout = ready_timeout
        self.headless = headless

    @contextmanager
    def session(self) -> Iterator[BrowserSession]:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            try:
                browser = p.chromium.launch(headless=self.headless)
            except PlaywrightError as exc:
                raise SourceUnavailableError(f"Could not launch browser: {exc}") from exc
            try:
                yield BrowserSession(browser, self.page_timeout, self.ready_timeout)
            finally:
                browser.close()
