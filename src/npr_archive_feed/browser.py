"""Browser collaborator: opens the archive page with Playwright.

Everything that touches a live browser lives here, so the rest of the
package only sees a page object and HTML snapshots.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from bs4 import BeautifulSoup
from playwright.sync_api import (
    Error as PlaywrightError,
    sync_playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from . import config
from .exceptions import PageNavigationError
from .extraction import HTML_PARSER

logger = logging.getLogger(__name__)

DOM_LOADED = "domcontentloaded"


@contextmanager
def open_page(cfg: config.Config) -> Iterator[Any]:
    """Launch Chromium and yield a fresh page configured from ``cfg``.

    The browser is closed when the block exits, whether or not it raised.

    Raises:
        PageNavigationError: If the browser cannot be launched
    """
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch(headless=cfg.headless)
        except PlaywrightError as exc:
            raise PageNavigationError(f"Failed to launch browser: {exc}") from exc
        try:
            context = browser.new_context(user_agent=cfg.user_agent)
            page = context.new_page()
            page.set_default_navigation_timeout(cfg.navigation_timeout * 1000)
            page.set_default_timeout(cfg.timeout * 1000)
            yield page
        finally:
            browser.close()


def goto_archive(page: Any, cfg: config.Config) -> None:
    """Load the series page and follow the archive link when it exists.

    Raises:
        PageNavigationError: On navigation timeout or other browser failure
    """
    logger.info("Navigating to %s", cfg.series_url)
    try:
        page.goto(cfg.series_url, wait_until=DOM_LOADED)
    except PlaywrightTimeoutError as exc:
        raise PageNavigationError(
            f"Timed out after {cfg.navigation_timeout}s loading the archive page", cfg.series_url
        ) from exc
    except PlaywrightError as exc:
        raise PageNavigationError(f"Failed to load the archive page: {exc}", cfg.series_url) from exc

    if not cfg.archive_link_text:
        return

    archive_link = page.locator(f'a:has-text("{cfg.archive_link_text}")')
    try:
        if archive_link.count() == 0:
            logger.debug("No %r link on page, staying on series page", cfg.archive_link_text)
            return
        logger.info("Following %r link", cfg.archive_link_text)
        archive_link.first.click()
        page.wait_for_load_state(DOM_LOADED)
    except PlaywrightTimeoutError as exc:
        raise PageNavigationError(
            f"Timed out following the {cfg.archive_link_text!r} link", cfg.series_url
        ) from exc
    except PlaywrightError as exc:
        raise PageNavigationError(
            f"Failed to follow the {cfg.archive_link_text!r} link: {exc}", cfg.series_url
        ) from exc
    page.wait_for_timeout(cfg.archive_settle_ms)


def snapshot(page: Any) -> BeautifulSoup:
    """Parse the page's current DOM into a BeautifulSoup snapshot.

    Raises:
        PageNavigationError: If the page content cannot be read
    """
    try:
        html = page.content()
    except PlaywrightError as exc:
        raise PageNavigationError(f"Failed to read page content: {exc}") from exc
    return BeautifulSoup(html, HTML_PARSER)


def page_url(page: Any, fallback: str) -> str:
    """Current page URL, used as the base for relative links."""
    url = getattr(page, "url", None)
    return url if isinstance(url, str) and url else fallback
