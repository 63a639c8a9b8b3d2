"""Drives the archive page's "load more" control until enough episodes are visible.

The driver only talks to the page through a handful of Playwright page calls
(``locator``, ``evaluate``, ``wait_for_timeout``, ``content``), so any object
exposing the same methods can stand in for a real browser page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from playwright.sync_api import Error as PlaywrightError

from . import config_constants
from .extraction import count_containers

logger = logging.getLogger(__name__)

SCROLL_TO_BOTTOM_JS = "window.scrollTo(0, document.body.scrollHeight)"

# Termination reasons
REACHED = "reached"
EXHAUSTED = "exhausted"
STALLED = "stalled"
ATTEMPT_LIMIT = "attempt_limit"


@dataclass
class PaginationState:
    """Loop-local bookkeeping; never shared between runs."""

    attempts: int = 0
    last_count: int = 0
    stall_streak: int = 0


@dataclass
class PaginationResult:
    count: int
    attempts: int
    reason: str


def page_container_count(page: Any) -> int:
    """Count episode containers on the live page."""
    return count_containers(page.content())


def scroll_to_bottom(page: Any, settle_ms: int) -> None:
    page.evaluate(SCROLL_TO_BOTTOM_JS)
    page.wait_for_timeout(settle_ms)


def load_more_visible(page: Any, selector: str) -> bool:
    """True when the "load more" control exists and is visible."""
    try:
        locator = page.locator(selector)
        if locator.count() == 0:
            return False
        return bool(locator.first.is_visible())
    except PlaywrightError as exc:
        logger.debug("Load more lookup failed: %s", exc)
        return False


def expand_until(
    page: Any,
    target: int,
    *,
    count_fn: Optional[Callable[[Any], int]] = None,
    selector: str = config_constants.DEFAULT_LOAD_MORE_SELECTOR,
    max_attempts: int = config_constants.DEFAULT_MAX_LOAD_MORE_ATTEMPTS,
    settle_ms: int = config_constants.DEFAULT_SETTLE_MS,
    scroll_settle_ms: int = config_constants.DEFAULT_SCROLL_SETTLE_MS,
    stall_limit: int = config_constants.DEFAULT_STALL_LIMIT,
) -> PaginationResult:
    """Click "load more" until ``target`` containers are present or loading stops.

    Each pass scrolls to the bottom, recounts containers and then decides:

    - count >= target: done (``reached``)
    - count unchanged after ``stall_limit`` consecutive clicks (``stalled``)
    - ``max_attempts`` clicks already made (``attempt_limit``)
    - control missing, hidden or failing to click (``exhausted``)

    None of these outcomes raise; the caller extracts whatever is loaded.

    Args:
        page: Playwright page (or a compatible fake)
        target: Desired number of episode containers
        count_fn: Container counter, defaults to the extractor's predicate
        selector: CSS selector of the "load more" control
        max_attempts: Ceiling on clicks
        settle_ms: Wait after each click
        scroll_settle_ms: Wait after each scroll
        stall_limit: Consecutive non-increasing clicks tolerated

    Returns:
        PaginationResult with the final count, clicks made and reason
    """
    if count_fn is None:
        count_fn = page_container_count
    state = PaginationState()

    while True:
        scroll_to_bottom(page, scroll_settle_ms)
        count = count_fn(page)

        if state.attempts > 0:
            if count > state.last_count:
                state.stall_streak = 0
            else:
                state.stall_streak += 1
        state.last_count = count
        logger.info("Episodes loaded so far: %d", count)

        if count >= target:
            return _finish(state, REACHED)
        if state.stall_streak >= stall_limit:
            logger.info("No new episodes after %d clicks, stopping", state.stall_streak)
            return _finish(state, STALLED)
        if state.attempts >= max_attempts:
            logger.info("Reached load more limit (%d clicks), stopping", max_attempts)
            return _finish(state, ATTEMPT_LIMIT)
        if not load_more_visible(page, selector):
            logger.info("No load more control visible, stopping")
            return _finish(state, EXHAUSTED)

        try:
            page.locator(selector).first.click(force=True)
        except PlaywrightError as exc:
            logger.warning("Load more click failed: %s", exc)
            return _finish(state, EXHAUSTED)

        state.attempts += 1
        logger.debug("Clicked load more (attempt %d)", state.attempts)
        page.wait_for_timeout(settle_ms)


def _finish(state: PaginationState, reason: str) -> PaginationResult:
    return PaginationResult(count=state.last_count, attempts=state.attempts, reason=reason)
