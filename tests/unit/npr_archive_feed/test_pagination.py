#!/usr/bin/env python3
"""Tests for the "load more" pagination driver."""

import sys
import unittest
from pathlib import Path

from npr_archive_feed import pagination

# Add tests directory to path for conftest import
tests_dir = Path(__file__).parent.parent.parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import (  # noqa: E402
    build_archive_page,
    build_dated_items,
    FakePage,
    make_click_error,
)


def staged_page(*counts, **kwargs):
    """FakePage whose container count after N clicks is counts[N]."""
    stages = [build_archive_page(build_dated_items(count)) for count in counts]
    return FakePage(stages, **kwargs)


def expand(page, target, **kwargs):
    kwargs.setdefault("settle_ms", 0)
    kwargs.setdefault("scroll_settle_ms", 0)
    return pagination.expand_until(page, target, **kwargs)


class TestExpandUntil(unittest.TestCase):
    """Tests for expand_until termination conditions."""

    def test_target_already_reached(self):
        page = staged_page(10)
        result = expand(page, 5)

        self.assertEqual(result.reason, pagination.REACHED)
        self.assertEqual(result.count, 10)
        self.assertEqual(page.clicks, 0)

    def test_clicks_until_target(self):
        page = staged_page(5, 10, 15, 20)
        result = expand(page, 12)

        self.assertEqual(result.reason, pagination.REACHED)
        self.assertEqual(result.count, 15)
        self.assertEqual(page.clicks, 2)

    def test_stalls_after_three_unproductive_clicks(self):
        page = staged_page(5, 10, 14)
        result = expand(page, 100)

        self.assertEqual(result.reason, pagination.STALLED)
        self.assertEqual(result.count, 14)
        self.assertEqual(page.clicks, 5)

    def test_stall_streak_resets_on_increase(self):
        counts = iter([5, 5, 5, 8, 8, 8, 8])
        page = staged_page(5)
        result = expand(page, 100, count_fn=lambda p: next(counts))

        self.assertEqual(result.reason, pagination.STALLED)
        self.assertEqual(result.count, 8)
        self.assertEqual(page.clicks, 6)

    def test_custom_stall_limit(self):
        page = staged_page(5)
        result = expand(page, 100, stall_limit=1)

        self.assertEqual(result.reason, pagination.STALLED)
        self.assertEqual(page.clicks, 1)

    def test_exhausted_when_control_missing(self):
        page = staged_page(5, 10, load_more_present=False)
        result = expand(page, 100)

        self.assertEqual(result.reason, pagination.EXHAUSTED)
        self.assertEqual(result.count, 5)
        self.assertEqual(page.clicks, 0)

    def test_exhausted_when_control_hidden(self):
        page = staged_page(5, 10, load_more_visible=False)
        result = expand(page, 100)
        self.assertEqual(result.reason, pagination.EXHAUSTED)

    def test_click_error_is_not_fatal(self):
        page = staged_page(5, 10, click_error=make_click_error())
        with self.assertLogs("npr_archive_feed.pagination", level="WARNING"):
            result = expand(page, 100)

        self.assertEqual(result.reason, pagination.EXHAUSTED)
        self.assertEqual(result.count, 5)

    def test_attempt_ceiling(self):
        counter = iter(range(1, 1000))
        page = staged_page(1)
        result = expand(page, 1000, count_fn=lambda p: next(counter), max_attempts=4)

        self.assertEqual(result.reason, pagination.ATTEMPT_LIMIT)
        self.assertEqual(result.attempts, 4)
        self.assertEqual(page.clicks, 4)

    def test_scrolls_before_every_count(self):
        page = staged_page(5, 10, 14)
        expand(page, 100)
        self.assertEqual(page.scrolls, page.clicks + 1)

    def test_waits_use_configured_settle_times(self):
        page = staged_page(5, 10)
        expand(page, 10, settle_ms=2500, scroll_settle_ms=1200)
        self.assertEqual(page.waits, [1200, 2500, 1200])

    def test_default_count_uses_page_content(self):
        page = staged_page(3)
        self.assertEqual(pagination.page_container_count(page), 3)


if __name__ == "__main__":
    unittest.main()
