#!/usr/bin/env python3
"""Tests for date resolution and RFC-1123 formatting."""

import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

from npr_archive_feed import dates

# Add tests directory to path for conftest import
tests_dir = Path(__file__).parent.parent.parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import TEST_AUDIO_URL, TEST_NOW  # noqa: E402

OCT_14 = datetime(2025, 10, 14, tzinfo=timezone.utc)


class TestResolveDate(unittest.TestCase):
    """Tests for resolve_date."""

    def test_iso_date(self):
        self.assertEqual(dates.resolve_date("2025-10-14", TEST_NOW), OCT_14)

    def test_full_month_name(self):
        self.assertEqual(dates.resolve_date("October 14, 2025", TEST_NOW), OCT_14)

    def test_abbreviated_month_name(self):
        self.assertEqual(dates.resolve_date("Oct 14, 2025", TEST_NOW), OCT_14)

    def test_slash_date(self):
        self.assertEqual(dates.resolve_date("10/14/2025", TEST_NOW), OCT_14)

    def test_url_datestamp(self):
        self.assertEqual(dates.resolve_date(TEST_AUDIO_URL, TEST_NOW), OCT_14)

    def test_rfc1123_round_trip(self):
        self.assertEqual(dates.resolve_date("Tue, 14 Oct 2025 00:00:00 GMT", TEST_NOW), OCT_14)

    def test_empty_text_returns_fallback(self):
        self.assertEqual(dates.resolve_date("", TEST_NOW), TEST_NOW)

    def test_garbage_text_returns_fallback(self):
        self.assertEqual(dates.resolve_date("garbage text", TEST_NOW), TEST_NOW)

    def test_impossible_date_returns_fallback(self):
        self.assertEqual(dates.resolve_date("2025-02-30", TEST_NOW), TEST_NOW)

    def test_implausible_date_accepted_as_parsed(self):
        jan_1_1900 = datetime(1900, 1, 1, tzinfo=timezone.utc)
        resolved = dates.resolve_date("January 1, 1900", TEST_NOW)

        self.assertEqual(resolved, jan_1_1900)
        formatted = dates.format_rfc1123(resolved)
        self.assertEqual(formatted, "Mon, 01 Jan 1900 00:00:00 GMT")
        self.assertEqual(dates.resolve_date(formatted, TEST_NOW), jan_1_1900)

    def test_default_fallback_is_now(self):
        before = datetime.now(timezone.utc)
        resolved = dates.resolve_date("")
        self.assertGreaterEqual(resolved, before)
        self.assertIsNotNone(resolved.tzinfo)

    def test_naive_fallback_becomes_utc(self):
        resolved = dates.resolve_date("", datetime(2025, 1, 1, 8, 30))
        self.assertEqual(resolved, datetime(2025, 1, 1, 8, 30, tzinfo=timezone.utc))

    def test_results_are_timezone_aware(self):
        for text in ("2025-10-14", "October 14, 2025", "10/14/2025"):
            with self.subTest(text=text):
                self.assertEqual(dates.resolve_date(text, TEST_NOW).tzinfo, timezone.utc)


class TestExtractUrlDatestamp(unittest.TestCase):
    """Tests for extract_url_datestamp."""

    def test_specials_audio_url(self):
        url = "https://ondemand.npr.org/anon.npr-mp3/npr/specials/2025/10/20251014_specials_x.mp3"
        self.assertEqual(dates.extract_url_datestamp(url), "2025-10-14")

    def test_url_without_datestamp(self):
        url = "https://ondemand.npr.org/anon.npr-mp3/npr/specials/fallback.mp3"
        self.assertEqual(dates.extract_url_datestamp(url), "")

    def test_impossible_datestamp_is_ignored(self):
        url = "https://ondemand.npr.org/npr/specials/2025/13/20251345_x.mp3"
        self.assertEqual(dates.extract_url_datestamp(url), "")

    def test_empty_url(self):
        self.assertEqual(dates.extract_url_datestamp(""), "")


class TestFindDateText(unittest.TestCase):
    """Tests for find_date_text priority order."""

    def test_url_datestamp_beats_text(self):
        self.assertEqual(dates.find_date_text(TEST_AUDIO_URL, "March 3, 2020"), "2025-10-14")

    def test_full_month_before_iso(self):
        text = "Aired 2024-01-02 originally, rebroadcast January 5, 2025"
        self.assertEqual(dates.find_date_text("", text), "January 5, 2025")

    def test_abbreviated_month(self):
        self.assertEqual(dates.find_date_text("", "Feb 7, 2024 • A set"), "Feb 7, 2024")

    def test_iso_before_slash(self):
        self.assertEqual(dates.find_date_text("", "1/2/2024 then 2024-03-04"), "2024-03-04")

    def test_slash_date(self):
        self.assertEqual(dates.find_date_text("", "Recorded 3/9/2023 live"), "3/9/2023")

    def test_nothing_found(self):
        self.assertEqual(dates.find_date_text("", "No date here"), "")


class TestFormatRfc1123(unittest.TestCase):
    """Tests for format_rfc1123."""

    def test_format_utc(self):
        self.assertEqual(dates.format_rfc1123(OCT_14), "Tue, 14 Oct 2025 00:00:00 GMT")

    def test_format_converts_to_utc(self):
        from datetime import timedelta

        eastern = timezone(timedelta(hours=-4))
        value = datetime(2025, 10, 13, 20, 0, tzinfo=eastern)
        self.assertEqual(dates.format_rfc1123(value), "Tue, 14 Oct 2025 00:00:00 GMT")


if __name__ == "__main__":
    unittest.main()
