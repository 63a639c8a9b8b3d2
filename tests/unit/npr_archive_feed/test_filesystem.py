#!/usr/bin/env python3
"""Tests for output path validation and atomic writes."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from npr_archive_feed import filesystem


class TestValidateOutputFile(unittest.TestCase):
    """Tests for validate_and_normalize_output_file."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_empty_path_rejected(self):
        for value in ("", "   "):
            with self.subTest(value=value), self.assertRaises(ValueError):
                filesystem.validate_and_normalize_output_file(value)

    def test_directory_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            filesystem.validate_and_normalize_output_file(self.temp_dir.name)
        self.assertIn("directory", str(ctx.exception))

    def test_relative_path_made_absolute(self):
        result = filesystem.validate_and_normalize_output_file("feeds/jazz.xml")
        self.assertTrue(os.path.isabs(result))
        self.assertEqual(result, str(Path("feeds/jazz.xml").resolve()))

    def test_outside_safe_roots_warns(self):
        target = os.path.join(self.temp_dir.name, "feed.xml")
        with patch.object(filesystem.Path, "home", return_value=Path("/nonexistent-home")), patch.object(
            filesystem.Path, "cwd", return_value=Path("/nonexistent-cwd")
        ), self.assertLogs("npr_archive_feed.filesystem", level="WARNING"):
            result = filesystem.validate_and_normalize_output_file(target)
        self.assertEqual(result, str(Path(target).resolve()))


class TestWriteFileAtomic(unittest.TestCase):
    """Tests for write_file_atomic."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "nested", "feed.xml")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_creates_parent_directories(self):
        filesystem.write_file_atomic(self.path, b"<rss/>")
        with open(self.path, "rb") as handle:
            self.assertEqual(handle.read(), b"<rss/>")

    def test_replaces_existing_contents(self):
        filesystem.write_file_atomic(self.path, b"old")
        filesystem.write_file_atomic(self.path, b"new")
        with open(self.path, "rb") as handle:
            self.assertEqual(handle.read(), b"new")
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["feed.xml"])

    def test_failed_replace_keeps_previous_file(self):
        filesystem.write_file_atomic(self.path, b"old")
        with patch.object(filesystem.os, "replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                filesystem.write_file_atomic(self.path, b"new")

        with open(self.path, "rb") as handle:
            self.assertEqual(handle.read(), b"old")
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["feed.xml"])


if __name__ == "__main__":
    unittest.main()
