"""Filesystem utilities for npr_archive_feed."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from platformdirs import user_cache_dir, user_data_dir

logger = logging.getLogger(__name__)

TEMP_FILE_PREFIX = ".feed-"
TEMP_FILE_SUFFIX = ".tmp"
_PLATFORMDIR_APP_NAMES = ("npr_archive_feed", "npr-archive-feed")


def _platformdirs_safe_roots() -> set[Path]:
    """Return resolved platformdirs locations considered safe for outputs."""
    roots: set[Path] = set()
    for getter in (user_data_dir, user_cache_dir):
        for app_name in _PLATFORMDIR_APP_NAMES:
            location = getter(app_name)
            if not location:
                continue
            try:
                roots.add(Path(location).expanduser().resolve())
            except (OSError, RuntimeError):
                continue
    return roots


_PLATFORMDIR_SAFE_ROOTS = _platformdirs_safe_roots()


def validate_and_normalize_output_file(path: str) -> str:
    """Validate a feed output path and return it absolute and normalized.

    Paths outside the working directory, the home directory and the app data
    directories are accepted with a warning.

    Raises:
        ValueError: If the path is empty, unresolvable or names a directory
    """
    if not path or not path.strip():
        raise ValueError("Output file path cannot be empty")

    try:
        resolved = Path(path.strip()).expanduser().resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid output file path: {path} ({exc})")

    if resolved.is_dir():
        raise ValueError(f"Output file path is a directory: {resolved}")

    safe_roots = {Path.cwd().resolve(), Path.home().resolve(), *_PLATFORMDIR_SAFE_ROOTS}
    if not any(resolved == root or resolved.is_relative_to(root) for root in safe_roots):
        logger.warning(
            f"Output file {resolved} is outside recommended locations (home or app data)."
        )
    return str(resolved)


def write_file_atomic(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary sibling file and an atomic rename.

    Parent directories are created as needed. On failure the temporary file is
    removed and the previous contents of ``path`` are left untouched.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(prefix=TEMP_FILE_PREFIX, suffix=TEMP_FILE_SUFFIX, dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise
