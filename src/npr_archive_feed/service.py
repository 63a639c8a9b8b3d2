"""Service API for scheduled, non-interactive runs.

Works exclusively from configuration files and returns structured results,
which suits cron jobs and CI schedules that refresh the feed periodically.

Example:
    >>> from npr_archive_feed import service
    >>> result = service.run_from_config_file("config.yaml", mode="update")
    >>> if not result.success:
    ...     print(f"Error: {result.error}")

For scheduled usage:
    python -m npr_archive_feed.service --config /path/to/config.yaml --mode update
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import __version__, config, workflow

logger = logging.getLogger(__name__)

MODE_BUILD = "build"
MODE_UPDATE = "update"
MODES = (MODE_BUILD, MODE_UPDATE)


@dataclass
class ServiceResult:
    """Result of a service run.

    Attributes:
        mode: Mode that was run ("build" or "update")
        episodes_written: Items written (build) or new items added (update)
        summary: Human-readable summary message
        success: Whether the run completed successfully
        error: Error message if success is False, None otherwise
    """

    mode: str
    episodes_written: int
    summary: str
    success: bool = True
    error: Optional[str] = None


def run(cfg: config.Config, mode: str = MODE_UPDATE) -> ServiceResult:
    """Run one build or update with the given configuration.

    Failures are logged and reported in the result instead of raised.
    """
    if mode not in MODES:
        return ServiceResult(
            mode=mode,
            episodes_written=0,
            summary="",
            success=False,
            error=f"Unknown mode {mode!r}; expected one of {MODES}",
        )

    try:
        workflow.apply_log_level(level=cfg.log_level, log_file=cfg.log_file)
        run_fn = workflow.run_build if mode == MODE_BUILD else workflow.run_update
        count, summary = run_fn(cfg)
        return ServiceResult(mode=mode, episodes_written=count, summary=summary)
    except Exception as e:
        error_msg = str(e)
        logger.error(f"Feed {mode} failed: {error_msg}", exc_info=True)
        return ServiceResult(
            mode=mode,
            episodes_written=0,
            summary="",
            success=False,
            error=error_msg,
        )


def run_from_config_file(config_path: str | Path, mode: str = MODE_UPDATE) -> ServiceResult:
    """Load a configuration file and run ``mode`` with it."""
    try:
        config_dict = config.load_config_file(str(config_path))
        cfg = config.Config(**config_dict)
    except Exception as exc:
        error_msg = f"Failed to load configuration file: {exc}"
        logger.error(error_msg)
        return ServiceResult(
            mode=mode,
            episodes_written=0,
            summary="",
            success=False,
            error=error_msg,
        )
    return run(cfg, mode)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for service mode; returns 0 on success, 1 on failure."""
    import argparse

    parser = argparse.ArgumentParser(
        description="NPR archive feed service - run a build or update from a configuration file",
    )
    parser.add_argument("--config", required=True, help="Path to configuration file (JSON or YAML)")
    parser.add_argument("--mode", choices=MODES, default=MODE_UPDATE, help="Run mode")
    parser.add_argument(
        "--version", action="version", version=f"npr_archive_feed service {__version__}"
    )
    args = parser.parse_args(argv)

    result = run_from_config_file(args.config, args.mode)
    if result.success:
        print(result.summary)
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
