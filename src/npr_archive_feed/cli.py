"""Command-line interface for npr_archive_feed."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Callable, cast, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from pydantic import ValidationError

from . import __version__, config, workflow
from .exceptions import FeedError

_LOGGER = logging.getLogger(__name__)

RunFn = Callable[[config.Config], Tuple[int, str]]

COMMAND_BUILD = "build"
COMMAND_UPDATE = "update"
COMMAND_INSPECT = "inspect"

_RUNNERS: Dict[str, RunFn] = {
    COMMAND_BUILD: workflow.run_build,
    COMMAND_UPDATE: workflow.run_update,
    COMMAND_INSPECT: workflow.run_inspect,
}

# CLI dest -> Config field
_ARG_TO_FIELD = {
    "url": "series_url",
    "output": "output_file",
    "max_episodes": "max_episodes",
    "check_limit": "check_limit",
    "self_url": "self_feed_url",
    "log_level": "log_level",
    "log_file": "log_file",
}


def _validate_url(url_value: str, errors: List[str]) -> None:
    """Validate the archive page URL.

    Args:
        url_value: URL string
        errors: List to append validation errors to
    """
    parsed_obj = urlparse(url_value)
    if parsed_obj.scheme not in ("http", "https"):
        errors.append(f"URL must be http or https: {url_value}")
    if not parsed_obj.netloc:
        errors.append(f"URL must have a valid hostname: {url_value}")


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments and raise ValueError when invalid."""
    if not getattr(args, "command", None):
        raise ValueError(f"A command is required: {', '.join(_RUNNERS)}")

    errors: List[str] = []

    if args.url:
        _validate_url(args.url.strip(), errors)

    if args.max_episodes is not None and args.max_episodes <= 0:
        errors.append(f"--max-episodes must be positive, got: {args.max_episodes}")

    check_limit = getattr(args, "check_limit", None)
    if check_limit is not None and check_limit <= 0:
        errors.append(f"--check-limit must be positive, got: {check_limit}")

    if args.log_level is not None and args.log_level not in config.VALID_LOG_LEVELS:
        errors.append(f"--log-level must be one of {config.VALID_LOG_LEVELS}, got: {args.log_level}")

    if errors:
        raise ValueError("Invalid input parameters:\n  " + "\n  ".join(errors))


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared by every command.

    Args:
        parser: Argument parser to add arguments to
    """
    parser.add_argument(
        "url", nargs="?", default=None, help=f"Archive page URL (default: {config.DEFAULT_SERIES_URL})"
    )
    parser.add_argument("--config", default=None, help="Path to configuration file (JSON or YAML)")
    parser.add_argument(
        "--output", default=None, help=f"Feed file path (default: {config.DEFAULT_OUTPUT_FILE})"
    )
    parser.add_argument(
        "--max-episodes",
        type=int,
        default=None,
        help=f"Maximum number of episodes kept in the feed (default: {config.DEFAULT_MAX_EPISODES})",
    )
    parser.add_argument(
        "--self-url", default=None, help="Public URL of the feed, written as its self link"
    )
    parser.add_argument(
        "--show-browser",
        action="store_true",
        help="Run the browser with a visible window instead of headless",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to log file (logs will be written to both console and file)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        help="Logging level (e.g., DEBUG, INFO)",
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    common = argparse.ArgumentParser(add_help=False)
    _add_common_arguments(common)

    parser = argparse.ArgumentParser(
        description="Build and maintain a Zune-compatible RSS feed from the NPR Jazz Night archive."
    )
    parser.add_argument("--version", action="store_true", help="Show program version and exit")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        COMMAND_BUILD,
        parents=[common],
        help="Scrape the full archive and write a fresh feed",
    )
    update_parser = subparsers.add_parser(
        COMMAND_UPDATE,
        parents=[common],
        help="Add the newest episodes to an existing feed",
    )
    update_parser.add_argument(
        "--check-limit",
        type=int,
        default=None,
        help=f"Number of newest episodes to check (default: {config.DEFAULT_CHECK_LIMIT})",
    )
    subparsers.add_parser(
        COMMAND_INSPECT,
        parents=[common],
        help="Show what the extractor finds on the page without writing anything",
    )

    initial_args, _ = parser.parse_known_args(argv)
    if initial_args.version:
        print(f"npr_archive_feed {__version__}")
        raise SystemExit(0)

    args = parser.parse_args(argv)
    validate_args(args)
    return args


def _normalize_config_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map alias keys from a config file onto Config field names."""
    alias_to_field = {
        field.alias: name
        for name, field in config.Config.model_fields.items()
        if field.alias and field.alias != name
    }
    return {alias_to_field.get(key, key): value for key, value in data.items()}


def _build_config(args: argparse.Namespace) -> config.Config:
    """Materialize a Config from the config file (if any) and CLI overrides.

    Raises:
        ValueError: If the config file cannot be loaded
        ValidationError: If the merged values are invalid
    """
    payload: Dict[str, Any] = {}
    if args.config:
        payload.update(_normalize_config_keys(config.load_config_file(args.config)))

    for dest, field_name in _ARG_TO_FIELD.items():
        value = getattr(args, dest, None)
        if value is not None:
            payload[field_name] = value
    if args.show_browser:
        payload["headless"] = False

    # Pydantic's model_validate returns the correct type, but mypy needs help
    return cast(config.Config, config.Config.model_validate(payload))


def _log_configuration(cfg: config.Config, command: str, logger: logging.Logger) -> None:
    """Log the effective configuration in a structured format.

    Args:
        cfg: Configuration object
        command: Command being run
        logger: Logger instance to use
    """
    logger.info("=" * 80)
    logger.info(f"Configuration ({command})")
    logger.info("=" * 80)

    logger.info("Source:")
    logger.info(f"  URL: {cfg.series_url}")
    logger.info(f"  Archive Link: {cfg.archive_link_text or 'none'}")
    logger.info(f"  Download Host: {cfg.download_host}")
    logger.info(f"  Container Strategies: {', '.join(cfg.container_strategies)}")

    logger.info("Output:")
    logger.info(f"  Feed File: {cfg.output_file}")
    logger.info(f"  Self URL: {cfg.self_feed_url}")
    logger.info(f"  Max Episodes: {cfg.max_episodes}")
    if command == COMMAND_UPDATE:
        logger.info(f"  Check Limit: {cfg.check_limit}")

    if command == COMMAND_BUILD:
        logger.info("Pagination:")
        logger.info(f"  Load More Selector: {cfg.load_more_selector}")
        logger.info(f"  Max Clicks: {cfg.max_load_more_attempts}")
        logger.info(f"  Stall Limit: {cfg.stall_limit}")
        logger.info(f"  Settle: {cfg.settle_ms}ms (scroll {cfg.scroll_settle_ms}ms)")

    logger.info("Browser:")
    logger.info(f"  Headless: {cfg.headless}")
    logger.info(f"  Navigation Timeout: {cfg.navigation_timeout}s")
    logger.info(f"  Timeout: {cfg.timeout}s")
    logger.info(
        f"  User-Agent: {cfg.user_agent[:50]}..."
        if len(cfg.user_agent) > 50
        else f"  User-Agent: {cfg.user_agent}"
    )

    logger.info(f"Log Level: {cfg.log_level}")
    logger.info(f"Log File: {cfg.log_file or 'console only'}")
    logger.info("=" * 80)


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    apply_log_level_fn: Optional[Callable[[str, Optional[str]], None]] = None,
    run_fn: Optional[RunFn] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Entry point for the CLI; returns an exit status code."""
    log = logger or _LOGGER
    if apply_log_level_fn is None:
        apply_log_level_fn = workflow.apply_log_level

    try:
        args = parse_args(argv)
    except ValueError as exc:
        log.error(f"Error: {exc}")
        return 1

    try:
        cfg = _build_config(args)
    except ValidationError as exc:
        log.error(f"Invalid configuration: {exc}")
        return 1
    except ValueError as exc:
        log.error(f"Error: {exc}")
        return 1

    apply_log_level_fn(cfg.log_level, cfg.log_file)
    if run_fn is None:
        run_fn = _RUNNERS[args.command]

    log.info(f"Starting {args.command}")
    _log_configuration(cfg, args.command, log)

    try:
        _, summary = run_fn(cfg)
    except FeedError as exc:
        log.error(str(exc))
        return 1
    except Exception as exc:
        log.error(f"Unexpected failure: {exc}")
        return 1

    log.info(summary)
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
