"""Run orchestration for the build, update and inspect modes."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, ContextManager, List, Optional, Tuple

from . import browser, config, config_constants, extraction, filesystem, rss_feed
from .dates import format_rfc1123, resolve_date
from .exceptions import NoEpisodesFoundError
from .merger import merge_episodes
from .models import ChannelInfo, Feed, RawEpisode
from .pagination import expand_until

logger = logging.getLogger(__name__)

INSPECT_SAMPLE_SIZE = 3
PACKAGE_LOGGER = "npr_archive_feed"
CONSOLE_HANDLER_NAME = "npr_archive_feed.console"

OpenPageFn = Callable[[config.Config], ContextManager[Any]]


def apply_log_level(level: str, log_file: Optional[str] = None) -> None:
    """Configure the ``npr_archive_feed`` logger for one run.

    Console output goes to stderr; stdout is left for the run summary. With
    ``log_file`` set, records are also appended to a size-rotated file shared
    by successive scheduled runs. Repeated calls update levels and never
    attach the same handler twice.

    Args:
        level: Log level string (e.g., 'DEBUG', 'INFO', 'WARNING')
        log_file: Optional path of the rotating log file

    Raises:
        ValueError: If log level is invalid
        OSError: If log file cannot be created or written to
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(numeric_level)
    formatter = logging.Formatter(config_constants.LOG_FORMAT)

    console_handler = next(
        (h for h in package_logger.handlers if getattr(h, "name", None) == CONSOLE_HANDLER_NAME),
        None,
    )
    if console_handler is None and not logging.getLogger().handlers:
        console_handler = logging.StreamHandler()
        console_handler.set_name(CONSOLE_HANDLER_NAME)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)
    if console_handler is not None:
        console_handler.setLevel(numeric_level)

    if not log_file:
        return

    log_path = os.path.abspath(log_file)
    for handler in package_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == log_path:
            handler.setLevel(numeric_level)
            return

    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config_constants.LOG_FILE_MAX_BYTES,
        backupCount=config_constants.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    package_logger.addHandler(file_handler)
    logger.info("Logging to file: %s", log_path)


def _channel_info(cfg: config.Config, image_url: Optional[str]) -> ChannelInfo:
    return ChannelInfo(
        title=cfg.feed_title,
        link=cfg.series_url,
        description=cfg.feed_description,
        language=cfg.feed_language,
        self_url=cfg.self_feed_url,
        image_url=image_url or None,
    )


def _strategies(cfg: config.Config) -> List[extraction.ContainerStrategy]:
    return extraction.build_strategies(cfg.container_strategies, cfg.download_host)


def _extract(
    soup: Any,
    cfg: config.Config,
    base_url: str,
    max_count: Optional[int],
) -> List[RawEpisode]:
    return extraction.extract_episodes(
        soup,
        base_url=base_url,
        max_count=max_count,
        strategies=_strategies(cfg),
        download_host=cfg.download_host,
    )


def run_build(
    cfg: config.Config,
    *,
    open_page_fn: OpenPageFn = browser.open_page,
    now: Optional[datetime] = None,
) -> Tuple[int, str]:
    """Scrape the full archive and write a fresh feed.

    The archive page is expanded with "load more" until ``cfg.max_episodes``
    containers are loaded or loading stops, then every loaded episode is
    extracted, dated, sorted newest first, capped and written.

    Args:
        cfg: Run configuration
        open_page_fn: Context manager factory yielding a browser page
        now: Fallback instant for undatable episodes and the build timestamp

    Returns:
        Tuple[int, str]: Number of items written and a summary message

    Raises:
        PageNavigationError: If the page cannot be loaded or driven
        NoEpisodesFoundError: If no episodes were extracted; nothing is written
        ValueError: If the output path is invalid
    """
    if now is None:
        now = datetime.now(timezone.utc)
    output_path = filesystem.validate_and_normalize_output_file(cfg.output_file)
    strategies = _strategies(cfg)

    with open_page_fn(cfg) as page:
        browser.goto_archive(page, cfg)
        result = expand_until(
            page,
            cfg.max_episodes,
            count_fn=lambda p: extraction.count_containers(p.content(), strategies),
            selector=cfg.load_more_selector,
            max_attempts=cfg.max_load_more_attempts,
            settle_ms=cfg.settle_ms,
            scroll_settle_ms=cfg.scroll_settle_ms,
            stall_limit=cfg.stall_limit,
        )
        logger.info(
            "Pagination finished (%s) with %d containers after %d clicks",
            result.reason,
            result.count,
            result.attempts,
        )
        soup = browser.snapshot(page)
        base_url = browser.page_url(page, cfg.series_url)

    raw_episodes = _extract(soup, cfg, base_url, cfg.max_episodes)
    if not raw_episodes:
        raise NoEpisodesFoundError(cfg.series_url)

    image_url = cfg.channel_image_url or extraction.find_channel_image(
        soup, cfg.channel_image_hint, base_url=base_url
    )
    if image_url:
        logger.info("Channel image: %s", image_url)

    merge = merge_episodes([], raw_episodes, cfg.max_episodes, now=now)
    feed = Feed(channel=_channel_info(cfg, image_url), items=merge.items, last_build_date=now)
    rss_feed.save_feed(output_path, feed, now)

    count = len(feed.items)
    return count, f"Built feed with {count} episodes at {output_path}"


def run_update(
    cfg: config.Config,
    *,
    open_page_fn: OpenPageFn = browser.open_page,
    now: Optional[datetime] = None,
) -> Tuple[int, str]:
    """Merge the newest episodes into the existing feed.

    Only the first ``cfg.check_limit`` episodes on the page are examined and
    no pagination happens. When none of them is new the feed file is left
    untouched.

    Returns:
        Tuple[int, str]: Number of episodes added and a summary message

    Raises:
        FeedNotFoundError: If there is no feed to update; the browser is not opened
        FeedParseError: If the existing feed cannot be read
        PageNavigationError: If the page cannot be loaded
    """
    if now is None:
        now = datetime.now(timezone.utc)
    output_path = filesystem.validate_and_normalize_output_file(cfg.output_file)
    existing = rss_feed.load_feed(output_path)

    with open_page_fn(cfg) as page:
        browser.goto_archive(page, cfg)
        soup = browser.snapshot(page)
        base_url = browser.page_url(page, cfg.series_url)

    raw_episodes = _extract(soup, cfg, base_url, cfg.check_limit)
    if not raw_episodes:
        logger.warning("No episodes extracted from %s; leaving feed untouched", cfg.series_url)
    logger.info("Checking %d newest episodes", len(raw_episodes))

    merge = merge_episodes(existing.items, raw_episodes, cfg.max_episodes, now=now)
    if not merge.changed:
        return 0, f"No new episodes; {output_path} left unchanged"

    for item in merge.added:
        logger.info("New episode: %s (%s)", item.title, item.pub_date)

    image_url = cfg.channel_image_url or existing.channel.image_url
    feed = Feed(channel=_channel_info(cfg, image_url), items=merge.items, last_build_date=now)
    rss_feed.save_feed(output_path, feed, now)

    added = len(merge.added)
    return added, (
        f"Added {added} new episodes to {output_path} "
        f"({len(feed.items)} total, {len(merge.evicted)} dropped)"
    )


def run_inspect(
    cfg: config.Config,
    *,
    open_page_fn: OpenPageFn = browser.open_page,
    now: Optional[datetime] = None,
) -> Tuple[int, str]:
    """Log what the extractor sees on the archive page. Writes nothing.

    Reports the container count per strategy, the strategy extraction would
    use, and the first few episodes with their raw and resolved dates.

    Returns:
        Tuple[int, str]: Number of containers found by the winning strategy and a summary
    """
    if now is None:
        now = datetime.now(timezone.utc)
    strategies = _strategies(cfg)

    with open_page_fn(cfg) as page:
        browser.goto_archive(page, cfg)
        soup = browser.snapshot(page)
        base_url = browser.page_url(page, cfg.series_url)

    for name, count in extraction.describe_strategies(soup, strategies):
        logger.info("Strategy %-18s %d containers", name, count)

    strategy, containers = extraction.resolve_containers(soup, strategies)
    if strategy is None:
        return 0, "No episode containers found"
    logger.info("Extraction would use strategy %s", strategy.name)

    for idx, episode in enumerate(_extract(soup, cfg, base_url, INSPECT_SAMPLE_SIZE), start=1):
        resolved = resolve_date(episode.date_text, now)
        logger.info("Episode %d: %s", idx, episode.title)
        logger.info("  link:     %s", episode.link)
        logger.info("  audio:    %s", episode.audio_url)
        logger.info("  date:     %r -> %s", episode.date_text, format_rfc1123(resolved))
        logger.info("  desc:     %s", episode.description[:120])

    return len(containers), f"Found {len(containers)} containers using {strategy.name}"
