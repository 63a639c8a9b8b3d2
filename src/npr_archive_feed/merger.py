"""Merging of freshly scraped episodes into an existing feed item set."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .dates import resolve_date
from .models import FeedItem, MergeResult, RawEpisode

logger = logging.getLogger(__name__)


def build_feed_item(raw: RawEpisode, now: datetime) -> FeedItem:
    """Resolve a RawEpisode's date and turn it into a FeedItem."""
    return FeedItem(
        title=raw.title,
        link=raw.link,
        audio_url=raw.audio_url,
        description=raw.description,
        published=resolve_date(raw.date_text, now),
        date_text=raw.date_text,
    )


def _unique_by_audio_url(items: Iterable, seen: set) -> list:
    unique = []
    for item in items:
        if item.audio_url in seen:
            continue
        seen.add(item.audio_url)
        unique.append(item)
    return unique


def merge_episodes(
    existing: List[FeedItem],
    new_raw: List[RawEpisode],
    cap: int,
    now: Optional[datetime] = None,
) -> MergeResult:
    """Merge new episodes into ``existing``.

    Episodes whose audio URL is already known are dropped. When nothing new
    remains the result has ``changed=False`` and the existing items untouched.
    Otherwise new and existing items are combined, stably sorted newest first
    and truncated to ``cap``. Ties keep new items ahead of existing ones.

    Args:
        existing: Items currently in the feed
        new_raw: Freshly scraped episodes
        cap: Maximum number of items kept
        now: Fallback instant for undatable episodes (defaults to now)

    Returns:
        MergeResult describing the new item set
    """
    if now is None:
        now = datetime.now(timezone.utc)

    seen: set[str] = set()
    kept_existing = _unique_by_audio_url(existing, seen)
    fresh = _unique_by_audio_url(new_raw, seen)

    if not fresh:
        logger.info("No new episodes found")
        return MergeResult(items=list(existing), changed=False)

    logger.info("Found %d new episodes", len(fresh))
    new_items = [build_feed_item(raw, now) for raw in fresh]

    combined = new_items + kept_existing
    combined.sort(key=lambda item: item.published, reverse=True)
    items = combined[:cap]
    evicted = combined[cap:]

    kept_urls = {item.audio_url for item in items}
    added = [item for item in new_items if item.audio_url in kept_urls]
    if evicted:
        logger.info("Dropping %d oldest episodes beyond the %d item cap", len(evicted), cap)

    return MergeResult(items=items, added=added, evicted=evicted, changed=True)


__all__ = ["build_feed_item", "merge_episodes"]
