"""Date resolution for scraped episode metadata.

Episode dates on the archive page show up in several shapes: a datestamp
embedded in the audio URL (``/2025/10/20251014_specials_x.mp3``), long or
abbreviated month names, ISO dates and US slash dates. This module finds
date text inside free-form container text and resolves it to a UTC instant,
falling back to a caller-supplied instant when nothing parses.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional

logger = logging.getLogger(__name__)

URL_DATESTAMP_RE = re.compile(r"/(\d{4})/(\d{2})/(\d{8})")
FULL_MONTH_DATE_RE = re.compile(
    r"\b(?:January|February|March|April|May|June|July|August|September|October|November"
    r"|December)\s+\d{1,2},\s+\d{4}\b"
)
ABBREVIATED_MONTH_DATE_RE = re.compile(
    r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},\s+\d{4}\b"
)
ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
SLASH_DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b")

# Checked in order; first match wins
TEXT_DATE_PATTERNS = (
    FULL_MONTH_DATE_RE,
    ABBREVIATED_MONTH_DATE_RE,
    ISO_DATE_RE,
    SLASH_DATE_RE,
)

DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _datestamp_to_datetime(datestamp: str) -> Optional[datetime]:
    """Turn an eight digit ``YYYYMMDD`` stamp into a UTC midnight instant."""
    try:
        return datetime(
            int(datestamp[0:4]), int(datestamp[4:6]), int(datestamp[6:8]), tzinfo=timezone.utc
        )
    except ValueError:
        return None


def extract_url_datestamp(url: str) -> str:
    """Return ``YYYY-MM-DD`` for a ``/YYYY/MM/YYYYMMDD`` datestamp in ``url``, or "".

    Example:
        >>> extract_url_datestamp(".../specials/2025/10/20251014_specials_x.mp3")
        '2025-10-14'
    """
    if not url:
        return ""
    match = URL_DATESTAMP_RE.search(url)
    if not match:
        return ""
    stamp = match.group(3)
    if _datestamp_to_datetime(stamp) is None:
        logger.debug("Ignoring impossible datestamp %s in %s", stamp, url)
        return ""
    return f"{stamp[0:4]}-{stamp[4:6]}-{stamp[6:8]}"


def find_date_text(audio_url: str, context_text: str) -> str:
    """Pick the most reliable date text for one episode container.

    The audio URL datestamp wins; otherwise the container text is scanned for
    full month names, abbreviated month names, ISO dates and slash dates, in
    that order.

    Args:
        audio_url: Direct audio URL of the episode
        context_text: Full text of the episode container

    Returns:
        Matched date text, or "" when nothing matched
    """
    from_url = extract_url_datestamp(audio_url)
    if from_url:
        return from_url

    for pattern in TEXT_DATE_PATTERNS:
        match = pattern.search(context_text or "")
        if match:
            return match.group(0)
    return ""


def _parse_date_text(text: str) -> Optional[datetime]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    # RFC-1123 / RFC-2822 (pubDate values read back from a persisted feed)
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return _as_utc(parsed)


def resolve_date(date_text: str, fallback: Optional[datetime] = None) -> datetime:
    """Resolve date text to a UTC instant. Never raises.

    Resolution order:
    1. ``/YYYY/MM/YYYYMMDD`` datestamp anywhere in the text
    2. Direct parse ("October 14, 2025", "Oct 14, 2025", "2025-10-14",
       "10/14/2025", RFC-1123)
    3. ``fallback`` (defaults to now)

    Args:
        date_text: Raw date text, possibly empty
        fallback: Instant returned when nothing parses

    Returns:
        Timezone-aware UTC datetime
    """
    if fallback is None:
        fallback = datetime.now(timezone.utc)
    fallback = _as_utc(fallback)

    text = (date_text or "").strip()
    if not text:
        logger.debug("No date text provided, using fallback %s", format_rfc1123(fallback))
        return fallback

    match = URL_DATESTAMP_RE.search(text)
    if match:
        from_stamp = _datestamp_to_datetime(match.group(3))
        if from_stamp is not None:
            return from_stamp

    parsed = _parse_date_text(text)
    if parsed is not None:
        logger.debug("Parsed date %r -> %s", text, format_rfc1123(parsed))
        return parsed

    logger.debug("Failed to parse date %r, using fallback %s", text, format_rfc1123(fallback))
    return fallback


def format_rfc1123(value: datetime) -> str:
    """Format an instant as an RFC-1123 GMT timestamp for RSS."""
    return format_datetime(_as_utc(value), usegmt=True)


__all__ = [
    "extract_url_datestamp",
    "find_date_text",
    "format_rfc1123",
    "resolve_date",
]
