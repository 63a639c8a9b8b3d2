from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .dates import format_rfc1123

UNTITLED_EPISODE = "Untitled episode"


@dataclass
class RawEpisode:
    """Represents one episode as scraped from the archive page.

    A RawEpisode lives only between extraction and merging. It is converted
    into a FeedItem as soon as its date has been resolved.

    Attributes:
        title: Episode title (falls back to "Untitled episode").
        link: Article URL for the episode, or the audio URL if no article link was found.
        date_text: Unparsed date text, possibly empty.
        audio_url: Direct audio file URL. Unique within one extraction pass.
        description: Plain-text description, possibly empty.

    Example:
        >>> episode = RawEpisode(
        ...     title="Nicole Glover At The Village Vanguard",
        ...     link="https://www.npr.org/2025/10/14/1234/nicole-glover",
        ...     date_text="2025-10-14",
        ...     audio_url="https://ondemand.npr.org/.../20251014_specials_x.mp3",
        ...     description="Saxophonist Nicole Glover leads her trio.",
        ... )
    """

    title: str
    link: str
    date_text: str
    audio_url: str
    description: str = ""


@dataclass
class FeedItem:
    """Represents one episode persisted in the feed.

    Attributes:
        title: Episode title.
        link: Episode article URL.
        audio_url: Enclosure URL; also the item's guid.
        description: HTML-stripped plain text description.
        published: Timezone-aware publish instant used for ordering.
        date_text: Raw date text the instant was resolved from (empty when loaded from disk).
    """

    title: str
    link: str
    audio_url: str
    description: str
    published: datetime
    date_text: str = ""

    @property
    def guid(self) -> str:
        return self.audio_url

    @property
    def pub_date(self) -> str:
        """RFC-1123 form of ``published``."""
        return format_rfc1123(self.published)


@dataclass
class ChannelInfo:
    """Channel-level metadata written at the top of the feed."""

    title: str
    link: str
    description: str
    language: str
    self_url: str
    image_url: Optional[str] = None


@dataclass
class Feed:
    """The persisted aggregate: channel metadata plus ordered items."""

    channel: ChannelInfo
    items: List[FeedItem] = field(default_factory=list)
    last_build_date: Optional[datetime] = None


@dataclass
class MergeResult:
    """Outcome of merging newly scraped episodes into an existing item set.

    Attributes:
        items: Resulting items, newest first, capped.
        added: Items built from new episodes that survived the cap.
        evicted: Items dropped because they fell outside the cap.
        changed: False when no new episode was found; callers must not rewrite the feed.
    """

    items: List[FeedItem]
    added: List[FeedItem] = field(default_factory=list)
    evicted: List[FeedItem] = field(default_factory=list)
    changed: bool = True
