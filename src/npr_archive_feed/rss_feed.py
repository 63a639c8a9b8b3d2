"""Reading and writing the persisted RSS 2.0 feed.

The feed is a single flat XML file. It is always rewritten whole: channel
metadata first, then every item in the order given (newest first).
"""

from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET  # nosec B405
from datetime import datetime, timezone
from html import unescape
from html.parser import HTMLParser
from typing import List, Optional

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring as safe_fromstring, ParseError as DefusedXMLParseError

from . import filesystem
from .dates import format_rfc1123, resolve_date
from .exceptions import FeedNotFoundError, FeedParseError
from .models import ChannelInfo, Feed, FeedItem

logger = logging.getLogger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
ATOM_NS = "http://www.w3.org/2005/Atom"
RSS_VERSION = "2.0"
ENCLOSURE_TYPE = "audio/mpeg"
ENCLOSURE_LENGTH = "0"

ET.register_namespace("itunes", ITUNES_NS)
ET.register_namespace("atom", ATOM_NS)


class _HTMLStripper(HTMLParser):
    """Collects text segments between tags."""

    def __init__(self):
        super().__init__()
        self.text_parts = []

    def handle_data(self, data):
        if data.strip():
            self.text_parts.append(data.strip())

    def get_text(self):
        return " ".join(self.text_parts)


def strip_html(text: str) -> str:
    """Decode entities, drop tags and collapse whitespace.

    Args:
        text: Text potentially containing HTML

    Returns:
        Plain text suitable for an item description
    """
    if not text:
        return ""

    text = unescape(text)
    stripper = _HTMLStripper()
    stripper.feed(text)
    stripper.close()
    return re.sub(r"\s+", " ", stripper.get_text()).strip()


def _sub_text(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


def _build_channel(rss: ET.Element, channel_info: ChannelInfo, last_build: datetime) -> ET.Element:
    channel = ET.SubElement(rss, "channel")
    _sub_text(channel, "title", channel_info.title)
    _sub_text(channel, "link", channel_info.link)
    ET.SubElement(
        channel,
        f"{{{ATOM_NS}}}link",
        {"href": channel_info.self_url, "rel": "self", "type": "application/rss+xml"},
    )
    _sub_text(channel, "description", channel_info.description)
    _sub_text(channel, "language", channel_info.language)
    _sub_text(channel, "lastBuildDate", format_rfc1123(last_build))

    if channel_info.image_url:
        image = ET.SubElement(channel, "image")
        _sub_text(image, "url", channel_info.image_url)
        _sub_text(image, "title", channel_info.title)
        _sub_text(image, "link", channel_info.link)
        ET.SubElement(channel, f"{{{ITUNES_NS}}}image", {"href": channel_info.image_url})
    return channel


def _build_item(channel: ET.Element, item: FeedItem) -> None:
    element = ET.SubElement(channel, "item")
    _sub_text(element, "title", item.title)
    _sub_text(element, "link", item.link)
    guid = _sub_text(element, "guid", item.guid)
    guid.set("isPermaLink", "false")
    _sub_text(element, "pubDate", item.pub_date)
    _sub_text(element, "description", strip_html(item.description))
    ET.SubElement(
        element,
        "enclosure",
        {"url": item.audio_url, "length": ENCLOSURE_LENGTH, "type": ENCLOSURE_TYPE},
    )


def render_feed(feed: Feed, last_build: Optional[datetime] = None) -> bytes:
    """Serialize ``feed`` to a UTF-8 RSS 2.0 document.

    ElementTree escapes ``&``, ``<`` and ``>`` in text and quotes in
    attributes, so titles and URLs are written verbatim.
    """
    if last_build is None:
        last_build = feed.last_build_date or datetime.now(timezone.utc)

    rss = ET.Element("rss", {"version": RSS_VERSION})
    # ElementTree only declares namespaces it sees in use; itunes is used
    # solely by the optional channel artwork.
    if not feed.channel.image_url:
        rss.set("xmlns:itunes", ITUNES_NS)

    channel = _build_channel(rss, feed.channel, last_build)
    for item in feed.items:
        _build_item(channel, item)

    tree = ET.ElementTree(rss)
    ET.indent(tree, space="  ")
    return ET.tostring(rss, encoding="utf-8", xml_declaration=True) + b"\n"


def save_feed(path: str, feed: Feed, last_build: Optional[datetime] = None) -> None:
    """Write the complete feed document to ``path`` atomically."""
    data = render_feed(feed, last_build)
    filesystem.write_file_atomic(path, data)
    logger.info("Feed written to %s with %d episodes", path, len(feed.items))


def _child_text(parent: ET.Element, tag: str) -> str:
    element = parent.find(tag)
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _parse_channel(channel: ET.Element) -> ChannelInfo:
    self_url = ""
    atom_link = channel.find(f"{{{ATOM_NS}}}link")
    if atom_link is not None:
        self_url = (atom_link.attrib.get("href") or "").strip()

    image_url = None
    image_elem = channel.find("image")
    if image_elem is not None:
        image_url = _child_text(image_elem, "url") or None
    if not image_url:
        itunes_image = channel.find(f"{{{ITUNES_NS}}}image")
        if itunes_image is not None:
            image_url = (itunes_image.attrib.get("href") or "").strip() or None

    return ChannelInfo(
        title=_child_text(channel, "title"),
        link=_child_text(channel, "link"),
        description=_child_text(channel, "description"),
        language=_child_text(channel, "language"),
        self_url=self_url,
        image_url=image_url,
    )


def _parse_item(element: ET.Element, now: datetime) -> Optional[FeedItem]:
    audio_url = ""
    enclosure = element.find("enclosure")
    if enclosure is not None:
        audio_url = (enclosure.attrib.get("url") or "").strip()
    if not audio_url:
        audio_url = _child_text(element, "guid")
    if not audio_url:
        return None

    # An unreadable pubDate falls back to the audio URL datestamp, then to now
    fallback = resolve_date(audio_url, now)
    published = resolve_date(_child_text(element, "pubDate"), fallback)

    return FeedItem(
        title=_child_text(element, "title"),
        link=_child_text(element, "link") or audio_url,
        audio_url=audio_url,
        description=_child_text(element, "description"),
        published=published,
    )


def load_feed(path: str) -> Feed:
    """Load a persisted feed.

    Items without an enclosure URL or guid are skipped with a warning.

    Raises:
        FeedNotFoundError: If ``path`` does not exist
        FeedParseError: If the file is not an RSS document
    """
    if not os.path.exists(path):
        raise FeedNotFoundError(path)

    with open(path, "rb") as handle:
        data = handle.read()

    try:
        root = safe_fromstring(data)
    except (DefusedXMLParseError, DefusedXmlException) as exc:
        raise FeedParseError(path, str(exc)) from exc

    channel = root.find("channel")
    if channel is None:
        raise FeedParseError(path, f"missing <channel> element under <{root.tag}>")

    now = datetime.now(timezone.utc)
    items: List[FeedItem] = []
    for idx, element in enumerate(channel.findall("item"), start=1):
        item = _parse_item(element, now)
        if item is None:
            logger.warning("Skipping feed item %d without enclosure URL or guid", idx)
            continue
        items.append(item)

    last_build_text = _child_text(channel, "lastBuildDate")
    last_build = resolve_date(last_build_text, now) if last_build_text else None

    logger.info("Loaded %d existing episodes from %s", len(items), path)
    return Feed(channel=_parse_channel(channel), items=items, last_build_date=last_build)


__all__ = ["ATOM_NS", "ITUNES_NS", "load_feed", "render_feed", "save_feed", "strip_html"]
