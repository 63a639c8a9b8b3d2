"""Shared fixtures and test utilities for npr_archive_feed tests.

This module contains:
- Test constants
- HTML builders for archive page markup
- Helper functions for creating test objects
- A scripted fake page standing in for the Playwright page
- Network isolation for unit tests

All test files can import from this module using pytest's conftest.py mechanism.
"""

import contextlib
import socket
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from playwright.sync_api import Error as PlaywrightError

from npr_archive_feed import config, models

# Test constants
TEST_SERIES_URL = "https://www.npr.org/series/347174538/jazz-night-radio"
TEST_SELF_URL = "https://example.com/feeds/jazz-night-zune.xml"
TEST_DOWNLOAD_HOST = "ondemand.npr.org"
TEST_LOAD_MORE_SELECTOR = ".options__load-more"
TEST_CHANNEL_IMAGE_URL = "https://media.npr.org/assets/img/jazz-night-in-america.jpg"
TEST_OTHER_IMAGE_URL = "https://media.npr.org/chrome/npr-logo.svg"
TEST_NOW = datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)
TEST_EPISODE_DATE = date(2025, 10, 14)
TEST_AUDIO_URL = (
    "https://ondemand.npr.org/anon.npr-mp3/npr/specials/2025/10/20251014_specials_ep1.mp3"
)
TEST_ARTICLE_URL = "https://www.npr.org/2025/10/14/1001/episode-1"
TEST_EPISODE_TITLE = "Nicole Glover At The Village Vanguard"
TEST_DESCRIPTION = "Saxophonist Nicole Glover leads her trio through a late set of standards."


def audio_url_for(idx, day):
    """Direct audio URL carrying the ``/YYYY/MM/YYYYMMDD`` datestamp for ``day``."""
    return (
        f"https://{TEST_DOWNLOAD_HOST}/anon.npr-mp3/npr/specials/"
        f"{day:%Y}/{day:%m}/{day:%Y%m%d}_specials_ep{idx}.mp3"
    )


def article_url_for(idx, day):
    return f"https://www.npr.org/{day:%Y}/{day:%m}/{day:%d}/{1000 + idx}/episode-{idx}"


def build_article_item(
    idx,
    day=TEST_EPISODE_DATE,
    *,
    title=None,
    description=None,
    include_title=True,
    audio_url=None,
):
    """Build one ``article.item`` block in the current archive markup.

    Args:
        idx: Episode number used in titles and URLs
        day: Broadcast date (in the audio URL datestamp and the teaser)
        title: Title text (default: "Episode <idx>")
        description: Teaser text following the bullet
        include_title: Omit the article link when False
        audio_url: Override the download link

    Returns:
        HTML string
    """
    title = title or f"Episode {idx}"
    description = description or f"Description of episode {idx} with a featured artist."
    audio_url = audio_url or audio_url_for(idx, day)
    title_html = (
        f'<h2 class="title"><a href="{article_url_for(idx, day)}">{title}</a></h2>'
        if include_title
        else ""
    )
    return f"""
<article class="item">
  <div class="item-info">
    {title_html}
    <p class="teaser"><time datetime="{day:%Y-%m-%d}">{day:%B} {day.day}, {day:%Y}</time> • {description}</p>
  </div>
  <ul class="audio-module-tools">
    <li class="audio-tool audio-tool-download"><a href="{audio_url}">Download</a></li>
    <li class="audio-tool audio-tool-embed"><a href="https://www.npr.org/player/embed/{1000 + idx}/{2000 + idx}">Embed</a></li>
  </ul>
</article>"""


def build_fallback_item(idx, day=TEST_EPISODE_DATE, *, description=None, date_text=None):
    """Build an episode block without the ``article.item`` markup.

    The audio URL has no datestamp, so the date must come from the text.
    """
    description = description or f"A long enough description for fallback episode number {idx}."
    date_text = date_text or f"{day:%b} {day.day}, {day:%Y}"
    return f"""
<div class="episode">
  <h3><a href="/{day:%Y}/{day:%m}/{day:%d}/{1000 + idx}/fallback-{idx}">Fallback {idx}</a></h3>
  <span class="date">{date_text}</span>
  <p>{description}</p>
  <a href="https://{TEST_DOWNLOAD_HOST}/anon.npr-mp3/npr/specials/fallback_ep{idx}.mp3">Get audio</a>
</div>"""


def build_archive_page(items_html, *, with_image=True, with_load_more=True):
    """Wrap episode blocks in an archive page skeleton."""
    image_html = (
        f'<img src="{TEST_OTHER_IMAGE_URL}" alt="NPR">'
        f'<img src="{TEST_CHANNEL_IMAGE_URL}" alt="Jazz Night In America">'
        if with_image
        else ""
    )
    load_more_html = (
        '<button class="options__load-more">Load more stories</button>' if with_load_more else ""
    )
    return f"""<html>
<head><title>Jazz Night In America: The Radio Program</title></head>
<body>
  <header>{image_html}</header>
  <main id="overflow">{"".join(items_html)}</main>
  {load_more_html}
</body>
</html>"""


def build_dated_items(count, newest=TEST_EPISODE_DATE, step_days=7, start_idx=1):
    """Article items newest first, one every ``step_days`` days."""
    return [
        build_article_item(start_idx + offset, newest - timedelta(days=step_days * offset))
        for offset in range(count)
    ]


# Test helper functions
def create_test_config(**overrides):
    """Create test Config object with defaults.

    Waits are zeroed so tests never sleep.

    Args:
        **overrides: Fields to override from defaults

    Returns:
        config.Config object with test defaults
    """
    defaults = {
        "series_url": TEST_SERIES_URL,
        "output_file": "feeds/test-feed.xml",
        "max_episodes": 100,
        "check_limit": 20,
        "self_feed_url": TEST_SELF_URL,
        "settle_ms": 0,
        "scroll_settle_ms": 0,
        "archive_settle_ms": 0,
        "log_level": "INFO",
    }
    defaults.update(overrides)
    return config.Config(**defaults)


def create_raw_episode(idx=1, day=TEST_EPISODE_DATE, **overrides):
    """Create test RawEpisode object with defaults."""
    defaults = {
        "title": f"Episode {idx}",
        "link": article_url_for(idx, day),
        "date_text": f"{day:%Y-%m-%d}",
        "audio_url": audio_url_for(idx, day),
        "description": f"Description of episode {idx}.",
    }
    defaults.update(overrides)
    return models.RawEpisode(**defaults)


def create_feed_item(idx=1, day=TEST_EPISODE_DATE, **overrides):
    """Create test FeedItem object with defaults."""
    defaults = {
        "title": f"Episode {idx}",
        "link": article_url_for(idx, day),
        "audio_url": audio_url_for(idx, day),
        "description": f"Description of episode {idx}.",
        "published": datetime(day.year, day.month, day.day, tzinfo=timezone.utc),
    }
    defaults.update(overrides)
    return models.FeedItem(**defaults)


def create_channel_info(**overrides):
    defaults = {
        "title": config.DEFAULT_FEED_TITLE,
        "link": TEST_SERIES_URL,
        "description": config.DEFAULT_FEED_DESCRIPTION,
        "language": "en-us",
        "self_url": TEST_SELF_URL,
        "image_url": TEST_CHANNEL_IMAGE_URL,
    }
    defaults.update(overrides)
    return models.ChannelInfo(**defaults)


class FakeLocator:
    """Locator returned by FakePage.locator()."""

    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def is_archive_link(self):
        return self.selector.startswith("a:has-text(")

    @property
    def first(self):
        return self

    def count(self):
        if self.is_archive_link:
            return 1 if self.page.has_archive_link else 0
        return 1 if self.page.load_more_present else 0

    def is_visible(self):
        return self.page.load_more_visible

    def click(self, force=False):
        if self.is_archive_link:
            self.page.archive_clicks += 1
            return
        if self.page.click_error is not None:
            raise self.page.click_error
        self.page.clicks += 1
        self.page.stage = min(self.page.stage + 1, len(self.page.stages) - 1)


class FakePage:
    """Scripted stand-in for a Playwright page.

    ``stages`` holds the page HTML after 0, 1, 2, ... "load more" clicks; once
    the last stage is reached further clicks change nothing.
    """

    def __init__(
        self,
        stages,
        *,
        url=TEST_SERIES_URL,
        load_more_present=True,
        load_more_visible=True,
        click_error=None,
        goto_error=None,
        has_archive_link=False,
    ):
        self.stages = list(stages)
        self.url = url
        self.stage = 0
        self.load_more_present = load_more_present
        self.load_more_visible = load_more_visible
        self.click_error = click_error
        self.goto_error = goto_error
        self.has_archive_link = has_archive_link
        self.visited = []
        self.clicks = 0
        self.archive_clicks = 0
        self.scrolls = 0
        self.waits = []

    def goto(self, url, wait_until=None):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error

    def locator(self, selector):
        return FakeLocator(self, selector)

    def evaluate(self, script):
        self.scrolls += 1

    def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def wait_for_load_state(self, state=None):
        pass

    def content(self):
        return self.stages[self.stage]


def fake_open_page(page):
    """open_page replacement yielding ``page`` without a browser."""
    opened = []

    def _open(cfg):
        opened.append(cfg)
        return contextlib.nullcontext(page)

    _open.opened = opened
    return _open


def make_click_error(message="Element is detached from DOM"):
    return PlaywrightError(message)


class NetworkCallDetectedError(Exception):
    """Raised when a unit test attempts to open a network connection."""

    def __init__(self, call_type: str):
        self.call_type = call_type
        super().__init__(
            f"Network call detected in unit test: socket.{call_type}()\n"
            f"Unit tests must not make network calls. Use FakePage instead.\n"
            f"If this test needs network access, it should be moved to integration/."
        )


def _create_network_blocker(call_type: str):
    def blocker(*args, **kwargs):
        raise NetworkCallDetectedError(call_type)

    return blocker


@pytest.fixture(autouse=True)
def block_network_calls(request):
    """Block outbound socket connections for every unit test."""
    if "unit" not in Path(str(request.fspath)).parts:
        yield
        return
    with patch.object(socket.socket, "connect", _create_network_blocker("connect")), patch.object(
        socket, "create_connection", _create_network_blocker("create_connection")
    ):
        yield
