"""Episode extraction from an archive page snapshot.

The archive page is parsed with BeautifulSoup and queried for *episode
containers*: the markup regions that hold one episode's title, metadata and
download link. The site markup has changed over time, so container discovery
is delegated to an ordered list of strategies; the first strategy that finds
anything wins. Each container is then mined for its audio URL, title anchor,
date text and description.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Type, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from . import config_constants, dates
from .models import RawEpisode, UNTITLED_EPISODE

logger = logging.getLogger(__name__)

Snapshot = Union[str, BeautifulSoup]

HTML_PARSER = "html.parser"
ARTICLE_YEAR_RE = re.compile(r"/(?:19|20)\d{2}/")
MEDIA_EMBED_MARKER = "player/embed"
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
BULLET = "•"
DESCRIPTION_MIN_CHARS = 40
DESCRIPTION_BLOCK_TAGS = ["p", "span", "div"]
DESCRIPTION_BOILERPLATE = ("Listen ·", "Download", "Embed")
TITLE_SEARCH_MAX_DEPTH = 10
WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class EpisodeContainer:
    """One episode's markup region together with its download anchor."""

    element: Tag
    download_anchor: Tag


class ContainerStrategy(Protocol):
    """Finds episode containers in a page snapshot."""

    name: str
    title_search_depth: int

    def find_containers(self, soup: BeautifulSoup) -> List[EpisodeContainer]: ...


def _collapse(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text or "").strip()


def is_download_href(href: str, download_host: str) -> bool:
    """True when ``href`` points at the direct audio host."""
    return bool(href) and download_host in href


def _first_download_anchor(scope: Tag, download_host: str) -> Optional[Tag]:
    for anchor in scope.find_all("a", href=True):
        if is_download_href(anchor["href"], download_host):
            return anchor
    return None


class ArticleItemStrategy:
    """``article.item`` elements holding a ``li.audio-tool-download`` link.

    This matches the current archive markup precisely, so the title search is
    confined to the container itself.
    """

    name = "article-item"
    title_search_depth = 1

    def __init__(self, download_host: str = config_constants.DEFAULT_DOWNLOAD_HOST) -> None:
        self.download_host = download_host

    def find_containers(self, soup: BeautifulSoup) -> List[EpisodeContainer]:
        containers: List[EpisodeContainer] = []
        for article in soup.select("article.item"):
            download_li = article.select_one("li.audio-tool-download")
            if download_li is None:
                continue
            anchor = _first_download_anchor(download_li, self.download_host)
            if anchor is None:
                continue
            containers.append(EpisodeContainer(element=article, download_anchor=anchor))
        return containers


class DownloadAncestorStrategy:
    """Every download link, wrapped by its nearest structural ancestor.

    Used when the precise container markup is missing. The ancestor is the
    first of ``article``, ``li``, ``section``, ``div`` found above the link
    (checked in that order), falling back to the link's parent.
    """

    name = "download-ancestor"
    title_search_depth = TITLE_SEARCH_MAX_DEPTH
    ANCESTOR_TAGS = ("article", "li", "section", "div")

    def __init__(self, download_host: str = config_constants.DEFAULT_DOWNLOAD_HOST) -> None:
        self.download_host = download_host

    def find_containers(self, soup: BeautifulSoup) -> List[EpisodeContainer]:
        containers: List[EpisodeContainer] = []
        for anchor in soup.find_all("a", href=True):
            if not is_download_href(anchor["href"], self.download_host):
                continue
            container: Optional[Tag] = None
            for tag_name in self.ANCESTOR_TAGS:
                container = anchor.find_parent(tag_name)
                if container is not None:
                    break
            if container is None:
                container = anchor.parent if anchor.parent is not None else soup
            containers.append(EpisodeContainer(element=container, download_anchor=anchor))
        return containers


STRATEGY_REGISTRY: Dict[str, Type] = {
    ArticleItemStrategy.name: ArticleItemStrategy,
    DownloadAncestorStrategy.name: DownloadAncestorStrategy,
}


def build_strategies(
    names: Iterable[str] = config_constants.DEFAULT_CONTAINER_STRATEGIES,
    download_host: str = config_constants.DEFAULT_DOWNLOAD_HOST,
) -> List[ContainerStrategy]:
    """Instantiate container strategies by name, preserving order.

    Raises:
        ValueError: If a name is not registered
    """
    strategies: List[ContainerStrategy] = []
    for name in names:
        strategy_cls = STRATEGY_REGISTRY.get(name)
        if strategy_cls is None:
            raise ValueError(
                f"Unknown container strategy {name!r}; "
                f"expected one of {sorted(STRATEGY_REGISTRY)}"
            )
        strategies.append(strategy_cls(download_host=download_host))
    return strategies


def as_soup(snapshot: Snapshot) -> BeautifulSoup:
    if isinstance(snapshot, BeautifulSoup):
        return snapshot
    return BeautifulSoup(snapshot or "", HTML_PARSER)


def resolve_containers(
    soup: BeautifulSoup, strategies: Sequence[ContainerStrategy]
) -> Tuple[Optional[ContainerStrategy], List[EpisodeContainer]]:
    """Return the first strategy that finds containers, and its containers."""
    for strategy in strategies:
        containers = strategy.find_containers(soup)
        if containers:
            return strategy, containers
        logger.debug("Container strategy %s found nothing", strategy.name)
    return None, []


def count_containers(
    snapshot: Snapshot, strategies: Optional[Sequence[ContainerStrategy]] = None
) -> int:
    """Count episode containers with the same predicate used for extraction."""
    _, containers = resolve_containers(as_soup(snapshot), strategies or build_strategies())
    return len(containers)


def describe_strategies(
    snapshot: Snapshot, strategies: Optional[Sequence[ContainerStrategy]] = None
) -> List[Tuple[str, int]]:
    """Container count per strategy, for diagnostics."""
    soup = as_soup(snapshot)
    return [
        (strategy.name, len(strategy.find_containers(soup)))
        for strategy in (strategies or build_strategies())
    ]


def _is_title_candidate(anchor: Tag, download_host: str) -> bool:
    href = anchor.get("href") or ""
    if not anchor.get_text(strip=True):
        return False
    if is_download_href(href, download_host) or MEDIA_EMBED_MARKER in href:
        return False
    return bool(ARTICLE_YEAR_RE.search(href))


def find_title_anchor(
    container: Tag, download_host: str, max_depth: int = TITLE_SEARCH_MAX_DEPTH
) -> Optional[Tag]:
    """Find the episode's article link, searching outward from the container.

    Candidates must carry text, must not point at the audio host or a media
    embed, and must have a year segment in their path. A candidate directly
    under a heading is preferred over the first one found.
    """
    node: Optional[Tag] = container
    depth = 0
    while node is not None and depth < max_depth:
        candidates = [a for a in node.find_all("a", href=True) if _is_title_candidate(a, download_host)]
        if candidates:
            for anchor in candidates:
                if anchor.parent is not None and anchor.parent.name in HEADING_TAGS:
                    return anchor
            return candidates[0]
        node = node.parent
        depth += 1
    return None


def _bullet_block(node: Any, container: Tag) -> Tag:
    """Nearest p/span/div holding ``node`` below ``container``, else the container."""
    for parent in node.parents:
        if parent is container:
            break
        if parent.name in DESCRIPTION_BLOCK_TAGS:
            return parent
    return container


def find_description(container: Tag, title: str) -> str:
    """Infer a plain-text description from the container.

    Text following a bullet separator wins. It is read from the block holding
    the bullet when that block sits inside the container, so player controls
    elsewhere stay out; a bullet placed directly in the container reads the
    container's own text. Otherwise the first paragraph-like block longer
    than 40 characters that does not repeat the title and is not player
    boilerplate is used.
    """
    for node in container.find_all(string=lambda text: text and BULLET in text):
        block_text = _bullet_block(node, container).get_text(" ")
        after_bullet = _collapse(block_text[block_text.find(BULLET) + 1 :])
        if after_bullet:
            return after_bullet

    for block in container.find_all(DESCRIPTION_BLOCK_TAGS):
        text = _collapse(block.get_text(" "))
        if len(text) <= DESCRIPTION_MIN_CHARS:
            continue
        if title and title in text:
            continue
        if any(fragment in text for fragment in DESCRIPTION_BOILERPLATE):
            continue
        return text
    return ""


def episode_from_container(
    container: EpisodeContainer,
    *,
    base_url: str = "",
    download_host: str = config_constants.DEFAULT_DOWNLOAD_HOST,
    title_search_depth: int = TITLE_SEARCH_MAX_DEPTH,
) -> Optional[RawEpisode]:
    """Build a RawEpisode from one container; None when it has no audio URL."""
    audio_href = (container.download_anchor.get("href") or "").strip()
    if not audio_href:
        return None
    audio_url = urljoin(base_url, audio_href)

    title_anchor = find_title_anchor(container.element, download_host, title_search_depth)
    if title_anchor is not None:
        title = _collapse(title_anchor.get_text(" ")) or UNTITLED_EPISODE
        link = urljoin(base_url, title_anchor["href"].strip())
    else:
        title = UNTITLED_EPISODE
        link = audio_url

    date_text = dates.find_date_text(audio_url, _collapse(container.element.get_text(" ")))
    description = find_description(container.element, title)

    return RawEpisode(
        title=title,
        link=link,
        date_text=date_text,
        audio_url=audio_url,
        description=description,
    )


def extract_episodes(
    snapshot: Snapshot,
    *,
    base_url: str = "",
    max_count: Optional[int] = None,
    strategies: Optional[Sequence[ContainerStrategy]] = None,
    download_host: str = config_constants.DEFAULT_DOWNLOAD_HOST,
) -> List[RawEpisode]:
    """Extract episodes from a page snapshot.

    Args:
        snapshot: Page HTML or an already parsed soup
        base_url: URL of the page, used to absolutize links
        max_count: Stop after this many unique episodes (None for all)
        strategies: Ordered container strategies (defaults to the configured pair)
        download_host: Host substring identifying download links

    Returns:
        Episodes in document order, unique by audio URL
    """
    soup = as_soup(snapshot)
    if strategies is None:
        strategies = build_strategies(download_host=download_host)

    strategy, containers = resolve_containers(soup, strategies)
    if strategy is None:
        logger.warning("No episode containers found on page")
        return []
    logger.debug("Using container strategy %s (%d containers)", strategy.name, len(containers))

    episodes: List[RawEpisode] = []
    seen: set[str] = set()
    for container in containers:
        if max_count is not None and len(episodes) >= max_count:
            break
        episode = episode_from_container(
            container,
            base_url=base_url,
            download_host=download_host,
            title_search_depth=strategy.title_search_depth,
        )
        if episode is None or episode.audio_url in seen:
            continue
        seen.add(episode.audio_url)
        episodes.append(episode)

    logger.info("Found %d episodes with download links", len(episodes))
    return episodes


def find_channel_image(
    snapshot: Snapshot,
    hint: str = config_constants.DEFAULT_CHANNEL_IMAGE_HINT,
    *,
    base_url: str = "",
) -> str:
    """Pick the channel artwork: first image whose alt/title mentions ``hint``, else the first image.

    Returns:
        Absolute image URL, or "" when the page has no usable image
    """
    images = as_soup(snapshot).find_all("img")
    if not images:
        return ""

    needle = (hint or "").lower()
    chosen = images[0]
    if needle:
        for img in images:
            label = f"{img.get('alt') or ''} {img.get('title') or ''}".lower()
            if needle in label:
                chosen = img
                break

    src = (chosen.get("src") or "").strip()
    return urljoin(base_url, src) if src else ""


__all__ = [
    "ArticleItemStrategy",
    "ContainerStrategy",
    "DownloadAncestorStrategy",
    "EpisodeContainer",
    "STRATEGY_REGISTRY",
    "as_soup",
    "build_strategies",
    "count_containers",
    "describe_strategies",
    "episode_from_container",
    "extract_episodes",
    "find_channel_image",
    "find_description",
    "find_title_anchor",
    "resolve_containers",
]
