"""NPR Archive Feed - Zune-compatible RSS feeds from the NPR Jazz Night archive.

The archive page only offers episodes through a "load more" button and has no
usable feed of its own. This package drives the page with a headless browser,
extracts each episode's title, link, date, description and direct MP3 URL,
and maintains a flat RSS 2.0 file:

- ``build`` expands the archive and writes a fresh feed
- ``update`` merges the newest episodes into the existing feed

Programmatic API Example:
    >>> import npr_archive_feed
    >>>
    >>> cfg = npr_archive_feed.Config(output="feeds/jazz-night-zune.xml", max_episodes=100)
    >>> count, summary = npr_archive_feed.run_build(cfg)
    >>> count, summary = npr_archive_feed.run_update(cfg)

CLI Usage:
    $ npr-archive-feed build --output feeds/jazz-night-zune.xml
    $ npr-archive-feed update --config config.yaml
    $ npr-archive-feed inspect
"""

from __future__ import annotations

from .config import Config, load_config_file
from .workflow import run_build, run_update

__all__ = [
    "Config",
    "load_config_file",
    "run_build",
    "run_update",
    "__version__",
]
# Note: 'cli' and 'service' are available via __getattr__ for lazy loading
__version__ = "1.0.0"

_import_cache: dict[str, object] = {}


def __getattr__(name: str):
    if name in _import_cache:
        return _import_cache[name]

    if name in ("cli", "service"):
        import importlib

        module = importlib.import_module(f"{__name__}.{name}")
        _import_cache[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
