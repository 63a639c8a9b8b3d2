"""Configuration constants for npr_archive_feed.

All constants are re-exported from config.py for convenience.
"""

# Source page
DEFAULT_SERIES_URL = "https://www.npr.org/series/347174538/jazz-night-radio"
DEFAULT_ARCHIVE_LINK_TEXT = "The Radio Show"
DEFAULT_DOWNLOAD_HOST = "ondemand.npr.org"
DEFAULT_LOAD_MORE_SELECTOR = ".options__load-more"

# Output
DEFAULT_OUTPUT_FILE = "feeds/jazz-night-zune.xml"
DEFAULT_SELF_FEED_URL = "https://cardner.github.io/jazz-night-feed/jazz-night-zune.xml"
DEFAULT_MAX_EPISODES = 100
DEFAULT_CHECK_LIMIT = 20

# Channel metadata
DEFAULT_FEED_TITLE = "Jazz Night In America: The Radio Program (Full Archive)"
DEFAULT_FEED_DESCRIPTION = (
    "Scraped archive of NPR's Jazz Night In America radio episodes, "
    "with direct MP3 enclosures, formatted for Zune."
)
DEFAULT_FEED_LANGUAGE = "en-us"
DEFAULT_CHANNEL_IMAGE_HINT = "jazz night in america"

# Browser
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
DEFAULT_NAVIGATION_TIMEOUT_SECONDS = 120
DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_ARCHIVE_SETTLE_MS = 1500

# Pagination
DEFAULT_SETTLE_MS = 2500
DEFAULT_SCROLL_SETTLE_MS = 1200
DEFAULT_MAX_LOAD_MORE_ATTEMPTS = 50
DEFAULT_STALL_LIMIT = 3

# Container discovery order; first strategy finding containers wins
DEFAULT_CONTAINER_STRATEGIES = ("article-item", "download-ancestor")
VALID_CONTAINER_STRATEGIES = ("article-item", "download-ancestor")

# Logging
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUP_COUNT = 5

# Validation ranges
MIN_TIMEOUT_SECONDS = 1
MIN_STALL_LIMIT = 1
