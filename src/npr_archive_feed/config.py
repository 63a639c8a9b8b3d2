from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
    ValidationInfo,
)

from . import config_constants


# SKIP .env loading in test environments - tests should use Config objects and
# environment variables directly, never rely on .env files
def _is_test_environment() -> bool:
    """Check if we're running in a test environment."""
    import sys

    if "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if "unittest" in sys.modules:
        return True
    if os.environ.get("TESTING", "").lower() in ("1", "true", "yes"):
        return True
    return False


if not _is_test_environment():
    try:
        load_dotenv(override=False)
    except (PermissionError, OSError):
        # Continue without .env file
        pass

# Re-exported for convenience
DEFAULT_SERIES_URL = config_constants.DEFAULT_SERIES_URL
DEFAULT_OUTPUT_FILE = config_constants.DEFAULT_OUTPUT_FILE
DEFAULT_SELF_FEED_URL = config_constants.DEFAULT_SELF_FEED_URL
DEFAULT_MAX_EPISODES = config_constants.DEFAULT_MAX_EPISODES
DEFAULT_CHECK_LIMIT = config_constants.DEFAULT_CHECK_LIMIT
DEFAULT_FEED_TITLE = config_constants.DEFAULT_FEED_TITLE
DEFAULT_FEED_DESCRIPTION = config_constants.DEFAULT_FEED_DESCRIPTION
DEFAULT_FEED_LANGUAGE = config_constants.DEFAULT_FEED_LANGUAGE
DEFAULT_USER_AGENT = config_constants.DEFAULT_USER_AGENT
DEFAULT_TIMEOUT_SECONDS = config_constants.DEFAULT_TIMEOUT_SECONDS
DEFAULT_NAVIGATION_TIMEOUT_SECONDS = config_constants.DEFAULT_NAVIGATION_TIMEOUT_SECONDS
DEFAULT_LOG_LEVEL = config_constants.DEFAULT_LOG_LEVEL
VALID_LOG_LEVELS = config_constants.VALID_LOG_LEVELS
VALID_CONTAINER_STRATEGIES = config_constants.VALID_CONTAINER_STRATEGIES
MIN_TIMEOUT_SECONDS = config_constants.MIN_TIMEOUT_SECONDS
MIN_STALL_LIMIT = config_constants.MIN_STALL_LIMIT


def _coerce_int(value: Any, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _missing(data: Dict[str, Any], *keys: str) -> bool:
    return all(data.get(key) in (None, "") for key in keys)


class Config(BaseModel):
    """Configuration model for building and updating the archive feed.

    Configuration can be created programmatically or loaded from JSON/YAML
    files using `load_config_file()`. The model is immutable after creation.

    The fields fall into a few groups:

    - **Source**: archive page URL and the markup hooks used to read it
    - **Output**: feed file location, episode cap and self link
    - **Channel**: metadata written at the top of the feed
    - **Pagination**: "load more" pacing and stop conditions
    - **Browser**: timeouts, user agent and headless mode
    - **Logging**: log level and optional log file

    Attributes:
        series_url: Archive page to scrape (alias ``url``).
        output_file: Feed file path (alias ``output``). Can be set via FEED_OUTPUT_FILE.
        max_episodes: Maximum number of items kept in the feed.
        check_limit: Number of newest episodes examined by an update run.
        self_feed_url: Public URL of the feed, written as the atom self link.
            Can be set via SELF_FEED_URL.
        feed_title: Channel title.
        feed_description: Channel description.
        feed_language: Channel language code.
        channel_image_url: Explicit channel artwork URL; overrides discovery.
        channel_image_hint: Text searched in image alt/title to find the artwork.
        archive_link_text: Link clicked after loading the series page, if present.
        load_more_selector: CSS selector of the "load more" control.
        download_host: Host substring identifying direct audio links.
        container_strategies: Ordered container discovery strategies.
        settle_ms: Wait after each "load more" click, in milliseconds.
        scroll_settle_ms: Wait after scrolling to the bottom, in milliseconds.
        max_load_more_attempts: Ceiling on "load more" clicks.
        stall_limit: Consecutive clicks without new episodes before giving up.
        navigation_timeout: Page navigation timeout in seconds.
        timeout: Default page operation timeout in seconds.
        user_agent: Browser user agent.
        headless: Run the browser without a window.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            LOG_LEVEL in the environment takes precedence.
        log_file: Optional log file path. Can be set via LOG_FILE.

    Example:
        >>> cfg = Config(url="https://www.npr.org/series/347174538/jazz-night-radio",
        ...              output="feeds/jazz-night-zune.xml", max_episodes=100)
    """

    series_url: str = Field(default=config_constants.DEFAULT_SERIES_URL, alias="url")
    output_file: str = Field(default=DEFAULT_OUTPUT_FILE, alias="output")
    max_episodes: int = Field(default=DEFAULT_MAX_EPISODES, alias="max_episodes")
    check_limit: int = Field(default=DEFAULT_CHECK_LIMIT, alias="check_limit")
    self_feed_url: str = Field(default=DEFAULT_SELF_FEED_URL, alias="self_url")

    feed_title: str = Field(default=DEFAULT_FEED_TITLE, alias="title")
    feed_description: str = Field(default=DEFAULT_FEED_DESCRIPTION, alias="description")
    feed_language: str = Field(default=DEFAULT_FEED_LANGUAGE, alias="language")
    channel_image_url: Optional[str] = Field(default=None, alias="image_url")
    channel_image_hint: str = Field(
        default=config_constants.DEFAULT_CHANNEL_IMAGE_HINT, alias="image_hint"
    )

    archive_link_text: Optional[str] = Field(
        default=config_constants.DEFAULT_ARCHIVE_LINK_TEXT, alias="archive_link_text"
    )
    load_more_selector: str = Field(
        default=config_constants.DEFAULT_LOAD_MORE_SELECTOR, alias="load_more_selector"
    )
    download_host: str = Field(
        default=config_constants.DEFAULT_DOWNLOAD_HOST, alias="download_host"
    )
    container_strategies: Tuple[str, ...] = Field(
        default=config_constants.DEFAULT_CONTAINER_STRATEGIES, alias="container_strategies"
    )

    settle_ms: int = Field(default=config_constants.DEFAULT_SETTLE_MS, alias="settle_ms")
    scroll_settle_ms: int = Field(
        default=config_constants.DEFAULT_SCROLL_SETTLE_MS, alias="scroll_settle_ms"
    )
    archive_settle_ms: int = Field(
        default=config_constants.DEFAULT_ARCHIVE_SETTLE_MS, alias="archive_settle_ms"
    )
    max_load_more_attempts: int = Field(
        default=config_constants.DEFAULT_MAX_LOAD_MORE_ATTEMPTS, alias="max_load_more_attempts"
    )
    stall_limit: int = Field(default=config_constants.DEFAULT_STALL_LIMIT, alias="stall_limit")

    navigation_timeout: int = Field(
        default=DEFAULT_NAVIGATION_TIMEOUT_SECONDS, alias="navigation_timeout"
    )
    timeout: int = Field(default=DEFAULT_TIMEOUT_SECONDS, alias="timeout")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="user_agent")
    headless: bool = Field(default=True, alias="headless")

    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="log_level")
    log_file: Optional[str] = Field(
        default=None,
        alias="log_file",
        description="Path to log file (logs written to both console and file). "
        "Can be set via LOG_FILE environment variable.",
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _load_from_environment(cls, data: Any) -> Any:
        """Fill fields from environment variables.

        LOG_LEVEL always wins over the config value. FEED_OUTPUT_FILE,
        SELF_FEED_URL and LOG_FILE only apply when the field was not given.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        env_log_level = os.getenv("LOG_LEVEL")
        if env_log_level:
            env_value = str(env_log_level).strip().upper()
            if env_value in VALID_LOG_LEVELS:
                data.pop("log_level", None)
                data["log_level"] = env_value

        for env_name, field_name, alias in (
            ("FEED_OUTPUT_FILE", "output_file", "output"),
            ("SELF_FEED_URL", "self_feed_url", "self_url"),
            ("LOG_FILE", "log_file", "log_file"),
        ):
            if not _missing(data, field_name, alias):
                continue
            env_value = (os.getenv(env_name) or "").strip()
            if env_value:
                data.pop(alias, None)
                data[field_name] = env_value

        return data

    @field_validator("series_url", mode="before")
    @classmethod
    def _strip_series_url(cls, value: Any) -> str:
        if value is None:
            return config_constants.DEFAULT_SERIES_URL
        return str(value).strip() or config_constants.DEFAULT_SERIES_URL

    @field_validator("series_url", mode="after")
    @classmethod
    def _validate_series_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"url must be an http(s) URL, got: {value}")
        return value

    @field_validator("output_file", mode="before")
    @classmethod
    def _strip_output_file(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_OUTPUT_FILE
        return str(value).strip() or DEFAULT_OUTPUT_FILE

    @field_validator("self_feed_url", "load_more_selector", "download_host", mode="before")
    @classmethod
    def _require_string(cls, value: Any, info: ValidationInfo) -> str:
        value_str = "" if value is None else str(value).strip()
        if not value_str:
            raise ValueError(f"{info.field_name} cannot be empty")
        return value_str

    @field_validator("feed_title", "feed_description", "feed_language", mode="before")
    @classmethod
    def _coerce_channel_text(cls, value: Any, info: ValidationInfo) -> str:
        defaults = {
            "feed_title": DEFAULT_FEED_TITLE,
            "feed_description": DEFAULT_FEED_DESCRIPTION,
            "feed_language": DEFAULT_FEED_LANGUAGE,
        }
        if value is None:
            return defaults[info.field_name]
        return str(value).strip() or defaults[info.field_name]

    @field_validator("channel_image_url", "archive_link_text", "log_file", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("channel_image_hint", mode="before")
    @classmethod
    def _coerce_image_hint(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("user_agent", mode="before")
    @classmethod
    def _coerce_user_agent(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_USER_AGENT
        return str(value).strip() or DEFAULT_USER_AGENT

    @field_validator("container_strategies", mode="before")
    @classmethod
    def _coerce_strategies(cls, value: Any) -> Tuple[str, ...]:
        if value is None or value == "":
            return config_constants.DEFAULT_CONTAINER_STRATEGIES
        if isinstance(value, str):
            value = value.split(",")
        return tuple(str(name).strip() for name in value if str(name).strip())

    @field_validator("container_strategies", mode="after")
    @classmethod
    def _validate_strategies(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("container_strategies must name at least one strategy")
        unknown = [name for name in value if name not in VALID_CONTAINER_STRATEGIES]
        if unknown:
            raise ValueError(
                f"container_strategies must be drawn from {VALID_CONTAINER_STRATEGIES}, "
                f"got: {unknown}"
            )
        return value

    @field_validator("max_episodes", mode="before")
    @classmethod
    def _coerce_max_episodes(cls, value: Any) -> int:
        parsed = _coerce_int(value, "max_episodes", DEFAULT_MAX_EPISODES)
        if parsed < 1:
            raise ValueError("max_episodes must be at least 1")
        return parsed

    @field_validator("check_limit", mode="before")
    @classmethod
    def _coerce_check_limit(cls, value: Any) -> int:
        parsed = _coerce_int(value, "check_limit", DEFAULT_CHECK_LIMIT)
        if parsed < 1:
            raise ValueError("check_limit must be at least 1")
        return parsed

    @field_validator(
        "settle_ms", "scroll_settle_ms", "archive_settle_ms", "max_load_more_attempts",
        mode="before",
    )
    @classmethod
    def _ensure_non_negative(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        parsed = _coerce_int(value, info.field_name, default)
        if parsed < 0:
            raise ValueError(f"{info.field_name} cannot be negative")
        return parsed

    @field_validator("stall_limit", mode="before")
    @classmethod
    def _ensure_stall_limit(cls, value: Any) -> int:
        parsed = _coerce_int(value, "stall_limit", config_constants.DEFAULT_STALL_LIMIT)
        return max(MIN_STALL_LIMIT, parsed)

    @field_validator("navigation_timeout", "timeout", mode="before")
    @classmethod
    def _ensure_timeout(cls, value: Any, info: ValidationInfo) -> int:
        default = cls.model_fields[info.field_name].default
        return max(MIN_TIMEOUT_SECONDS, _coerce_int(value, info.field_name, default))

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_LOG_LEVEL
        return str(value).strip().upper() or DEFAULT_LOG_LEVEL

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got: {value}")
        return value


def load_config_file(path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    The file format is detected from the extension (``.json``, ``.yaml`` or
    ``.yml``). The returned mapping can be unpacked into `Config`; field names
    and aliases are both accepted.

    Args:
        path: Path to configuration file. Supports tilde expansion.

    Returns:
        Dict[str, Any]: Configuration values from the file

    Raises:
        ValueError: If the path is empty or missing, the format is unsupported,
            parsing fails, or the top level is not a mapping

    Example:
        >>> cfg = Config(**load_config_file("config.yaml"))
    """
    if not path:
        raise ValueError("Config path cannot be empty")

    cfg_path = Path(path).expanduser()
    try:
        resolved = cfg_path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid config path: {path} ({exc})") from exc

    if not resolved.exists():
        raise ValueError(f"Config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Failed to read config file {resolved}: {exc}") from exc

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON config file {resolved}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML config file {resolved}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported config file type: {resolved.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")

    return data
