"""Custom exceptions for npr_archive_feed.

Only conditions that end a run are modelled as exceptions. Missing optional
episode fields, pagination stalls and no-op updates are normal outcomes and
never raise.

Exception Hierarchy:
    FeedError (base)
    ├── FeedNotFoundError - No persisted feed to update
    ├── FeedParseError - Persisted feed cannot be read
    ├── PageNavigationError - Browser navigation or automation failure
    └── NoEpisodesFoundError - Archive page yielded no episode containers
"""

from typing import Optional


class FeedError(Exception):
    """Base exception for all fatal feed errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
    """

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message with suggestion."""
        if self.suggestion:
            return f"{self.message} Suggestion: {self.suggestion}"
        return self.message


class FeedNotFoundError(FeedError):
    """Raised when an update run finds no persisted feed to merge into.

    Example:
        >>> raise FeedNotFoundError(path="feeds/jazz-night-zune.xml")
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            message=f"No existing feed found at {path}.",
            suggestion="Run the full build first to create the initial feed.",
        )


class FeedParseError(FeedError):
    """Raised when the persisted feed exists but is not a readable RSS document."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(
            message=f"Failed to parse feed {path}: {reason}",
            suggestion="Repair or delete the file and run the full build again.",
        )


class PageNavigationError(FeedError):
    """Raised when the archive page cannot be loaded or driven.

    Common causes:
    - Navigation timeout
    - Browser launch failure
    - Page closed or crashed mid-run
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        self.url = url
        if url and url not in message:
            message = f"{message} (url: {url})"
        super().__init__(
            message=message,
            suggestion="The run was aborted without writing; re-run later.",
        )


class NoEpisodesFoundError(FeedError):
    """Raised when a full build extracts zero episodes from the archive page."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(
            message=f"No episode containers with download links found on {url}.",
            suggestion="The site markup may have changed; try `inspect` and adjust "
            "container_strategies or download_host.",
        )
