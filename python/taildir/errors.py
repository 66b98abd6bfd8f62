"""
Error taxonomy for taildir.

- SetupError: cannot start watching (fatal, surfaces from run())
- TranslationError: one notification for one file failed (logged, loop continues)
- NotificationSourceClosed: the notification source is permanently gone
"""

from pathlib import Path
from typing import Optional


class TaildirError(Exception):
    """Base class for taildir errors."""

    pass


class SetupError(TaildirError):
    """Raised when the watch cannot be started (directory or watcher unavailable)."""

    pass


class TranslationError(TaildirError):
    """Raised when reading new content for a single file fails."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class NotificationSourceClosed(TaildirError):
    """Raised by receive() once the source can no longer produce notifications."""

    pass
