"""
Internal event handler for watchdog.

Watchdog delivers raw events on its observer thread. This handler converts
them into (ChangeKind, path) pairs and hands them to the notification
source on the asyncio event loop.
"""

import logging
from pathlib import Path

from watchdog.events import (
    DirDeletedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
)

from taildir.watcher.types import ChangeKind

logger = logging.getLogger(__name__)


class NotificationEventHandler:
    """
    Watchdog handler feeding a WatchdogNotificationSource.

    - File created / modified / deleted map to CREATE / WRITE / REMOVE
    - A move is REMOVE(src) followed by CREATE(dest)
    - Deleting or moving a sub-directory is a REMOVE for the directory path,
      which drops every handle beneath it
    - Deleting or moving the watched root fails the source
    - Other directory events are dropped
    """

    def __init__(self, source: "WatchdogNotificationSource", root: Path) -> None:  # noqa: F821
        """
        Initialize event handler.

        Args:
        -----
        source: Notification source to route events to
        root: The armed directory (its deletion is fatal)
        """
        self.source = source
        self.root = root

    def dispatch(self, event: FileSystemEvent) -> None:
        """Dispatch file system events to the source (runs on the observer thread)."""
        if event.is_directory:
            if isinstance(event, (DirDeletedEvent, DirMovedEvent)):
                if Path(_to_str(event.src_path)) == self.root:
                    self._call(self.source.fail, f"Watched directory was removed: {self.root}")
                else:
                    self._submit(ChangeKind.REMOVE, event.src_path)
            return

        if isinstance(event, FileCreatedEvent):
            self._submit(ChangeKind.CREATE, event.src_path)
        elif isinstance(event, FileModifiedEvent):
            self._submit(ChangeKind.WRITE, event.src_path)
        elif isinstance(event, FileDeletedEvent):
            self._submit(ChangeKind.REMOVE, event.src_path)
        elif isinstance(event, FileMovedEvent):
            self._submit(ChangeKind.REMOVE, event.src_path)
            self._submit(ChangeKind.CREATE, event.dest_path)

    def _submit(self, kind: ChangeKind, src_path) -> None:
        self._call(self.source.submit, kind, Path(_to_str(src_path)))

    def _call(self, func, *args) -> None:
        try:
            self.source.loop.call_soon_threadsafe(func, *args)
        except RuntimeError:
            # Loop already closed; the source is shutting down
            logger.debug(f"Dropped event after loop shutdown: {args}")


def _to_str(path) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="surrogateescape")
    return path
