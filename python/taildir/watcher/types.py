"""
Notification types and the notification-source protocol.

This module defines:
- ChangeKind enum: the small set of change kinds the translator understands
- ChangeNotification: one (coalesced) change for one path
- NotificationSourceProtocol: what the dispatcher needs from a source
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol


class ChangeKind(Enum):
    """File system change kinds delivered to the translator."""

    CREATE = "create"  # New file appeared
    WRITE = "write"  # Existing file content changed
    REMOVE = "remove"  # File deleted (or moved away)


@dataclass(frozen=True)
class ChangeNotification:
    """A change kind paired with the path it applies to."""

    kind: ChangeKind
    path: Path


class NotificationSourceProtocol(Protocol):
    """
    Protocol for anything that can feed the dispatcher.

    Expected Behavior:
    ------------------
    1. arm() starts watching a directory (recursively if asked)
    2. receive() blocks until the next debounced notification
    3. receive() raises NotificationSourceClosed once the source is gone
       and nothing is left to deliver
    4. close() is idempotent and makes any pending receive() finish

    Thread Safety:
    --------------
    - The OS watcher may run on its own thread
    - receive() is only ever awaited from the dispatcher's event loop
    """

    def arm(self, path: Path, recursive: bool = True) -> None:
        """
        Start delivering notifications for ``path``.

        Raises:
        -------
        SetupError: if the path cannot be watched
        """
        ...

    async def receive(self) -> ChangeNotification:
        """
        Wait for the next notification.

        Raises:
        -------
        NotificationSourceClosed: source stopped and queue drained
        """
        ...

    def close(self) -> None:
        """Stop watching and release OS resources."""
        ...
