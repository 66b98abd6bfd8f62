"""
Notification debouncing.

This module provides the DebounceQueue class that coalesces rapid changes
to the same path into one notification before they reach the translator.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from taildir.watcher.types import ChangeKind, ChangeNotification

logger = logging.getLogger(__name__)


class DebounceQueue:
    """
    Queue that coalesces rapid changes per path.

    Behavior:
    ---------
    A logger appending many lines produces a burst of write events. Instead
    of reading after every one:
    1. The first event of a batch arms the timer; later events join the
       batch without pushing the timer back
    2. Coalesce (same path, multiple events -> one notification)
    3. Flush the batch, in first-seen order, to flush_callback

    A file written continuously is therefore flushed once per window.

    Example:
    --------
    app.log written at t=0ms     <- timer armed
    app.log written at t=50ms    } Collect these
    app.log written at t=100ms   }
    -> Flush at t=0ms + delay with a single WRITE
    """

    def __init__(
        self,
        debounce_delay: float = 2.0,
        flush_callback: Optional[Callable[[list[ChangeNotification]], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Initialize debounce queue.

        Args:
        -----
        debounce_delay: Seconds from a batch's first event to its flush (0 flushes on the next loop turn)
        flush_callback: Called with the coalesced batch (sync or async)
        loop: Event loop the timer runs on

        Raises:
        -------
        ValueError: If debounce_delay is negative
        """
        if debounce_delay < 0:
            raise ValueError("debounce_delay must be >= 0")

        self._debounce_delay = debounce_delay
        self._flush_callback = flush_callback

        if loop:
            self._loop = loop
        else:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                self._loop = asyncio.new_event_loop()

        # path -> ChangeKind, insertion order is delivery order
        self._queue: dict[Path, ChangeKind] = {}
        # Paths whose batch opened with REMOVE: the file existed before the batch
        self._opened_with_remove: set[Path] = set()

        self._timer_handle: Optional[asyncio.Handle] = None
        self._flush_tasks: set[asyncio.Task] = set()

    def add(self, kind: ChangeKind, path: Path) -> None:
        """
        Add an event; arm the timer if no batch is pending.

        Coalescing Rules:
        -----------------
        - CREATE then WRITE  -> CREATE
        - CREATE then REMOVE -> dropped entirely, unless the batch opened
                                with REMOVE, in which case REMOVE
        - WRITE then REMOVE  -> REMOVE
        - REMOVE then CREATE -> CREATE (rotation; translator re-checks identity)
        - anything else      -> latest kind wins
        """
        existing = self._queue.get(path)

        if existing is None:
            self._queue[path] = kind
            if kind == ChangeKind.REMOVE:
                self._opened_with_remove.add(path)
        elif existing == ChangeKind.CREATE and kind == ChangeKind.WRITE:
            pass
        elif existing == ChangeKind.CREATE and kind == ChangeKind.REMOVE:
            if path in self._opened_with_remove:
                self._queue[path] = ChangeKind.REMOVE
            else:
                del self._queue[path]
        else:
            self._queue[path] = kind

        if self._timer_handle is not None:
            return

        if self._debounce_delay == 0:
            self._timer_handle = self._loop.call_soon(self._schedule_flush)
        else:
            self._timer_handle = self._loop.call_later(self._debounce_delay, self._schedule_flush)

    def _schedule_flush(self) -> None:
        self._timer_handle = None
        task = self._loop.create_task(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    def pending(self) -> int:
        """Number of paths waiting for the timer."""
        return len(self._queue)

    def drain(self) -> list[ChangeNotification]:
        """Cancel the timer and take every pending notification without calling back."""
        if self._timer_handle:
            self._timer_handle.cancel()
            self._timer_handle = None

        events = [ChangeNotification(kind, path) for path, kind in self._queue.items()]
        self._queue.clear()
        self._opened_with_remove.clear()
        return events

    async def flush(self) -> None:
        """
        Flush all pending notifications to the callback.

        Exceptions from the callback are logged, never raised.
        """
        events = self.drain()
        if not events or not self._flush_callback:
            return

        try:
            result = self._flush_callback(events)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Error in flush callback: {e}", exc_info=True)
