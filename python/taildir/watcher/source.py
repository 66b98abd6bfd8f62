"""
Watchdog-backed notification source with WSL2 polling fallback.

WatcherType.RECOMMENDED uses watchdog's native Observer (inotify, FSEvents,
ReadDirectoryChangesW); WatcherType.POLL uses PollingObserver. Under WSL2,
Windows-mounted paths (/mnt/c/, /mnt/d/, ...) sit behind the 9P bridge and
never produce inotify events, so RECOMMENDED falls back to polling there.

Raw events arrive on the observer thread, are marshalled onto the asyncio
loop, coalesced by a DebounceQueue and then queued for receive().
"""

import asyncio
import functools
import logging
import os
import platform
import re
from pathlib import Path
from typing import Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from taildir.errors import NotificationSourceClosed, SetupError
from taildir.options import WatcherType
from taildir.watcher.debouncer import DebounceQueue
from taildir.watcher.handlers import NotificationEventHandler
from taildir.watcher.types import ChangeKind, ChangeNotification

logger = logging.getLogger(__name__)

# How often receive() checks that the observer thread is still alive
LIVENESS_INTERVAL = 1.0

# /mnt/<drive letter>, where WSL mounts Windows drives over 9P
_DRIVE_MOUNT = re.compile(r"^/mnt/[A-Za-z](/|$)")


@functools.lru_cache(maxsize=None)
def running_under_wsl() -> bool:
    """True inside WSL, detected from its environment or kernel release."""
    if os.environ.get("WSL_DISTRO_NAME"):
        return True
    release = platform.release().lower()
    return "microsoft" in release or "wsl" in release


def on_drive_mount(directory: Path) -> bool:
    """True if ``directory`` lives on a WSL-mounted Windows drive."""
    return bool(_DRIVE_MOUNT.match(directory.resolve().as_posix()))


def resolve_watcher_type(watcher_type: WatcherType, directory: Path) -> WatcherType:
    """
    Pick the observer actually used for ``directory``.

    RECOMMENDED becomes POLL only on a Windows drive inside WSL.
    """
    if watcher_type == WatcherType.POLL:
        return WatcherType.POLL

    if running_under_wsl() and on_drive_mount(directory):
        logger.info(f"{directory} is on a Windows drive under WSL, polling instead")
        return WatcherType.POLL

    return WatcherType.RECOMMENDED


class WatchdogNotificationSource:
    """
    Notification source backed by a watchdog observer.

    Constructor Args:
    -----------------
    watcher_type: RECOMMENDED (native events) or POLL
    debounce_seconds: Coalescing window handed to DebounceQueue
    poll_interval: Snapshot interval for the polling observer
    loop: Event loop receive() runs on (default: the running loop at arm())

    Example Usage:
    --------------
    >>> source = WatchdogNotificationSource(debounce_seconds=1)
    >>> source.arm(Path("/var/log/app"))
    >>> notification = await source.receive()
    >>> source.close()
    """

    def __init__(
        self,
        watcher_type: WatcherType = WatcherType.RECOMMENDED,
        debounce_seconds: float = 2.0,
        poll_interval: float = 1.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")

        self._watcher_type = watcher_type
        self._debounce_seconds = debounce_seconds
        self._poll_interval = poll_interval
        self._loop = loop

        self._observer: Optional[BaseObserver] = None
        self._debounce_queue: Optional[DebounceQueue] = None
        self._queue: Optional[asyncio.Queue] = None
        self._closed = False
        self._close_reason: Optional[str] = None

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    def _create_observer(self, directory: Path) -> BaseObserver:
        if resolve_watcher_type(self._watcher_type, directory) == WatcherType.POLL:
            logger.info(f"Starting polling watcher for {directory} (every {self._poll_interval}s)")
            return PollingObserver(timeout=self._poll_interval)
        logger.info(f"Starting native watcher for {directory}")
        return Observer()

    def arm(self, path: Path, recursive: bool = True) -> None:
        """
        Start watching ``path``.

        Raises:
        -------
        RuntimeError: already armed
        SetupError: source closed, or the observer could not watch the path
        """
        if self._observer is not None:
            raise RuntimeError("Notification source is already armed")
        if self._closed:
            raise SetupError("Notification source is closed")

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        root = Path(path)
        self._queue = asyncio.Queue()
        self._debounce_queue = DebounceQueue(
            debounce_delay=self._debounce_seconds,
            flush_callback=self._enqueue,
            loop=self._loop,
        )

        observer = self._create_observer(root)
        try:
            observer.schedule(NotificationEventHandler(self, root), str(root), recursive=recursive)
            observer.start()
        except OSError as e:
            raise SetupError(f"Cannot watch {root}: {e}") from e

        self._observer = observer

    def submit(self, kind: ChangeKind, path: Path) -> None:
        """Feed one raw event into the debouncer (event loop thread only)."""
        if self._closed or self._debounce_queue is None:
            return
        self._debounce_queue.add(kind, path)

    def fail(self, reason: str) -> None:
        """Close the source because it can no longer watch (event loop thread only)."""
        logger.error(reason)
        self._close_reason = reason
        self.close()

    def _enqueue(self, events: list[ChangeNotification]) -> None:
        for event in events:
            self._queue.put_nowait(event)

    async def receive(self) -> ChangeNotification:
        """
        Wait for the next debounced notification.

        Raises:
        -------
        NotificationSourceClosed: source closed and nothing left to deliver
        """
        if self._queue is None:
            raise NotificationSourceClosed("Notification source was never armed")

        while True:
            if not self._queue.empty():
                item = self._queue.get_nowait()
                if item is not None:
                    return item
                continue
            if self._closed:
                raise NotificationSourceClosed(self._close_reason or "Notification source closed")
            if self._observer is not None and not self._observer.is_alive():
                self.fail("Watcher thread stopped unexpectedly")
                continue

            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=LIVENESS_INTERVAL)
            except asyncio.TimeoutError:
                continue
            if item is not None:
                return item

    def close(self) -> None:
        """
        Stop the observer and wake any pending receive().

        Safe to call more than once and from any thread.
        """
        observer, self._observer = self._observer, None
        if observer is not None:
            logger.info("Stopping file watcher")
            observer.stop()
            observer.join()

        if self._loop is None or self._loop.is_closed():
            self._finish_close()
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._finish_close()
        else:
            self._loop.call_soon_threadsafe(self._finish_close)

    def _finish_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Deliver whatever was still waiting for the debounce timer
        if self._debounce_queue is not None and self._queue is not None:
            self._enqueue(self._debounce_queue.drain())
        if self._queue is not None:
            # Wake a receive() blocked in get(); it re-checks _closed
            self._queue.put_nowait(None)

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()
