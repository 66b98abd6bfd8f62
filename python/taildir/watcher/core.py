"""
Watch loop: registration, notification dispatch and consumer callbacks.

DirectoryTailer runs two phases:
- INITIALIZING: walk the directory (handles at end-of-file), arm the source
- RUNNING: await one notification at a time, translate it, and call the
  consumer with (file name, lines) when the batch is non-empty

Notifications are processed strictly one after another; the callback runs
inline, so a slow consumer backpressures the source.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from taildir.errors import NotificationSourceClosed, SetupError, TranslationError
from taildir.handles import HandleTable
from taildir.options import WatchOption
from taildir.registrar import register_dir
from taildir.translator import translate
from taildir.watcher.source import WatchdogNotificationSource
from taildir.watcher.types import ChangeNotification, NotificationSourceProtocol

logger = logging.getLogger(__name__)

LineCallback = Callable[[str, list[str]], Union[None, Awaitable[None]]]


class TailerState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPED = "stopped"


class DirectoryTailer:
    """
    Tail every selected file below a directory.

    Constructor Args:
    -----------------
    option: WatchOption (directory, debounce, watcher type, predicates)
    callback: Sync or async callable receiving (file name, new lines)
    source: Notification source; defaults to a WatchdogNotificationSource
        built from ``option``

    Example Usage:
    --------------
    >>> def on_lines(name, lines):
    ...     for line in lines:
    ...         print(f"[{name}] {line}", end="")
    ...
    >>> tailer = DirectoryTailer(WatchOption(Path("/var/log/app")), on_lines)
    >>> await tailer.run()  # until the source closes or stop() is called
    """

    def __init__(
        self,
        option: WatchOption,
        callback: LineCallback,
        source: Optional[NotificationSourceProtocol] = None,
    ) -> None:
        """
        Raises:
        -------
        TypeError: If callback not callable
        """
        if not callable(callback):
            raise TypeError("callback must be callable")

        self._option = option
        self._callback = callback
        self._source = source
        self._table: Optional[HandleTable] = None
        self._state = TailerState.IDLE
        self._stopping = False

    @property
    def state(self) -> TailerState:
        return self._state

    @property
    def handles(self) -> Optional[HandleTable]:
        """The live handle table (None before registration)."""
        return self._table

    def is_running(self) -> bool:
        return self._state == TailerState.RUNNING

    async def run(self) -> None:
        """
        Register, arm and process notifications until stopped.

        Raises:
        -------
        RuntimeError: run() called more than once
        SetupError: directory could not be registered or watched
        NotificationSourceClosed: the source died (e.g. directory deleted)
        """
        if self._state != TailerState.IDLE:
            raise RuntimeError("DirectoryTailer is already running or has run")

        self._state = TailerState.INITIALIZING
        option = self._option
        directory = option.directory.resolve()

        try:
            self._table = register_dir(directory, option.file_filter)
        except OSError as e:
            self._state = TailerState.STOPPED
            raise SetupError(f"Cannot register {directory}: {e}") from e

        if self._source is None:
            self._source = WatchdogNotificationSource(
                watcher_type=option.watcher_type,
                debounce_seconds=option.debounce_seconds,
                poll_interval=option.poll_interval,
                loop=asyncio.get_running_loop(),
            )
        source = self._source

        try:
            source.arm(directory, recursive=True)
            self._state = TailerState.RUNNING
            logger.info(f"Watching {directory} ({len(self._table)} files registered)")

            while not self._stopping:
                try:
                    notification = await source.receive()
                except NotificationSourceClosed:
                    if self._stopping:
                        break
                    raise
                except Exception as e:
                    logger.error(f"watch error: {e}", exc_info=True)
                    continue

                if self._stopping:
                    break
                await self._dispatch(notification)
        finally:
            source.close()
            self._table.close()
            self._state = TailerState.STOPPED
            logger.info(f"Stopped watching {directory}")

    async def _dispatch(self, notification: ChangeNotification) -> None:
        option = self._option
        try:
            batch = translate(notification, self._table, option.file_filter, option.line_filter)
        except TranslationError as e:
            logger.error(f"watch error: {e}", exc_info=True)
            return

        if batch is None:
            return
        name, lines = batch
        if lines:
            await self._invoke_callback(name, lines)

    async def _invoke_callback(self, name: str, lines: list[str]) -> None:
        """Invoke the consumer callback, awaiting it if it is async."""
        try:
            result = self._callback(name, lines)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in consumer callback for {name}: {e}", exc_info=True)

    def stop(self) -> None:
        """
        Ask run() to return. Safe before run(), after run() and from any thread.
        """
        self._stopping = True
        if self._source is not None and self._state == TailerState.RUNNING:
            self._source.close()


async def watch_dir_async(option: WatchOption, callback: LineCallback) -> None:
    """Tail ``option.directory`` on the running event loop until the source closes."""
    await DirectoryTailer(option, callback).run()


def watch_dir(option: WatchOption, callback: LineCallback) -> None:
    """
    Blocking entry point: tail ``option.directory`` forever.

    Raises:
    -------
    SetupError: directory could not be registered or watched
    NotificationSourceClosed: the watch ended (e.g. directory deleted)
    """
    asyncio.run(watch_dir_async(option, callback))
