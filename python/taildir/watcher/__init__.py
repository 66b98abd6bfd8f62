"""
Directory watching for live log tailing.

Typical usage:
--------------
    from pathlib import Path
    from taildir.options import WatchOption, glob_filter
    from taildir.watcher import DirectoryTailer

    def on_lines(name, lines):
        for line in lines:
            print(f"[{name}] {line}", end="")

    option = WatchOption(Path("/var/log/app"), debounce_seconds=2).with_file_filter(
        glob_filter(["*.log"])
    )
    await DirectoryTailer(option, on_lines).run()

ERROR CONDITIONS SUMMARY
========================

1. SETUP ERRORS (fatal, raised from run()):
   - Directory doesn't exist / is a file / can't be listed -> SetupError
   - Observer can't watch the directory (e.g. inotify limit) -> SetupError

2. PER-FILE ERRORS (logged, loop continues):
   - File vanishes during registration -> skipped
   - File unreadable during registration -> warning, skipped
   - Read fails for a tailed file -> handle dropped, error logged

3. CALLBACK ERRORS:
   - Consumer raises -> error logged with traceback, loop continues

4. SOURCE ERRORS:
   - Watched directory deleted / observer thread dies -> NotificationSourceClosed

EDGE CASES
==========
   - Lines present at registration are never delivered
   - Line filter rejects everything -> offset still advances, no callback
   - Truncate in place -> offset reset to 0, new content delivered
   - Delete + recreate (with or without REMOVE) -> new file read from 0
   - Two REMOVEs for the same file -> second is a no-op
   - Partial trailing line -> delivered as-is, offset moves past it
   - Sub-directory deleted or moved away -> every handle beneath it dropped
   - File written faster than the debounce window -> flushed once per window
"""

from taildir.watcher.core import DirectoryTailer, TailerState, watch_dir, watch_dir_async
from taildir.watcher.debouncer import DebounceQueue
from taildir.watcher.handlers import NotificationEventHandler
from taildir.watcher.source import WatchdogNotificationSource
from taildir.watcher.types import ChangeKind, ChangeNotification, NotificationSourceProtocol

__all__ = [
    "ChangeKind",
    "ChangeNotification",
    "DebounceQueue",
    "DirectoryTailer",
    "NotificationEventHandler",
    "NotificationSourceProtocol",
    "TailerState",
    "WatchdogNotificationSource",
    "watch_dir",
    "watch_dir_async",
]
