"""
taildir - tail every matching file below a directory.

New lines are delivered to a callback as they are written, across file
creation, deletion and log rotation.
"""

from taildir.errors import NotificationSourceClosed, SetupError, TaildirError, TranslationError
from taildir.handles import Handle, HandleTable
from taildir.options import (
    WatcherType,
    WatchOption,
    contains_filter,
    glob_filter,
    regex_filter,
    select_all,
)
from taildir.registrar import register_dir

# watcher before translator: translator depends on taildir.watcher.types
from taildir.watcher import DirectoryTailer, watch_dir, watch_dir_async
from taildir.translator import translate  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "DirectoryTailer",
    "Handle",
    "HandleTable",
    "NotificationSourceClosed",
    "SetupError",
    "TaildirError",
    "TranslationError",
    "WatcherType",
    "WatchOption",
    "contains_filter",
    "glob_filter",
    "regex_filter",
    "register_dir",
    "select_all",
    "translate",
    "watch_dir",
    "watch_dir_async",
]
