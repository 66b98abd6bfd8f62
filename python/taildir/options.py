"""
Watch configuration and line/file predicates.

A WatchOption is built once before the watch loop starts and never mutated
afterwards. Builder methods return a new instance:

    option = (
        WatchOption(Path("/var/log/app"), debounce_seconds=5)
        .with_file_filter(glob_filter(["*.log"]))
        .with_line_filter(contains_filter("ERROR"))
    )
"""

import dataclasses
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from pathspec import PathSpec

Predicate = Callable[[str], bool]


def select_all(_: str) -> bool:
    """Default predicate: select everything."""
    return True


class WatcherType(Enum):
    """Which watchdog observer backs the notification source."""

    RECOMMENDED = "recommended"  # Native OS events (inotify, FSEvents, ReadDirectoryChangesW)
    POLL = "poll"  # Periodic stat() snapshots


@dataclass(frozen=True)
class WatchOption:
    """
    Immutable configuration for one directory watch.

    Args:
        directory: Root directory to tail recursively
        debounce_seconds: Coalescing window for change notifications (0 = none)
        watcher_type: Native events or polling
        file_filter: Selects files by base name
        line_filter: Selects lines by content (line terminator included)
        poll_interval: Seconds between snapshots (POLL only)
    """

    directory: Path
    debounce_seconds: float = 2.0
    watcher_type: WatcherType = WatcherType.RECOMMENDED
    file_filter: Predicate = field(default=select_all, compare=False)
    line_filter: Predicate = field(default=select_all, compare=False)
    poll_interval: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "directory", Path(self.directory))
        if self.debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if not callable(self.file_filter):
            raise TypeError("file_filter must be callable")
        if not callable(self.line_filter):
            raise TypeError("line_filter must be callable")

    def with_watcher_type(self, watcher_type: WatcherType) -> "WatchOption":
        return dataclasses.replace(self, watcher_type=watcher_type)

    def with_file_filter(self, file_filter: Predicate) -> "WatchOption":
        return dataclasses.replace(self, file_filter=file_filter)

    def with_line_filter(self, line_filter: Predicate) -> "WatchOption":
        return dataclasses.replace(self, line_filter=line_filter)

    def with_debounce(self, seconds: float) -> "WatchOption":
        return dataclasses.replace(self, debounce_seconds=seconds)


def glob_filter(patterns: Iterable[str]) -> Predicate:
    """
    Build a file-name predicate from gitignore-style patterns.

    Patterns are matched against the base name only; "!pattern" re-excludes.
    An empty pattern list selects everything.

    Args:
        patterns: e.g. ["*.log", "!debug.log"]

    Returns:
        Predicate over base names
    """
    patterns = [p for p in patterns if p.strip()]
    if not patterns:
        return select_all

    spec = PathSpec.from_lines("gitwildmatch", patterns)

    def _match(name: str) -> bool:
        return spec.match_file(name)

    return _match


def regex_filter(pattern: str, flags: int = 0) -> Predicate:
    """Select lines containing a match for ``pattern`` (re.search semantics)."""
    compiled = re.compile(pattern, flags)

    def _match(line: str) -> bool:
        return compiled.search(line) is not None

    return _match


def contains_filter(text: str) -> Predicate:
    """Select lines containing ``text`` verbatim."""

    def _match(line: str) -> bool:
        return text in line

    return _match
