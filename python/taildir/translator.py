"""
Turn change notifications into batches of new lines.

For CREATE/WRITE the handle for the path is read from its offset up to the
end-of-file observed at the start of the read; for REMOVE the handle is
dropped. Rotation is handled in three places:

1. Handle miss (REMOVE seen, or the file is new): reopen at offset 0.
2. Path now names a different inode (REMOVE coalesced away): drain the old
   descriptor, then reopen at offset 0.
3. File shorter than the offset (in-place truncate): reset offset to 0.

Offsets advance by the raw byte length of every line read, whether or not
the line filter keeps it.
"""

import logging
from pathlib import Path
from typing import Optional

from taildir.errors import TranslationError
from taildir.handles import Handle, HandleTable
from taildir.options import Predicate, select_all
from taildir.watcher.types import ChangeKind, ChangeNotification

logger = logging.getLogger(__name__)

Batch = tuple[str, list[str]]


def translate(
    notification: ChangeNotification,
    table: HandleTable,
    file_filter: Predicate = select_all,
    line_filter: Predicate = select_all,
) -> Optional[Batch]:
    """
    Apply one notification to the handle table.

    Args:
        notification: Change kind + path
        table: Handle table (mutated)
        file_filter: Predicate over base names
        line_filter: Predicate over decoded lines

    Returns:
        (base name, selected lines) for CREATE/WRITE on a selected file,
        possibly with an empty list; None otherwise

    Raises:
        TranslationError: reading an existing handle failed (the handle is dropped)
    """
    kind = notification.kind
    if kind in (ChangeKind.CREATE, ChangeKind.WRITE):
        return collect(table, notification.path, file_filter, line_filter)
    if kind == ChangeKind.REMOVE:
        # A REMOVE for a directory path drops every file tailed beneath it
        if not table.remove(notification.path):
            table.remove_under(notification.path)
    return None


def collect(
    table: HandleTable,
    path: Path,
    file_filter: Predicate = select_all,
    line_filter: Predicate = select_all,
) -> Optional[Batch]:
    """Read whatever was appended to ``path`` since the last read."""
    path = Path(path)
    name = path.name
    if not name or not file_filter(name):
        return None

    handle = table.get(path)
    if handle is None:
        # Under debouncing a rotation does not reliably produce REMOVE + CREATE,
        # so a missing handle for an existing path means a new file.
        try:
            handle = table.insert(path, at_tail=False)
        except (FileNotFoundError, IsADirectoryError):
            logger.debug(f"Nothing to reopen for {path}")
            return None
        except OSError as e:
            raise TranslationError(f"Could not reopen {path}: {e}", path) from e
        logger.info(f"File rotated, reopened: {name}")
        return name, _read_or_drop(table, handle, line_filter)

    try:
        replaced = not handle.same_file_as_path()
    except FileNotFoundError:
        logger.debug(f"File disappeared before read: {path}")
        table.remove(path)
        return None
    except OSError as e:
        table.remove(path)
        raise TranslationError(f"Could not stat {path}: {e}", path) from e

    if not replaced:
        return name, _read_or_drop(table, handle, line_filter)

    # Renamed away and recreated: finish the old file before switching
    lines = _read_or_drop(table, handle, line_filter)
    table.remove(path)
    rest = collect(table, path, file_filter, line_filter)
    if rest is not None:
        lines.extend(rest[1])
    return name, lines


def _read_or_drop(table: HandleTable, handle: Handle, line_filter: Predicate) -> list[str]:
    try:
        return read_new_lines(handle, line_filter)
    except OSError as e:
        table.remove(handle.path)
        raise TranslationError(f"Could not read {handle.path}: {e}", handle.path) from e


def read_new_lines(handle: Handle, line_filter: Predicate = select_all) -> list[str]:
    """
    Read from ``handle.offset`` to the current end-of-file.

    A trailing line without a terminator is returned as-is and consumed.
    If the file shrank below the offset it was truncated: restart at 0.
    """
    end = handle.size()
    if end < handle.offset:
        logger.info(f"File truncated, resetting offset: {handle.name} ({handle.offset} -> 0)")
        handle.offset = 0

    handle.file.seek(handle.offset)
    lines: list[str] = []
    while handle.offset < end:
        raw = handle.file.readline(end - handle.offset)
        if not raw:
            # Shrank while reading; picked up by the next notification
            break
        handle.offset += len(raw)
        line = raw.decode("utf-8", errors="replace")
        if line_filter(line):
            lines.append(line)

    logger.debug(f"Read {len(lines)} lines from {handle.name}, offset: {handle.offset}")
    return lines
