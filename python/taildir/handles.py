"""
Handle table: the open files being tailed and their read offsets.

The table exclusively owns every descriptor it holds. Entries are keyed by
the normalised full path so that two files sharing a base name in
different sub-directories do not collide; the consumer still sees the
base name.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def path_key(path: PathLike) -> str:
    """Normalise a path into a table key."""
    return os.fspath(Path(path))


@dataclass
class Handle:
    """One actively tailed file."""

    path: Path
    offset: int
    file: BinaryIO
    inode: int
    device: int

    @property
    def name(self) -> str:
        return self.path.name

    def size(self) -> int:
        """Current length of the open file (follows the descriptor, not the path)."""
        return os.fstat(self.file.fileno()).st_size

    def same_file_as_path(self) -> bool:
        """
        Check whether ``path`` still names the file behind the descriptor.

        Raises:
            FileNotFoundError: path no longer exists
        """
        st = os.stat(self.path)
        return st.st_ino == self.inode and st.st_dev == self.device

    def close(self) -> None:
        try:
            self.file.close()
        except OSError as e:
            logger.debug(f"Error closing {self.path}: {e}")


class HandleTable:
    """
    Mapping of path -> Handle.

    Populated by the registrar, then mutated only by the translator.
    Not thread-safe: callers serialise access (the dispatcher owns it).
    """

    def __init__(self) -> None:
        self._handles: dict[str, Handle] = {}

    def insert(self, path: PathLike, at_tail: bool) -> Handle:
        """
        Open ``path`` and register it.

        Args:
            path: File to open
            at_tail: Start at end-of-file (registration) instead of 0 (reopen)

        Returns:
            The new Handle

        Raises:
            OSError: if the file cannot be opened
        """
        path = Path(path)
        fd = open(path, "rb")
        try:
            st = os.fstat(fd.fileno())
            offset = st.st_size if at_tail else 0
            fd.seek(offset)
        except OSError:
            fd.close()
            raise

        handle = Handle(
            path=path,
            offset=offset,
            file=fd,
            inode=st.st_ino,
            device=st.st_dev,
        )

        key = path_key(path)
        previous = self._handles.get(key)
        if previous is not None:
            previous.close()
        self._handles[key] = handle

        logger.info(f"Registered {path.name}, offset: {offset}")
        return handle

    def get(self, path: PathLike) -> Optional[Handle]:
        return self._handles.get(path_key(path))

    def remove(self, path: PathLike) -> bool:
        """
        Drop the handle for ``path`` and close its descriptor.

        Returns:
            True if a handle was removed, False if none was registered
        """
        handle = self._handles.pop(path_key(path), None)
        if handle is None:
            return False
        handle.close()
        logger.info(f"Handle removed, {handle.name}")
        return True

    def remove_under(self, directory: PathLike) -> int:
        """
        Drop every handle for a file below ``directory``.

        Used when a sub-directory is deleted or moved away, which watchdog
        reports as one directory event rather than per-file events.

        Returns:
            Number of handles removed
        """
        prefix = os.path.join(path_key(directory), "")
        doomed = [key for key in self._handles if key.startswith(prefix)]
        for key in doomed:
            self._handles.pop(key).close()
        if doomed:
            logger.info(f"Dropped {len(doomed)} handles under {directory}")
        return len(doomed)

    def names(self) -> list[str]:
        """Base names of every tailed file."""
        return [handle.name for handle in self._handles.values()]

    def close(self) -> None:
        """Release every descriptor and empty the table."""
        for handle in self._handles.values():
            handle.close()
        self._handles.clear()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return path_key(path) in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))
