"""
Initial registration: walk the directory once and open every selected file.

Registration starts each handle at end-of-file, so content that existed
before the watch began is never delivered.

Uses os.walk() (not rglob) so that errors on individual sub-directories
can be reported and skipped while errors on the root stay fatal.
"""

import logging
import os
from pathlib import Path

from taildir.handles import HandleTable
from taildir.options import Predicate, select_all

logger = logging.getLogger(__name__)


def _walk_files(directory: Path):
    """
    Yield every regular file below ``directory``.

    Raises:
        OSError: if the root itself cannot be listed
    """
    root = os.fspath(directory)

    def _on_error(error: OSError) -> None:
        if error.filename is not None and os.fspath(error.filename) == root:
            raise error
        logger.warning(f"Skipping unreadable directory {error.filename}: {error}")

    for dirpath, _dirs, files in os.walk(root, onerror=_on_error):
        for name in files:
            path = Path(dirpath) / name
            if path.is_file():
                yield path


def register_dir(directory: Path, file_filter: Predicate = select_all) -> HandleTable:
    """
    Seed a HandleTable with one handle per selected file under ``directory``.

    Args:
        directory: Root directory to walk recursively
        file_filter: Predicate over base names

    Returns:
        HandleTable with every handle positioned at end-of-file

    Raises:
        FileNotFoundError: directory doesn't exist
        NotADirectoryError: directory is a file
        OSError: directory cannot be listed
    """
    directory = Path(directory)
    if not directory.exists():
        raise FileNotFoundError(f"Directory does not exist: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {directory}")

    table = HandleTable()
    try:
        for path in _walk_files(directory):
            if not file_filter(path.name):
                continue
            try:
                table.insert(path, at_tail=True)
            except FileNotFoundError:
                # Deleted between listing and open
                logger.debug(f"File vanished during registration: {path}")
            except OSError as e:
                logger.warning(f"Could not open {path}: {e}")
    except BaseException:
        table.close()
        raise

    logger.info(f"Registered {len(table)} files under {directory}")
    return table
