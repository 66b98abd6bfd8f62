"""
Logging configuration for taildir.

Delivered lines go to stdout, so diagnostics never do: logs are written to
.taildir/logs/taildir-YYYY-MM-DD.log (rotated daily) and, optionally, to
stderr in a shorter format that reads well next to the tailed output.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "taildir %(levelname)s: %(message)s"

_FILE_HANDLER = "taildir-file"
_CONSOLE_HANDLER = "taildir-console"


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Handler that flushes after every emit for immediate visibility."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _file_handler(log_dir: Path, backup_count: int) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"taildir-{datetime.now().strftime('%Y-%m-%d')}.log"

    handler = FlushingHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.set_name(_FILE_HANDLER)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_CONSOLE_HANDLER)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def setup_logging(
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    backup_count: int = 7,
    console: bool = False,
) -> logging.Logger:
    """
    Configure the "taildir" logger. Safe to call repeatedly.

    Args:
        log_dir: Directory for log files (default: .taildir/logs)
        level: Logging level (default: INFO)
        backup_count: Number of daily backup files to keep (default: 7 days)
        console: If True, also log to stderr

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("taildir")
    logger.setLevel(level)
    installed = {h.get_name() for h in logger.handlers}

    if _FILE_HANDLER not in installed:
        handler = _file_handler(log_dir or Path.cwd() / ".taildir" / "logs", backup_count)
        logger.addHandler(handler)
        logger.info(f"Log file: {handler.baseFilename}, level {logging.getLevelName(level)}")

    if console and _CONSOLE_HANDLER not in installed:
        logger.addHandler(_console_handler())

    return logger


def get_logger(name: str = "taildir") -> logging.Logger:
    """Logger in the taildir hierarchy."""
    return logging.getLogger(name)
