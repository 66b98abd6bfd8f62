"""
Command-line entry point.

Usage:
    taildir /var/log/app --include '*.log' --grep ERROR --debounce 5

Or via environment variables:
    TAILDIR_DEBOUNCE=5 TAILDIR_LOG_DIR=/tmp/taildir-logs taildir /var/log/app
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from taildir.errors import NotificationSourceClosed, SetupError
from taildir.logging_config import setup_logging
from taildir.options import WatcherType, WatchOption, glob_filter, regex_filter
from taildir.watcher import watch_dir


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taildir",
        description="Follow every matching file below a directory and print new lines",
    )
    parser.add_argument("directory", type=Path, help="Directory to watch recursively")
    parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds to coalesce change events (default: 2, or TAILDIR_DEBOUNCE env var)",
    )
    parser.add_argument(
        "--poll",
        action="store_true",
        help="Use the polling watcher instead of native file system events",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=1.0,
        help="Seconds between snapshots when polling (default: 1)",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        metavar="GLOB",
        help="Only follow files whose name matches (repeatable, gitignore syntax)",
    )
    parser.add_argument(
        "--grep",
        default=None,
        metavar="REGEX",
        help="Only print lines matching this regular expression",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for taildir's own logs (default: .taildir/logs, or TAILDIR_LOG_DIR)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def option_from_args(args: argparse.Namespace) -> WatchOption:
    """Build a WatchOption from parsed arguments and environment defaults."""
    debounce = args.debounce
    if debounce is None:
        debounce = float(os.environ.get("TAILDIR_DEBOUNCE", "2"))

    option = WatchOption(
        directory=args.directory,
        debounce_seconds=debounce,
        watcher_type=WatcherType.POLL if args.poll else WatcherType.RECOMMENDED,
        poll_interval=args.poll_interval,
    )
    if args.include:
        option = option.with_file_filter(glob_filter(args.include))
    if args.grep:
        option = option.with_line_filter(regex_filter(args.grep))
    return option


def print_lines(name: str, lines: list[str]) -> None:
    for line in lines:
        if not line.endswith("\n"):
            line += "\n"
        sys.stdout.write(f"[{name}] {line}")
    sys.stdout.flush()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_dir = args.log_dir
    if log_dir is None and os.environ.get("TAILDIR_LOG_DIR"):
        log_dir = Path(os.environ["TAILDIR_LOG_DIR"])

    logger = setup_logging(
        log_dir=log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=True,
    )

    try:
        option = option_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    logger.info(f"Starting taildir on {option.directory}")
    try:
        watch_dir(option, print_lines)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0
    except (SetupError, NotificationSourceClosed) as e:
        logger.error(f"taildir stopped: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
