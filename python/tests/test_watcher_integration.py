"""
End-to-end tests with the real watchdog polling observer.

NOTE: These are timing based. The polling observer snapshots every 0.1s and
the debounce window is 0.1s, so each check waits up to a few seconds.
"""

import asyncio
import os
import shutil

import pytest

from taildir.errors import NotificationSourceClosed
from taildir.options import WatcherType, WatchOption, contains_filter, glob_filter
from taildir.watcher import DirectoryTailer, watch_dir_async
from tests.fixtures.watcher import append, wait_until


def poll_option(directory):
    return WatchOption(
        directory,
        debounce_seconds=0.1,
        watcher_type=WatcherType.POLL,
        poll_interval=0.1,
    )


def delivered_lines(mock_callback, name):
    lines = []
    for args, _ in mock_callback.call_args_list:
        if args[0] == name:
            lines.extend(args[1])
    return lines


async def start(tailer):
    task = asyncio.create_task(tailer.run())
    assert await wait_until(tailer.is_running)
    # Let the observer take its first snapshot
    await asyncio.sleep(0.3)
    return task


async def shutdown(tailer, task):
    tailer.stop()
    await asyncio.wait_for(task, timeout=5.0)


@pytest.mark.asyncio
async def test_selected_file_lines_are_delivered(log_dir, mock_callback):
    selected = log_dir / "a.log"
    ignored = log_dir / "a.tmp"
    selected.write_text("before\n")
    ignored.write_text("")
    option = poll_option(log_dir).with_file_filter(glob_filter(["*.log"]))
    tailer = DirectoryTailer(option, mock_callback)
    task = await start(tailer)

    try:
        append(selected, "hello\n")
        append(ignored, "hello\n")

        assert await wait_until(lambda: mock_callback.called)
        await asyncio.sleep(0.5)

        mock_callback.assert_called_once_with("a.log", ["hello\n"])
    finally:
        await shutdown(tailer, task)


@pytest.mark.asyncio
async def test_line_filter_end_to_end(log_dir, sample_log, mock_callback):
    option = poll_option(log_dir).with_line_filter(contains_filter("ERROR"))
    tailer = DirectoryTailer(option, mock_callback)
    task = await start(tailer)

    try:
        append(sample_log, "info\nERROR x\n")

        assert await wait_until(lambda: mock_callback.called)
        assert delivered_lines(mock_callback, "app.log") == ["ERROR x\n"]
    finally:
        await shutdown(tailer, task)


@pytest.mark.asyncio
async def test_truncation_end_to_end(log_dir, sample_log, mock_callback):
    tailer = DirectoryTailer(poll_option(log_dir), mock_callback)
    task = await start(tailer)

    try:
        with open(sample_log, "wb"):
            pass
        append(sample_log, "new\n")

        assert await wait_until(lambda: "new\n" in delivered_lines(mock_callback, "app.log"))
        assert delivered_lines(mock_callback, "app.log") == ["new\n"]
    finally:
        await shutdown(tailer, task)


@pytest.mark.asyncio
async def test_rotation_end_to_end(log_dir, sample_log, mock_callback):
    tailer = DirectoryTailer(poll_option(log_dir), mock_callback)
    task = await start(tailer)

    try:
        os.replace(sample_log, log_dir / "app.log.1")
        sample_log.write_text("rotated\n")

        assert await wait_until(lambda: "rotated\n" in delivered_lines(mock_callback, "app.log"))
        assert "old line 1\n" not in delivered_lines(mock_callback, "app.log")
    finally:
        await shutdown(tailer, task)


@pytest.mark.asyncio
async def test_file_created_in_subdirectory(log_dir, mock_callback):
    tailer = DirectoryTailer(poll_option(log_dir), mock_callback)
    task = await start(tailer)

    try:
        nested = log_dir / "worker-1"
        nested.mkdir()
        (nested / "worker.log").write_text("started\n")

        assert await wait_until(lambda: "started\n" in delivered_lines(mock_callback, "worker.log"))
    finally:
        await shutdown(tailer, task)


@pytest.mark.asyncio
async def test_deleting_watched_directory_ends_watch(tmp_path, mock_callback):
    root = (tmp_path / "doomed").resolve()
    root.mkdir()
    (root / "app.log").write_text("")

    task = asyncio.create_task(watch_dir_async(poll_option(root), mock_callback))
    await asyncio.sleep(0.3)
    shutil.rmtree(root)

    with pytest.raises(NotificationSourceClosed):
        await asyncio.wait_for(task, timeout=5.0)
