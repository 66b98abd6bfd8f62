"""
Tests for the watchdog notification source and observer selection.
"""

import asyncio
from pathlib import Path

import pytest

from taildir.errors import NotificationSourceClosed, SetupError
from taildir.options import WatcherType
from taildir.watcher import ChangeKind, WatchdogNotificationSource
from taildir.watcher import source as source_module
from taildir.watcher.source import on_drive_mount, resolve_watcher_type, running_under_wsl
from tests.fixtures.watcher import append


# ============================================================================
# OBSERVER SELECTION
# ============================================================================


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/mnt/c", True),
        ("/mnt/c/logs/app", True),
        ("/mnt/d/", True),
        ("/mnt/data/logs", False),
        ("/home/user/logs", False),
        ("/mnt", False),
    ],
)
def test_on_drive_mount(path, expected):
    assert on_drive_mount(Path(path)) is expected


@pytest.mark.parametrize(
    "distro, release, expected",
    [
        ("Ubuntu", "6.1.0-generic", True),
        (None, "5.15.153.1-microsoft-standard-WSL2", True),
        (None, "6.1.0-generic", False),
    ],
)
def test_running_under_wsl(monkeypatch, distro, release, expected):
    if distro:
        monkeypatch.setenv("WSL_DISTRO_NAME", distro)
    else:
        monkeypatch.delenv("WSL_DISTRO_NAME", raising=False)
    monkeypatch.setattr(source_module.platform, "release", lambda: release)
    running_under_wsl.cache_clear()
    try:
        assert running_under_wsl() is expected
    finally:
        running_under_wsl.cache_clear()


def test_poll_is_always_poll(monkeypatch):
    monkeypatch.setattr(source_module, "running_under_wsl", lambda: False)
    assert resolve_watcher_type(WatcherType.POLL, Path("/var/log")) == WatcherType.POLL


def test_recommended_outside_wsl(monkeypatch):
    monkeypatch.setattr(source_module, "running_under_wsl", lambda: False)
    assert resolve_watcher_type(WatcherType.RECOMMENDED, Path("/mnt/c/logs")) == WatcherType.RECOMMENDED


def test_recommended_falls_back_to_poll_on_wsl_windows_mount(monkeypatch):
    monkeypatch.setattr(source_module, "running_under_wsl", lambda: True)
    assert resolve_watcher_type(WatcherType.RECOMMENDED, Path("/mnt/c/logs")) == WatcherType.POLL
    assert resolve_watcher_type(WatcherType.RECOMMENDED, Path("/home/me/logs")) == WatcherType.RECOMMENDED


# ============================================================================
# LIFECYCLE
# ============================================================================


def test_negative_debounce_rejected():
    with pytest.raises(ValueError):
        WatchdogNotificationSource(debounce_seconds=-1)


@pytest.mark.asyncio
async def test_receive_before_arm_raises():
    source = WatchdogNotificationSource()
    with pytest.raises(NotificationSourceClosed):
        await source.receive()


@pytest.mark.asyncio
async def test_arm_twice_raises(log_dir):
    source = WatchdogNotificationSource(WatcherType.POLL, debounce_seconds=0.05, poll_interval=0.1)
    source.arm(log_dir)
    try:
        assert source.is_running()
        with pytest.raises(RuntimeError, match="already armed"):
            source.arm(log_dir)
    finally:
        source.close()
    assert not source.is_running()


@pytest.mark.asyncio
async def test_arm_after_close_raises(log_dir):
    source = WatchdogNotificationSource(WatcherType.POLL)
    source.close()
    with pytest.raises(SetupError):
        source.arm(log_dir)


@pytest.mark.asyncio
async def test_arm_missing_directory_raises_setup_error(tmp_path):
    source = WatchdogNotificationSource(WatcherType.RECOMMENDED)
    try:
        with pytest.raises(SetupError):
            source.arm(tmp_path / "missing")
    finally:
        source.close()


@pytest.mark.asyncio
async def test_close_wakes_pending_receive(log_dir):
    source = WatchdogNotificationSource(WatcherType.POLL, debounce_seconds=0.05, poll_interval=0.1)
    source.arm(log_dir)

    pending = asyncio.create_task(source.receive())
    await asyncio.sleep(0.05)
    source.close()

    with pytest.raises(NotificationSourceClosed):
        await asyncio.wait_for(pending, timeout=2.0)


@pytest.mark.asyncio
async def test_close_is_idempotent(log_dir):
    source = WatchdogNotificationSource(WatcherType.POLL, poll_interval=0.1)
    source.arm(log_dir)
    source.close()
    source.close()


# ============================================================================
# DELIVERY (real polling observer)
# ============================================================================


@pytest.mark.asyncio
async def test_delivers_debounced_write(log_dir, sample_log):
    source = WatchdogNotificationSource(WatcherType.POLL, debounce_seconds=0.1, poll_interval=0.1)
    source.arm(log_dir)
    try:
        await asyncio.sleep(0.2)
        append(sample_log, "hello\n")

        notification = await asyncio.wait_for(source.receive(), timeout=3.0)

        assert notification.path == sample_log
        assert notification.kind in (ChangeKind.WRITE, ChangeKind.CREATE)
    finally:
        source.close()


@pytest.mark.asyncio
async def test_root_deletion_closes_source(tmp_path):
    import shutil

    root = (tmp_path / "doomed").resolve()
    root.mkdir()
    source = WatchdogNotificationSource(WatcherType.POLL, debounce_seconds=0.05, poll_interval=0.1)
    source.arm(root)
    try:
        await asyncio.sleep(0.2)
        shutil.rmtree(root)

        with pytest.raises(NotificationSourceClosed, match="removed"):
            await asyncio.wait_for(_drain(source), timeout=5.0)
    finally:
        source.close()


async def _drain(source):
    while True:
        await source.receive()
