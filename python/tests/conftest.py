"""
Pytest configuration for taildir tests.

Specialized fixtures live in the fixtures/ directory:
- fixtures.watcher: log directories, callbacks, FakeSource
"""

import pytest

from taildir.handles import HandleTable

pytest_plugins = [
    "tests.fixtures.watcher",
]


@pytest.fixture
def table():
    """Empty HandleTable, closed after the test."""
    handles = HandleTable()
    yield handles
    handles.close()
