"""
Pytest fixtures for taildir tests.

- watcher.py: log directories, callbacks, scripted notification source
"""
