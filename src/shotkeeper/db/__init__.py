"""SQLite persistence for screenshots, tags and custom smart folders."""

from shotkeeper.db.migrations import MigrationRunner, get_connection, init_database
from shotkeeper.db.store import Screenshot, ScreenshotStore, SmartFolder, StoreError, Tag

__all__ = [
    "MigrationRunner",
    "Screenshot",
    "ScreenshotStore",
    "SmartFolder",
    "StoreError",
    "Tag",
    "get_connection",
    "init_database",
]
