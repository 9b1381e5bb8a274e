"""Storage layer: the FileStore protocol and its SQLite implementation."""

from .base import FileStore
from .repo import DEFAULT_CHUNK_SIZE, SqliteFileStore

__all__ = ["DEFAULT_CHUNK_SIZE", "FileStore", "SqliteFileStore"]
