"""Versioned, read-mostly file directory backed by a record store."""

from .config import AppConfig, load_config
from .directory import CacheState, VersionedDirectory
from .errors import (
    DirectoryClosedError,
    FileAlreadyExistsError,
    FileNotFoundInStoreError,
    IndexStoreError,
    StoreError,
    StoreFailureError,
    StoreUnavailableError,
    UnsupportedOperationError,
)
from .schemas import FileRecord, NamespaceKey
from .storage import FileStore, SqliteFileStore
from .stream import RecordInput

__all__ = [
    "AppConfig",
    "CacheState",
    "DirectoryClosedError",
    "FileAlreadyExistsError",
    "FileNotFoundInStoreError",
    "FileRecord",
    "FileStore",
    "IndexStoreError",
    "NamespaceKey",
    "RecordInput",
    "SqliteFileStore",
    "StoreError",
    "StoreFailureError",
    "StoreUnavailableError",
    "UnsupportedOperationError",
    "VersionedDirectory",
    "load_config",
]
