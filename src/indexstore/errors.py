"""Error taxonomy shared by the directory, the stream reader and the stores."""

from __future__ import annotations

import io


class IndexStoreError(Exception):
    """Base class for every error raised by indexstore."""


class FileNotFoundInStoreError(IndexStoreError, FileNotFoundError):
    def __init__(self, category: str, version: int, name: str) -> None:
        super().__init__(f"file not found: {category}-{version}-{name}")
        self.category = category
        self.version = version
        self.name = name


class FileAlreadyExistsError(IndexStoreError, FileExistsError):
    pass


class UnsupportedOperationError(IndexStoreError, io.UnsupportedOperation):
    pass


class DirectoryClosedError(IndexStoreError, ValueError):
    pass


class StoreError(IndexStoreError, OSError):
    """The persistence layer failed; raised unchanged through the directory."""


class StoreUnavailableError(StoreError):
    pass


class StoreFailureError(StoreError):
    pass
