"""Read-mostly directory over the file records of one (category, version) namespace."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import NoReturn

from indexstore.errors import (
    DirectoryClosedError,
    FileAlreadyExistsError,
    FileNotFoundInStoreError,
    UnsupportedOperationError,
)
from indexstore.schemas import FileRecord, NamespaceKey, now_millis
from indexstore.storage import FileStore
from indexstore.stream import RecordInput

logger = logging.getLogger(__name__)


class CacheState(StrEnum):
    EMPTY = "empty"
    POPULATED = "populated"


class VersionedDirectory:
    """Flat file namespace backed by a record store.

    The store is borrowed: the directory never opens or closes it. Metadata is
    cached per instance. Once ``list_files`` has populated the cache, the
    listing is served from it for the lifetime of the instance, so files added
    by another writer stay invisible until a new directory is created.
    """

    def __init__(self, store: FileStore, category: str, version: int) -> None:
        if not category.strip():
            raise ValueError("category must not be empty")
        if version < 0:
            raise ValueError("version must be >= 0")

        self.store = store
        self.category = category
        self.version = version
        self._files: dict[str, FileRecord] = {}
        self._cache_state = CacheState.EMPTY
        self._closed = False

    @property
    def namespace(self) -> NamespaceKey:
        return NamespaceKey(self.category, self.version)

    @property
    def cache_state(self) -> CacheState:
        return self._cache_state

    def list_files(self) -> set[str]:
        self._check_open()
        if self._cache_state == CacheState.POPULATED:
            logger.debug("directory list cache hit namespace=%s", self.namespace)
            return set(self._files)

        files: dict[str, FileRecord] = {}
        for record in self.store.query(self.category, self.version):
            if record.name in files:
                self._log_duplicate(record.name)
                continue
            files[record.name] = record
        self._files = files
        self._cache_state = CacheState.POPULATED
        logger.info(
            "directory list category=%s version=%s files=%d",
            self.category,
            self.version,
            len(self._files),
        )
        return set(self._files)

    def file_exists(self, name: str) -> bool:
        self._check_open()
        logger.debug("directory exists namespace=%s name=%s", self.namespace, name)
        return len(self.store.query(self.category, self.version, name)) > 0

    def file_length(self, name: str) -> int:
        return self._lookup(name).length

    def file_modified(self, name: str) -> int:
        return self._lookup(name).last_modified

    def delete_file(self, name: str) -> None:
        self._check_open()
        records = self.store.query(self.category, self.version, name)
        for record in records:
            self.store.delete(record)
        self._files.pop(name, None)
        logger.info(
            "directory delete namespace=%s name=%s removed=%d",
            self.namespace,
            name,
            len(records),
        )

    def rename_file(self, src: str, dst: str) -> None:
        record = self._lookup(src)
        if src == dst:
            return
        if self.store.query(self.category, self.version, dst):
            raise FileAlreadyExistsError(
                f"cannot rename {src!r}: {self.namespace}-{dst} already exists"
            )

        renamed = self.store.update(record, name=dst)
        self._files.pop(src, None)
        self._files[dst] = renamed
        logger.info("directory rename namespace=%s from=%s to=%s", self.namespace, src, dst)

    def touch_file(self, name: str) -> None:
        record = self._lookup(name)
        touched = self.store.update(record, last_modified=now_millis())
        if name in self._files:
            self._files[name] = touched

    def open_input(self, name: str) -> RecordInput:
        self._check_open()
        record = self._files.get(name)
        if record is None:
            record = self._lookup(name)
            self._files[name] = record
        return RecordInput(self.store, record)

    def create_output(self, name: str) -> NoReturn:
        logger.warning(
            "directory create_output rejected namespace=%s name=%s", self.namespace, name
        )
        raise UnsupportedOperationError(
            f"{type(self).__name__} is read-only; cannot create {name!r}"
        )

    def close(self) -> None:
        self._files.clear()
        self._cache_state = CacheState.EMPTY
        self._closed = True

    def __enter__(self) -> VersionedDirectory:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(category={self.category!r}, version={self.version!r})"

    def _lookup(self, name: str) -> FileRecord:
        self._check_open()
        records = self.store.query(self.category, self.version, name)
        if not records:
            logger.warning(
                "failed to fetch '%s-%s-%s', not exist", self.category, self.version, name
            )
            raise FileNotFoundInStoreError(self.category, self.version, name)
        if len(records) > 1:
            self._log_duplicate(name, count=len(records))
        return records[0]

    def _log_duplicate(self, name: str, count: int = 2) -> None:
        logger.warning(
            "duplicate records namespace=%s name=%s count=%d, using first",
            self.namespace,
            name,
            count,
        )

    def _check_open(self) -> None:
        if self._closed:
            raise DirectoryClosedError(f"{self!r} is closed")
