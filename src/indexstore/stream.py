from __future__ import annotations

import logging

from indexstore.schemas import FileRecord
from indexstore.storage import FileStore

logger = logging.getLogger(__name__)


class RecordInput:
    """Random-access reader over the content of a single file record.

    Content is fetched from the store one chunk at a time and only the current
    chunk is buffered. Reads never go past the record's declared length.
    """

    def __init__(self, store: FileStore, record: FileRecord) -> None:
        self.store = store
        self.record = record
        self._position = 0
        self._chunk_index: int | None = None
        self._chunk = b""
        self._closed = False

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def length(self) -> int:
        return self.record.length

    @property
    def closed(self) -> bool:
        return self._closed

    def tell(self) -> int:
        self._check_open()
        return self._position

    def seek(self, position: int) -> int:
        self._check_open()
        if position < 0 or position > self.length:
            raise ValueError(f"seek position {position} outside [0, {self.length}]")
        self._position = position
        return self._position

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        remaining = self.length - self._position
        if size < 0 or size > remaining:
            size = remaining

        parts: list[bytes] = []
        while size > 0:
            chunk_index, offset = divmod(self._position, self.record.chunk_size)
            chunk = self._load_chunk(chunk_index)
            piece = chunk[offset : offset + size]
            if not piece:
                raise EOFError(
                    f"content of {self.name!r} ends before declared length {self.length}"
                )
            parts.append(piece)
            self._position += len(piece)
            size -= len(piece)
        return b"".join(parts)

    def read_byte(self) -> int:
        data = self.read_bytes(1)
        return data[0]

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("count must be >= 0")
        self._check_open()
        if count > self.length - self._position:
            raise EOFError(
                f"read past end of {self.name!r}: position={self._position} "
                f"count={count} length={self.length}"
            )
        return self.read(count)

    def clone(self) -> RecordInput:
        self._check_open()
        copy = RecordInput(self.store, self.record)
        copy._position = self._position
        return copy

    def close(self) -> None:
        self._closed = True
        self._chunk = b""
        self._chunk_index = None

    def __enter__(self) -> RecordInput:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _load_chunk(self, index: int) -> bytes:
        if self._chunk_index != index:
            logger.debug("record_input fetch name=%s chunk=%d", self.name, index)
            self._chunk = self.store.read_chunk(self.record, index)
            self._chunk_index = index
        return self._chunk

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed input {self.name!r}")
