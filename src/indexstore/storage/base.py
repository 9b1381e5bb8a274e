from __future__ import annotations

from typing import Protocol

from indexstore.schemas import FileRecord


class FileStore(Protocol):
    """Persistence collaborator the directory and the stream reader depend on.

    Records carry the chunk size their content was written with; readers
    use that, never the size the store currently writes with.
    """

    def query(self, category: str, version: int, name: str | None = None) -> list[FileRecord]:
        """Return records matching the namespace, and the name when given."""

    def delete(self, record: FileRecord) -> None:
        """Remove the record and its content."""

    def update(
        self,
        record: FileRecord,
        *,
        name: str | None = None,
        last_modified: int | None = None,
    ) -> FileRecord:
        """Persist a name and/or timestamp change and return the updated record."""

    def read_chunk(self, record: FileRecord, index: int) -> bytes:
        """Return the content chunk at ``index`` (empty past the last chunk)."""
