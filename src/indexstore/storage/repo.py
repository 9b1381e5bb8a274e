from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from indexstore.errors import FileAlreadyExistsError, StoreFailureError, StoreUnavailableError
from indexstore.schemas import DEFAULT_CHUNK_SIZE, FileRecord, now_millis

logger = logging.getLogger(__name__)


class SqliteFileStore:
    def __init__(self, db_path: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size
        self._init_schema()

    def query(self, category: str, version: int, name: str | None = None) -> list[FileRecord]:
        query = """
        SELECT id, category, version, name, length, chunk_size, last_modified
        FROM files
        WHERE category = ? AND version = ?
        """
        params: list[object] = [category, version]
        if name is not None:
            query += " AND name = ?"
            params.append(name)
        query += " ORDER BY id ASC"

        with self._session() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()

        return [self._row_to_file_record(row) for row in rows]

    def delete(self, record: FileRecord) -> None:
        record_id = self._require_id(record)
        with self._session() as conn:
            conn.execute("DELETE FROM file_chunks WHERE file_id = ?", (record_id,))
            conn.execute("DELETE FROM files WHERE id = ?", (record_id,))
        logger.info(
            "store delete category=%s version=%s name=%s",
            record.category,
            record.version,
            record.name,
        )

    def update(
        self,
        record: FileRecord,
        *,
        name: str | None = None,
        last_modified: int | None = None,
    ) -> FileRecord:
        record_id = self._require_id(record)
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = name
        if last_modified is not None:
            changes["last_modified"] = last_modified
        if not changes:
            return record

        updated = FileRecord.model_validate({**record.model_dump(), **changes})
        with self._session() as conn:
            try:
                conn.execute(
                    "UPDATE files SET name = ?, last_modified = ? WHERE id = ?",
                    (updated.name, updated.last_modified, record_id),
                )
            except sqlite3.IntegrityError as exc:
                raise FileAlreadyExistsError(
                    f"{updated.namespace}-{updated.name} already exists"
                ) from exc
        return updated

    def read_chunk(self, record: FileRecord, index: int) -> bytes:
        if index < 0:
            raise ValueError("chunk index must be >= 0")

        record_id = self._require_id(record)
        with self._session() as conn:
            row = conn.execute(
                "SELECT data FROM file_chunks WHERE file_id = ? AND seq = ?",
                (record_id, index),
            ).fetchone()

        if row is None:
            return b""
        return bytes(row["data"])

    def put_file(
        self,
        category: str,
        version: int,
        name: str,
        data: bytes,
        *,
        last_modified: int | None = None,
    ) -> FileRecord:
        record = FileRecord(
            category=category,
            version=version,
            name=name,
            length=len(data),
            chunk_size=self.chunk_size,
            last_modified=last_modified if last_modified is not None else now_millis(),
        )
        chunks = [
            data[offset : offset + self.chunk_size]
            for offset in range(0, len(data), self.chunk_size)
        ]
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO files (category, version, name, length, chunk_size, last_modified)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.category,
                    record.version,
                    record.name,
                    record.length,
                    record.chunk_size,
                    record.last_modified,
                ),
            )
            record_id = cursor.lastrowid
            if chunks:
                conn.executemany(
                    "INSERT INTO file_chunks (file_id, seq, data) VALUES (?, ?, ?)",
                    [(record_id, seq, chunk) for seq, chunk in enumerate(chunks)],
                )
        return record.model_copy(update={"record_id": record_id})

    def list_versions(self, category: str) -> list[int]:
        query = """
        SELECT DISTINCT version
        FROM files
        WHERE category = ?
        ORDER BY version ASC
        """
        with self._session() as conn:
            rows = conn.execute(query, (category,)).fetchall()

        return [int(row["version"]) for row in rows]

    def latest_version(self, category: str) -> int | None:
        versions = self.list_versions(category)
        if not versions:
            return None
        return versions[-1]

    def drop_version(self, category: str, version: int) -> int:
        with self._session() as conn:
            conn.execute(
                """
                DELETE FROM file_chunks
                WHERE file_id IN (SELECT id FROM files WHERE category = ? AND version = ?)
                """,
                (category, version),
            )
            cursor = conn.execute(
                "DELETE FROM files WHERE category = ? AND version = ?",
                (category, version),
            )
            removed = cursor.rowcount
        logger.info(
            "store drop_version category=%s version=%s removed=%d", category, version, removed
        )
        return removed

    def _init_schema(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        schema = schema_path.read_text(encoding="utf-8")
        with self._session() as conn:
            conn.executescript(schema)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"cannot open store {self.db_path}: {exc}") from exc

        try:
            with conn:
                yield conn
        except sqlite3.OperationalError as exc:
            raise StoreUnavailableError(f"store unavailable: {exc}") from exc
        except sqlite3.Error as exc:
            raise StoreFailureError(f"store failure: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _require_id(record: FileRecord) -> int:
        if record.record_id is None:
            raise ValueError(f"record {record.name!r} has not been persisted")
        return record.record_id

    @staticmethod
    def _row_to_file_record(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            record_id=row["id"],
            category=row["category"],
            version=row["version"],
            name=row["name"],
            length=row["length"],
            chunk_size=row["chunk_size"],
            last_modified=row["last_modified"],
        )
