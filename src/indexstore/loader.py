from __future__ import annotations

import logging
from pathlib import Path

from indexstore.errors import FileAlreadyExistsError
from indexstore.schemas import FileRecord
from indexstore.storage import SqliteFileStore

logger = logging.getLogger(__name__)


def load_directory(
    store: SqliteFileStore,
    source_dir: str | Path,
    *,
    category: str,
    version: int,
) -> list[FileRecord]:
    """Copy the regular files of ``source_dir`` into a new index generation."""
    source = Path(source_dir)
    if not source.is_dir():
        raise ValueError(f"source directory does not exist: {source}")

    if store.query(category, version):
        raise FileAlreadyExistsError(f"namespace {category}-{version} is not empty")

    paths = sorted(path for path in source.iterdir() if path.is_file())
    records: list[FileRecord] = []
    try:
        for path in paths:
            record = store.put_file(
                category,
                version,
                path.name,
                path.read_bytes(),
                last_modified=int(path.stat().st_mtime * 1000),
            )
            logger.info(
                "loader stored category=%s version=%s name=%s length=%d",
                category,
                version,
                record.name,
                record.length,
            )
            records.append(record)
    except Exception:
        logger.warning(
            "loader failed category=%s version=%s stored=%d, dropping partial generation",
            category,
            version,
            len(records),
        )
        store.drop_version(category, version)
        raise

    logger.info(
        "loader done category=%s version=%s files=%d source=%s",
        category,
        version,
        len(records),
        source,
    )
    return records
