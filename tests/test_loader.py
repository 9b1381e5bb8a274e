from __future__ import annotations

import os

import pytest

from indexstore import FileAlreadyExistsError, SqliteFileStore, VersionedDirectory
from indexstore.loader import load_directory


def _write_index(path, files: dict[str, bytes]) -> None:
    path.mkdir(parents=True, exist_ok=True)
    for name, data in files.items():
        (path / name).write_bytes(data)


def test_load_directory_creates_generation(tmp_path) -> None:
    source = tmp_path / "index"
    _write_index(source, {"segments.gen": b"g" * 128, "_0.cfs": b"c" * 4096})
    (source / "nested").mkdir()
    os.utime(source / "_0.cfs", (1_600_000_000, 1_600_000_000))
    store = SqliteFileStore(tmp_path / "storage.db", chunk_size=1000)

    records = load_directory(store, source, category="articles", version=3)

    assert [record.name for record in records] == ["_0.cfs", "segments.gen"]
    directory = VersionedDirectory(store, "articles", 3)
    assert directory.list_files() == {"segments.gen", "_0.cfs"}
    assert directory.file_modified("_0.cfs") == 1_600_000_000_000
    with directory.open_input("_0.cfs") as stream:
        assert stream.read() == b"c" * 4096


def test_load_directory_refuses_existing_generation(tmp_path) -> None:
    source = tmp_path / "index"
    _write_index(source, {"a": b"1"})
    store = SqliteFileStore(tmp_path / "storage.db")
    load_directory(store, source, category="articles", version=1)

    with pytest.raises(FileAlreadyExistsError):
        load_directory(store, source, category="articles", version=1)

    load_directory(store, source, category="articles", version=2)
    assert store.list_versions("articles") == [1, 2]


def test_load_directory_requires_directory(tmp_path) -> None:
    store = SqliteFileStore(tmp_path / "storage.db")

    with pytest.raises(ValueError):
        load_directory(store, tmp_path / "missing", category="articles", version=1)


def test_failed_load_leaves_no_partial_generation(tmp_path, monkeypatch) -> None:
    source = tmp_path / "index"
    _write_index(source, {"a": b"1", "b": b"2", "c": b"3"})
    store = SqliteFileStore(tmp_path / "storage.db")
    original_put_file = store.put_file
    calls = {"count": 0}

    def _flaky_put_file(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk read failed")
        return original_put_file(*args, **kwargs)

    monkeypatch.setattr(store, "put_file", _flaky_put_file)

    with pytest.raises(OSError, match="disk read failed"):
        load_directory(store, source, category="articles", version=1)

    assert VersionedDirectory(store, "articles", 1).list_files() == set()
    assert store.list_versions("articles") == []

    monkeypatch.setattr(store, "put_file", original_put_file)
    records = load_directory(store, source, category="articles", version=1)
    assert [record.name for record in records] == ["a", "b", "c"]
