from __future__ import annotations

from typer.testing import CliRunner

from indexstore import FileNotFoundInStoreError, SqliteFileStore, VersionedDirectory
from indexstore_cli.cli import app


def _seed(tmp_path) -> tuple[str, SqliteFileStore]:
    db_path = tmp_path / "storage.db"
    store = SqliteFileStore(db_path)
    store.put_file("articles", 3, "segments.gen", b"g" * 128, last_modified=1_000)
    store.put_file("articles", 3, "_0.cfs", b"c" * 4096, last_modified=2_000)
    return str(db_path), store


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--help" in result.output


def test_cli_load_then_ls_latest_version(tmp_path) -> None:
    source = tmp_path / "index"
    source.mkdir()
    (source / "segments.gen").write_bytes(b"g" * 128)
    (source / "_0.cfs").write_bytes(b"c" * 4096)
    db_path = str(tmp_path / "storage.db")
    runner = CliRunner()

    first = runner.invoke(app, ["load", str(source), "--category", "articles", "--db-path", db_path])
    second = runner.invoke(app, ["load", str(source), "-c", "articles", "--db-path", db_path])
    listed = runner.invoke(app, ["ls", "-c", "articles", "--db-path", db_path])
    versions = runner.invoke(app, ["versions", "-c", "articles", "--db-path", db_path])

    assert first.exit_code == 0
    assert "version=0 files=2 bytes=4224" in first.output
    assert "version=1 files=2" in second.output
    assert listed.exit_code == 0
    assert "segments.gen" in listed.output
    assert "4096" in listed.output
    assert "files=2" in listed.output
    assert "category=articles versions=2" in versions.output


def test_cli_stat_and_missing_file(tmp_path) -> None:
    db_path, _ = _seed(tmp_path)
    runner = CliRunner()

    found = runner.invoke(app, ["stat", "_0.cfs", "-c", "articles", "-v", "3", "--db-path", db_path])
    missing = runner.invoke(
        app, ["stat", "missing.txt", "-c", "articles", "-v", "3", "--db-path", db_path]
    )

    assert found.exit_code == 0
    assert "_0.cfs" in found.output
    assert "4096" in found.output
    assert missing.exit_code == 1


def test_cli_cat_writes_raw_bytes(tmp_path) -> None:
    db_path, _ = _seed(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["cat", "segments.gen", "-c", "articles", "--db-path", db_path])

    assert result.exit_code == 0
    assert result.stdout_bytes == b"g" * 128


def test_cli_mv_touch_rm(tmp_path) -> None:
    db_path, store = _seed(tmp_path)
    runner = CliRunner()
    common = ["-c", "articles", "-v", "3", "--db-path", db_path]

    moved = runner.invoke(app, ["mv", "_0.cfs", "_1.cfs", *common])
    clash = runner.invoke(app, ["mv", "_1.cfs", "segments.gen", *common])
    touched = runner.invoke(app, ["touch", "_1.cfs", *common])
    removed = runner.invoke(app, ["rm", "segments.gen", *common])
    removed_again = runner.invoke(app, ["rm", "segments.gen", *common])

    assert moved.exit_code == 0
    assert clash.exit_code == 1
    assert touched.exit_code == 0
    assert removed.exit_code == 0
    assert removed_again.exit_code == 0
    assert [record.name for record in store.query("articles", 3)] == ["_1.cfs"]
    assert store.query("articles", 3, "_1.cfs")[0].last_modified > 2_000


def test_cli_drop_and_config_defaults(tmp_path) -> None:
    db_path, store = _seed(tmp_path)
    config_path = tmp_path / "config.json"
    config_path.write_text(
        f'{{"store": {{"db_path": "{db_path}"}}, "defaults": {{"category": "articles"}}}}',
        encoding="utf-8",
    )
    runner = CliRunner()

    listed = runner.invoke(app, ["ls", "--config", str(config_path)])
    dropped = runner.invoke(app, ["drop", "-v", "3", "--config", str(config_path)])

    assert listed.exit_code == 0
    assert "files=2" in listed.output
    assert dropped.exit_code == 0
    assert "files=2" in dropped.output
    assert store.list_versions("articles") == []


def test_cli_requires_category(tmp_path) -> None:
    runner = CliRunner()

    result = runner.invoke(app, ["ls", "--db-path", str(tmp_path / "storage.db")])

    assert result.exit_code == 1


def test_cli_debug_storage_smoke(tmp_path) -> None:
    runner = CliRunner()
    db_path = tmp_path / "storage.db"

    result = runner.invoke(app, ["debug", "storage", "--db-path", str(db_path)])

    assert result.exit_code == 0
    assert "storage ok" in result.output
    assert db_path.exists()


def test_cli_ls_reports_file_removed_during_listing(tmp_path, monkeypatch) -> None:
    db_path, _ = _seed(tmp_path)
    runner = CliRunner()

    def _vanished(self, name: str) -> int:
        raise FileNotFoundInStoreError(self.category, self.version, name)

    monkeypatch.setattr(VersionedDirectory, "file_length", _vanished)

    result = runner.invoke(app, ["ls", "-c", "articles", "-v", "3", "--db-path", db_path])

    assert result.exit_code == 1
    assert not isinstance(result.exception, FileNotFoundInStoreError)
