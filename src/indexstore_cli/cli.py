from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import typer

from indexstore import (
    AppConfig,
    IndexStoreError,
    SqliteFileStore,
    VersionedDirectory,
    load_config,
)
from indexstore.config import default_config
from indexstore.loader import load_directory

app = typer.Typer(help="indexstore CLI")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(debug_app, name="debug")

_COPY_BLOCK_SIZE = 64 * 1024


def _category_option() -> typer.models.OptionInfo:
    return typer.Option(None, "--category", "-c", help="Index category.")


def _version_option() -> typer.models.OptionInfo:
    return typer.Option(
        None,
        "--version",
        "-v",
        help="Index version (defaults to the latest stored version).",
        min=0,
    )


def _db_path_option() -> typer.models.OptionInfo:
    return typer.Option(None, "--db-path", help="SQLite DB file path (overrides config).")


def _config_option() -> typer.models.OptionInfo:
    return typer.Option(
        None,
        "--config",
        help="Config file path (YAML or JSON).",
        exists=True,
        dir_okay=False,
        readable=True,
    )


@app.command("load")
def load(
    source_dir: Path = typer.Argument(
        ...,
        help="Directory holding a built index generation.",
        exists=True,
        file_okay=False,
        readable=True,
    ),
    category: str | None = _category_option(),
    version: int | None = typer.Option(
        None, "--version", "-v", help="Index version to create.", min=0
    ),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Copy an on-disk index into the store as a new (category, version)."""
    config = _load_app_config(config_path)
    store = _open_store(config, db_path)
    category = _resolve_category(config, category)
    if version is None:
        latest = store.latest_version(category)
        version = 0 if latest is None else latest + 1

    try:
        records = load_directory(store, source_dir, category=category, version=version)
    except (IndexStoreError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    total_bytes = sum(record.length for record in records)
    typer.echo(
        f"loaded category={category} version={version} files={len(records)} bytes={total_bytes}"
    )


@app.command("ls")
def list_files(
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """List the files of an index generation."""
    with _open_directory(config_path, db_path, category, version) as directory:
        names = sorted(directory.list_files())
        try:
            rows = [_stat_row(directory, name) for name in names]
        except IndexStoreError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(_render_table(rows))
    typer.echo(f"files={len(rows)}")


@app.command("stat")
def stat_file(
    name: str = typer.Argument(..., help="File name."),
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Show length and modification time of one file."""
    with _open_directory(config_path, db_path, category, version) as directory:
        try:
            row = _stat_row(directory, name)
        except IndexStoreError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(_render_table([row]))


@app.command("cat")
def cat_file(
    name: str = typer.Argument(..., help="File name."),
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Write the raw content of one file to stdout."""
    stdout = typer.get_binary_stream("stdout")
    with _open_directory(config_path, db_path, category, version) as directory:
        try:
            with directory.open_input(name) as stream:
                while block := stream.read(_COPY_BLOCK_SIZE):
                    stdout.write(block)
        except IndexStoreError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc
    stdout.flush()


@app.command("touch")
def touch_file(
    name: str = typer.Argument(..., help="File name."),
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Set the modification time of one file to now."""
    with _open_directory(config_path, db_path, category, version) as directory:
        try:
            directory.touch_file(name)
            modified = directory.file_modified(name)
        except IndexStoreError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(f"touched {name} modified={_format_millis(modified)}")


@app.command("rm")
def remove_file(
    name: str = typer.Argument(..., help="File name."),
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Delete one file (no-op when it does not exist)."""
    with _open_directory(config_path, db_path, category, version) as directory:
        directory.delete_file(name)

    typer.echo(f"removed {name}")


@app.command("mv")
def move_file(
    src: str = typer.Argument(..., help="Current file name."),
    dst: str = typer.Argument(..., help="New file name."),
    category: str | None = _category_option(),
    version: int | None = _version_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Rename one file within its index generation."""
    with _open_directory(config_path, db_path, category, version) as directory:
        try:
            directory.rename_file(src, dst)
        except IndexStoreError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    typer.echo(f"renamed {src} -> {dst}")


@app.command("versions")
def list_versions(
    category: str | None = _category_option(),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """List stored versions of a category."""
    config = _load_app_config(config_path)
    store = _open_store(config, db_path)
    category = _resolve_category(config, category)
    versions = store.list_versions(category)
    for version in versions:
        typer.echo(str(version))
    typer.echo(f"category={category} versions={len(versions)}")


@app.command("drop")
def drop_version(
    category: str | None = _category_option(),
    version: int = typer.Option(..., "--version", "-v", help="Index version to drop.", min=0),
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Delete every file of one index generation."""
    config = _load_app_config(config_path)
    store = _open_store(config, db_path)
    category = _resolve_category(config, category)
    removed = store.drop_version(category, version)
    typer.echo(f"dropped category={category} version={version} files={removed}")


@debug_app.command("storage")
def debug_storage(
    db_path: Path | None = _db_path_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Run storage smoke test."""
    config = _load_app_config(config_path)
    store = _open_store(config, db_path)

    category = "debug"
    version = (store.latest_version(category) or 0) + 1
    payload = b"storage smoke payload"
    store.put_file(category, version, "smoke.bin", payload)

    with VersionedDirectory(store, category, version) as directory:
        with directory.open_input("smoke.bin") as stream:
            read_back = stream.read()
        listed = directory.list_files()

    store.drop_version(category, version)

    if read_back != payload or listed != {"smoke.bin"}:
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo("storage ok")


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is None:
        config = default_config()
    else:
        try:
            config = load_config(config_path)
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=1) from exc

    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return config


def _open_store(config: AppConfig, db_path: Path | None) -> SqliteFileStore:
    return SqliteFileStore(
        db_path if db_path is not None else config.store.db_path,
        chunk_size=config.store.chunk_size,
    )


def _resolve_category(config: AppConfig, category: str | None) -> str:
    resolved = category or config.defaults.category
    if not resolved:
        typer.echo("missing --category (and no defaults.category in config)", err=True)
        raise typer.Exit(code=1)
    return resolved


def _open_directory(
    config_path: Path | None,
    db_path: Path | None,
    category: str | None,
    version: int | None,
) -> VersionedDirectory:
    config = _load_app_config(config_path)
    store = _open_store(config, db_path)
    category = _resolve_category(config, category)
    if version is None:
        version = config.defaults.version
    if version is None:
        version = store.latest_version(category)
    if version is None:
        typer.echo(f"no versions stored for category={category}", err=True)
        raise typer.Exit(code=1)
    return VersionedDirectory(store, category, version)


def _stat_row(directory: VersionedDirectory, name: str) -> tuple[str, str, str]:
    return (
        name,
        str(directory.file_length(name)),
        _format_millis(directory.file_modified(name)),
    )


def _format_millis(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def _render_table(rows: list[tuple[str, str, str]]) -> str:
    if not rows:
        return "no files found"

    headers = ("name", "length", "modified")
    widths = [
        max(len(headers[column]), *(len(row[column]) for row in rows))
        for column in range(len(headers))
    ]

    def _line(values: tuple[str, str, str]) -> str:
        return " | ".join(
            value.ljust(widths[index]) for index, value in enumerate(values)
        )

    divider = "-+-".join("-" * width for width in widths)
    body = [_line(headers), divider]
    body.extend(_line(row) for row in rows)
    return "\n".join(body)


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
