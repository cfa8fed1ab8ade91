"""Tests for the command-line entrypoints."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sqlgrate import __version__
from sqlgrate.cli import app
from sqlgrate.storage.ledger import DirectoryLedgerStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("SQLGRATE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(project_dir: Path) -> Path:
    path = project_dir / "sqlgrate.yaml"
    path.write_text(
        "database:\n  executor: sqlite\n  name: app.sqlite3\n",
        encoding="utf-8",
    )
    return path


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"sqlgrate version {__version__}." in result.stdout


def test_migrate_and_rollback_with_sqlite(
    project_dir: Path, config_file: Path, add_migration, fetch_rows
) -> None:
    name = add_migration(
        "2024_01_01_00_00_00",
        "users",
        up="CREATE TABLE users (id INTEGER PRIMARY KEY);",
        down="DROP TABLE users;",
    )

    result = runner.invoke(app, ["migrate", "--config", str(config_file), "--env", "staging"])
    assert result.exit_code == 0, result.output
    assert f"Migrating {name}...done." in result.stdout
    assert (project_dir / "migrated" / "staging" / name).is_file()
    assert fetch_rows(project_dir / "app.sqlite3", "SELECT COUNT(*) FROM users") == [(0,)]

    result = runner.invoke(app, ["migrate", "-c", str(config_file), "-e", "staging"])
    assert result.exit_code == 0
    assert "Nothing to migrate." in result.stdout

    result = runner.invoke(app, ["rollback", "-c", str(config_file), "-e", "staging"])
    assert result.exit_code == 0, result.output
    assert f"Rollback {name}...done." in result.stdout
    assert not (project_dir / "migrated" / "staging" / name).exists()

    result = runner.invoke(app, ["rollback", "-c", str(config_file), "-e", "staging"])
    assert result.exit_code == 0
    assert "Nothing to rollback." in result.stdout


def test_dry_run_prints_contents(project_dir: Path, config_file: Path, add_migration) -> None:
    add_migration("2024_01_01_00_00_00", "users", up="CREATE TABLE users (id INTEGER);")

    result = runner.invoke(app, ["migrate", "-c", str(config_file), "--dry-run"])

    assert result.exit_code == 0
    assert "CREATE TABLE users (id INTEGER);" in result.stdout
    assert not (project_dir / "app.sqlite3").exists()
    assert not (project_dir / "migrated" / "production").exists()


def test_execution_failure_exit_code(project_dir: Path, config_file: Path, add_migration) -> None:
    good = add_migration("2024_01_01_00_00_00", "good", up="CREATE TABLE good (id INTEGER);")
    add_migration("2024_01_02_00_00_00", "bad", up="CREATE TABLE;")

    result = runner.invoke(app, ["migrate", "-c", str(config_file)])

    assert result.exit_code == 3
    applied = [path.name for path in (project_dir / "migrated" / "production").iterdir()]
    assert applied == [good]


def test_missing_database_name_exit_code(
    project_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(project_dir)
    result = runner.invoke(app, ["migrate"])
    assert result.exit_code == 2


def test_no_command_runs_migrate(
    project_dir: Path, add_migration, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(project_dir)
    monkeypatch.setenv("SQLGRATE_DATABASE__EXECUTOR", "sqlite")
    monkeypatch.setenv("SQLGRATE_DATABASE__NAME", "app.sqlite3")
    name = add_migration("2024_01_01_00_00_00", "users")

    result = runner.invoke(app, [])

    assert result.exit_code == 0, result.output
    assert (project_dir / "migrated" / "production" / name).is_file()


def test_database_option_overrides_config(
    project_dir: Path, add_migration, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(project_dir)
    monkeypatch.setenv("SQLGRATE_DATABASE__EXECUTOR", "sqlite")
    add_migration("2024_01_01_00_00_00", "users")

    result = runner.invoke(app, ["migrate", "--database", "other.sqlite3"])

    assert result.exit_code == 0, result.output
    assert (project_dir / "other.sqlite3").exists()


def test_missing_directory_exit_code(tmp_path: Path) -> None:
    config_path = tmp_path / "sqlgrate.yaml"
    config_path.write_text("database:\n  name: app\n", encoding="utf-8")

    result = runner.invoke(app, ["rollback", "-c", str(config_path)])
    assert result.exit_code == 2


def test_create_and_status(project_dir: Path, config_file: Path) -> None:
    result = runner.invoke(app, ["create", "Add Users", "-c", str(config_file)])
    assert result.exit_code == 0, result.output

    created = list((project_dir / "migrations").iterdir())
    assert len(created) == 1
    assert created[0].name.endswith("_add_users.sg_migrate.sql")
    assert (project_dir / "rollback" / created[0].name).exists()

    result = runner.invoke(app, ["status", "-c", str(config_file)])
    assert result.exit_code == 0
    assert f"[pending] {created[0].name}" in result.stdout


def test_log_file_option(project_dir: Path, config_file: Path) -> None:
    log_path = project_dir / "sqlgrate.log"
    result = runner.invoke(
        app, ["migrate", "-c", str(config_file), "--dry-run", "--log-file", str(log_path)]
    )
    assert result.exit_code == 0
    assert log_path.exists()


def test_ledger_write_failure_exit_code(
    project_dir: Path, config_file: Path, add_migration, monkeypatch: pytest.MonkeyPatch
) -> None:
    name = add_migration("2024_01_01_00_00_00", "users")

    def refuse(self, environment, migration, content):
        raise PermissionError("read-only ledger")

    monkeypatch.setattr(DirectoryLedgerStore, "record_applied", refuse)

    result = runner.invoke(app, ["migrate", "-c", str(config_file)])

    assert result.exit_code == 3
    assert f"Migrating {name}...failed." in result.output
    assert "ERROR:" in result.output
    assert "could not record ledger entry" in result.output


def test_options_without_command_run_migrate(
    project_dir: Path, config_file: Path, add_migration
) -> None:
    name = add_migration("2024_01_01_00_00_00", "users")

    result = runner.invoke(app, ["-c", str(config_file), "-e", "staging"])

    assert result.exit_code == 0, result.output
    assert (project_dir / "migrated" / "staging" / name).is_file()
    assert not (project_dir / "migrated" / "production").exists()


def test_options_before_command_apply_to_it(
    project_dir: Path, config_file: Path, add_migration
) -> None:
    name = add_migration("2024_01_01_00_00_00", "users")
    result = runner.invoke(app, ["-e", "staging", "-c", str(config_file), "migrate"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["-e", "staging", "rollback", "-c", str(config_file)])

    assert result.exit_code == 0, result.output
    assert f"Rollback {name}...done." in result.stdout
    assert not (project_dir / "migrated" / "staging" / name).exists()
