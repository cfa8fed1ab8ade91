"""Global pytest fixtures for sqlgrate."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from sqlgrate.config.settings import Configuration
from sqlgrate.exceptions import ExecutionError

SUFFIX = "sg_migrate.sql"


class FakeExecutor:
    """Records every script it is asked to run; fails for the labels in ``failing``."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: list[tuple[str, str]] = []

    def apply(self, script: str, *, label: str) -> None:
        self.calls.append((label, script))
        if label in self.failing:
            raise ExecutionError(label, "ERROR 1064 (42000): You have an error in your SQL syntax")

    @property
    def labels(self) -> list[str]:
        return [label for label, _script in self.calls]


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide a project directory with empty migrations, migrated and rollback folders."""
    for name in ("migrations", "migrated", "rollback"):
        (tmp_path / name).mkdir()
    return tmp_path


@pytest.fixture
def make_configuration(project_dir: Path) -> Callable[..., Configuration]:
    def _make(**overrides: object) -> Configuration:
        values: dict[str, object] = {
            "database_name": "app",
            "migrations_dir": project_dir / "migrations",
            "ledger_dir": project_dir / "migrated",
            "rollback_dir": project_dir / "rollback",
            "suffix": SUFFIX,
        }
        values.update(overrides)
        return Configuration(**values)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def add_migration(project_dir: Path) -> Callable[..., str]:
    """Write a migration/rollback pair and return the migration filename."""

    def _add(stamp: str, slug: str, up: str = "", down: str = "", *, rollback: bool = True) -> str:
        filename = f"{stamp}_{slug}.{SUFFIX}"
        (project_dir / "migrations" / filename).write_text(
            up or f"CREATE TABLE {slug} (id INTEGER);\n", encoding="utf-8"
        )
        if rollback:
            (project_dir / "rollback" / filename).write_text(
                down or f"DROP TABLE {slug};\n", encoding="utf-8"
            )
        return filename

    return _add


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    def _make(failing: Iterable[str] = ()) -> FakeExecutor:
        return FakeExecutor(failing)

    return _make


@pytest.fixture
def fetch_rows() -> Callable[..., list[tuple]]:
    """Run a read-only query against a SQLite database file and return every row."""

    def _fetch(db_path: Path, sql: str) -> list[tuple]:
        connection = sqlite3.connect(db_path)
        try:
            return list(connection.execute(sql))
        finally:
            connection.close()

    return _fetch
