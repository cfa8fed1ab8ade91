"""Database executors that run one migration or rollback script as a single batch."""

from __future__ import annotations

import sqlite3
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from ..config.settings import Configuration
from ..exceptions import ConfigurationError, ExecutionError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "DatabaseExecutor",
    "MySQLClientExecutor",
    "SQLiteExecutor",
    "build_executor",
]


class DatabaseExecutor(Protocol):
    """Runs a whole script against the target database.

    Implementations raise :class:`ExecutionError` carrying the diagnostic text when the
    script fails; they never retry and never try to interpret why it failed.
    """

    def apply(self, script: str, *, label: str) -> None: ...


class MySQLClientExecutor:
    """Pipe scripts into the ``mysql`` command-line client."""

    def __init__(
        self,
        database: str,
        *,
        client_path: str = "mysql",
        defaults_file: str | Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self.database = database
        self.client_path = client_path
        self.defaults_file = Path(defaults_file).expanduser() if defaults_file else None
        self.timeout = timeout

    def command(self) -> list[str]:
        """Return the client command line (the script itself goes to stdin)."""
        command = [self.client_path]
        if self.defaults_file is not None:
            # --defaults-file must be the first option the client sees.
            command.append(f"--defaults-file={self.defaults_file}")
        command.append(self.database)
        return command

    def apply(self, script: str, *, label: str) -> None:
        """Run ``script``; a non-zero exit status becomes an :class:`ExecutionError`."""
        command = self.command()
        LOGGER.debug("Running %s for %s.", " ".join(command), label)
        try:
            result = subprocess.run(  # noqa: S603 - command is constructed from trusted configuration
                command,
                input=script,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                check=False,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise ExecutionError(label, f"Database client not found: {self.client_path}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ExecutionError(label, f"Database client timed out after {exc.timeout}s.") from exc
        except OSError as exc:
            raise ExecutionError(label, f"Cannot run database client: {exc}") from exc

        if result.returncode != 0:
            message = (result.stderr or "").strip()
            raise ExecutionError(label, message or f"client exited with code {result.returncode}")


class SQLiteExecutor:
    """Run scripts in-process against a SQLite database file."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager that yields a SQLite connection with sane defaults."""
        connection = sqlite3.connect(self.db_path)
        connection.execute("PRAGMA foreign_keys = ON;")
        try:
            yield connection
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            connection.close()

    def apply(self, script: str, *, label: str) -> None:
        """Run ``script`` with ``executescript``; driver errors become :class:`ExecutionError`."""
        LOGGER.debug("Executing %s against %s.", label, self.db_path)
        try:
            with self.connect() as connection:
                connection.executescript(script)
        except sqlite3.Error as exc:
            raise ExecutionError(label, str(exc)) from exc


def build_executor(configuration: Configuration) -> DatabaseExecutor:
    """Return the executor selected by ``configuration.executor``."""
    if not configuration.database_name:
        raise ConfigurationError("No database name configured.")
    if configuration.executor == "sqlite":
        return SQLiteExecutor(configuration.database_name)
    if configuration.executor == "mysql":
        return MySQLClientExecutor(
            configuration.database_name,
            client_path=configuration.client_path,
            defaults_file=configuration.defaults_file,
            timeout=configuration.timeout,
        )
    raise ConfigurationError(f"Unknown executor '{configuration.executor}'.")
