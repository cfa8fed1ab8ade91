"""Directory-backed ledger of migrations applied per environment.

Layout: ``<ledger_root>/<environment>/<migration filename>``. Each entry holds a
snapshot of the rollback script taken when the migration was applied, so a
rollback never depends on the rollback directory still containing that file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

from ..exceptions import LedgerError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "DirectoryLedgerStore",
    "LedgerStore",
]

_TEMP_PREFIX = ".sqlgrate-"


class LedgerStore(Protocol):
    """Persistent set of migration names applied per environment."""

    def list_applied(self, environment: str) -> list[str]: ...

    def latest(self, environment: str) -> str | None: ...

    def entry_path(self, environment: str, name: str) -> Path: ...

    def is_applied(self, environment: str, name: str) -> bool: ...

    def read_entry(self, environment: str, name: str) -> str: ...

    def record_applied(self, environment: str, name: str, content: str) -> None: ...

    def remove_applied(self, environment: str, name: str) -> None: ...

    def ensure_namespace(self, environment: str) -> Path: ...


class DirectoryLedgerStore:
    """Ledger backed by one directory per environment under ``root``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def namespace(self, environment: str) -> Path:
        """Return the directory holding ``environment``'s entries (may not exist yet)."""
        return self.root / _check_component(environment, "environment")

    def ensure_namespace(self, environment: str) -> Path:
        """Create the environment directory when missing and return it."""
        directory = self.namespace(environment)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def list_applied(self, environment: str) -> list[str]:
        """Return applied migration names, newest (highest) first."""
        directory = self.namespace(environment)
        if not directory.is_dir():
            return []
        names = [
            path.name
            for path in directory.iterdir()
            if path.is_file() and not path.name.startswith(".")
        ]
        names.sort(reverse=True)
        return names

    def latest(self, environment: str) -> str | None:
        """Return the most recently applied migration name, if any."""
        applied = self.list_applied(environment)
        return applied[0] if applied else None

    def is_applied(self, environment: str, name: str) -> bool:
        return self.entry_path(environment, name).is_file()

    def entry_path(self, environment: str, name: str) -> Path:
        return self.namespace(environment) / _check_component(name, "migration name")

    def read_entry(self, environment: str, name: str) -> str:
        """Return the rollback snapshot stored for ``name``."""
        path = self.entry_path(environment, name)
        if not path.is_file():
            raise LedgerError(f"No ledger entry for {name} in environment '{environment}'.")
        return path.read_text(encoding="utf-8")

    def record_applied(self, environment: str, name: str, content: str) -> None:
        """Write the ledger entry for ``name`` as a whole file.

        The content lands in a temporary file in the same directory and is moved into
        place with :func:`os.replace`, so readers never see a half-written entry.
        """
        target = self.entry_path(environment, name)
        directory = self.ensure_namespace(environment)

        fd, temp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=directory)
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(temp_path, target)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        LOGGER.debug("Recorded %s in ledger for environment %s.", name, environment)

    def remove_applied(self, environment: str, name: str) -> None:
        """Delete the ledger entry for ``name``."""
        path = self.entry_path(environment, name)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise LedgerError(
                f"No ledger entry for {name} in environment '{environment}'."
            ) from exc
        LOGGER.debug("Removed %s from ledger for environment %s.", name, environment)


def _check_component(value: str, label: str) -> str:
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise LedgerError(f"Invalid {label}: {value!r}.")
    return value
