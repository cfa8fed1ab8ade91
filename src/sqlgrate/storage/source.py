"""Access to the migration scripts and their paired rollback scripts."""

from __future__ import annotations

from pathlib import Path

from ..exceptions import ExecutionError
from ..utils.logging import get_logger
from .naming import parse_migration_filename

LOGGER = get_logger(__name__)

__all__ = ["MigrationSource"]


class MigrationSource:
    """A directory of ordered migration scripts plus the matching rollback directory."""

    def __init__(
        self,
        migrations_dir: str | Path,
        rollback_dir: str | Path,
        *,
        suffix: str,
    ) -> None:
        self.migrations_dir = Path(migrations_dir)
        self.rollback_dir = Path(rollback_dir)
        self.suffix = "." + suffix.lstrip(".")

    def list_migrations(self) -> list[str]:
        """Return migration filenames sorted ascending (chronological by construction)."""
        if not self.migrations_dir.is_dir():
            return []
        names: list[str] = []
        for path in self.migrations_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            if not path.name.endswith(self.suffix):
                continue
            if parse_migration_filename(path.name) is None:
                LOGGER.debug("%s does not follow the timestamped naming format.", path.name)
            names.append(path.name)
        names.sort()
        return names

    def migration_path(self, name: str) -> Path:
        return self.migrations_dir / name

    def rollback_path(self, name: str) -> Path:
        return self.rollback_dir / name

    def read_migration(self, name: str) -> str:
        """Return the full text of the migration script ``name``."""
        path = self.migration_path(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExecutionError(name, f"Cannot read migration script {path}: {exc}") from exc

    def read_rollback(self, name: str) -> str:
        """Return the rollback script paired with ``name``.

        Raises:
            ExecutionError: when the pair is broken; nothing may be applied without it.
        """
        path = self.rollback_path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ExecutionError(name, f"Missing rollback script {path}.") from exc
        except OSError as exc:
            raise ExecutionError(name, f"Cannot read rollback script {path}: {exc}") from exc
