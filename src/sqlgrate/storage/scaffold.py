"""Create new, empty migration and rollback script pairs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from pathlib import Path

from .. import TOOL_NAME, __version__
from ..config.settings import Configuration
from ..exceptions import ConfigurationError
from ..utils.logging import get_logger
from .naming import build_migration_filename

LOGGER = get_logger(__name__)

__all__ = ["ScaffoldResult", "create_migration", "render_header"]

_HEADER_TEMPLATE = """\
-- {tool} {kind} Script
-- Generated by: {tool} v{version}
-- File: {filename}
-- Date: {date}
-- Write your SQL {placeholder} below this line
"""


@dataclass(frozen=True, slots=True)
class ScaffoldResult:
    """Paths written by :func:`create_migration`."""

    filename: str
    migration_path: Path
    rollback_path: Path


def render_header(kind: str, filename: str, created_at: datetime) -> str:
    """Return the comment header for a generated ``Migration`` or ``Rollback`` script."""
    placeholder = "migration" if kind == "Migration" else "rollback migration"
    return _HEADER_TEMPLATE.format(
        tool=TOOL_NAME,
        kind=kind,
        version=__version__,
        filename=filename,
        date=format_datetime(created_at),
        placeholder=placeholder,
    )


def create_migration(
    configuration: Configuration,
    name: str,
    *,
    now: datetime | None = None,
) -> ScaffoldResult:
    """Write a migration script and its rollback script named after ``name``."""
    configuration.validate_for_scaffold()
    assert configuration.migrations_dir is not None
    assert configuration.rollback_dir is not None

    created_at = now or datetime.now().astimezone()
    if created_at.tzinfo is None:
        created_at = created_at.astimezone()
    try:
        filename = build_migration_filename(name, created_at, configuration.suffix)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid migration name {name!r}: {exc}") from exc

    migration_path = configuration.migrations_dir / filename
    rollback_path = configuration.rollback_dir / filename
    for path in (migration_path, rollback_path):
        if path.exists():
            raise ConfigurationError(f"Refusing to overwrite existing file {path}.")

    _write_new(migration_path, render_header("Migration", filename, created_at))
    _write_new(rollback_path, render_header("Rollback", filename, created_at))
    LOGGER.info("Created migration %s.", filename)

    return ScaffoldResult(
        filename=filename,
        migration_path=migration_path,
        rollback_path=rollback_path,
    )


def _write_new(path: Path, content: str) -> None:
    try:
        with path.open("x", encoding="utf-8") as handle:
            handle.write(content)
    except OSError as exc:
        raise ConfigurationError(f"Failed to create file {path}: {exc}") from exc
