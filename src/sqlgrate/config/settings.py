"""Immutable run configuration derived from the loaded settings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..exceptions import ConfigurationError

__all__ = [
    "Configuration",
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_SUFFIX",
    "build_configuration",
]

DEFAULT_ENVIRONMENT = "production"
DEFAULT_SUFFIX = "sg_migrate.sql"
EXECUTORS = ("mysql", "sqlite")


def _normalize_path(value: str | Path, *, relative_to: Path | None = None) -> Path:
    """Return an absolute path, interpreting relative paths from ``relative_to``."""
    path = Path(value).expanduser()
    if not path.is_absolute() and relative_to is not None:
        path = relative_to / path
    return path.resolve()


@dataclass(frozen=True, slots=True)
class Configuration:
    """Everything a single invocation needs, fixed for its whole duration."""

    database_name: str | None
    migrations_dir: Path | None
    ledger_dir: Path | None
    rollback_dir: Path | None
    environment: str = DEFAULT_ENVIRONMENT
    dry_run: bool = False
    rollback_mode: bool = False
    suffix: str = DEFAULT_SUFFIX
    executor: str = "mysql"
    client_path: str = "mysql"
    defaults_file: Path | None = None
    check_defaults_file: bool = False
    timeout: float | None = None

    @property
    def environment_ledger_dir(self) -> Path:
        """Ledger namespace holding the entries of the configured environment."""
        if self.ledger_dir is None:
            raise ConfigurationError("The migrated (ledger) directory is not configured.")
        return self.ledger_dir / self.environment

    def validate(self, *, require_database: bool = True) -> None:
        """Check every precondition of a migrate or rollback run.

        Raises:
            ConfigurationError: on the first missing or unusable setting.
        """
        _check_environment(self.environment)
        if self.executor not in EXECUTORS:
            raise ConfigurationError(
                f"Unknown executor '{self.executor}'; expected one of {', '.join(EXECUTORS)}."
            )

        if require_database:
            if not self.database_name:
                raise ConfigurationError(
                    "Please specify the database name with --database, "
                    "SQLGRATE_DATABASE__NAME or database.name in the config file."
                )
            if (
                self.executor == "mysql"
                and self.check_defaults_file
                and (self.defaults_file is None or not self.defaults_file.is_file())
            ):
                raise ConfigurationError(
                    f"Failed to find MySQL client config file ({self.defaults_file})."
                )

        _require_directory("migrations", self.migrations_dir)
        _require_directory("migrated", self.ledger_dir)
        _require_directory("rollback", self.rollback_dir)

    def validate_for_scaffold(self) -> None:
        """Check the preconditions for creating a new migration file pair."""
        _require_directory("migrations", self.migrations_dir)
        _require_directory("rollback", self.rollback_dir)


def _require_directory(label: str, path: Path | None) -> None:
    if path is None:
        raise ConfigurationError(f"The {label} directory is not configured.")
    if not path.is_dir():
        raise ConfigurationError(f"Failed to find the {label}: {path} directory.")


def _check_environment(environment: str) -> None:
    if not environment or environment in {".", ".."}:
        raise ConfigurationError(f"Invalid environment name: {environment!r}.")
    if "/" in environment or "\\" in environment:
        raise ConfigurationError(
            f"Environment name must not contain path separators: {environment!r}."
        )


def build_configuration(
    config: Mapping[str, Any],
    *,
    environment: str | None = None,
    database_name: str | None = None,
    dry_run: bool = False,
    rollback_mode: bool = False,
) -> Configuration:
    """Construct a :class:`Configuration` from the parsed configuration mapping.

    Keyword arguments come from the command line and win over the mapping.
    Relative directories resolve against ``config['base_dir']`` (the user config file's
    directory) or the current working directory.
    """
    base_dir = Path(str(config.get("base_dir") or Path.cwd()))
    database = _section(config, "database")
    paths_section = _section(config, "paths")
    migration = _section(config, "migration")

    def resolve(key: str) -> Path | None:
        raw_value = paths_section.get(key)
        if raw_value in (None, ""):
            return None
        return _normalize_path(str(raw_value), relative_to=base_dir)

    executor = str(database.get("executor") or "mysql")
    name_value = database_name if database_name else database.get("name")
    resolved_name = str(name_value) if name_value not in (None, "") else None
    if executor == "sqlite" and resolved_name is not None:
        resolved_name = str(_normalize_path(resolved_name, relative_to=base_dir))

    defaults_file_raw = database.get("defaults_file")
    defaults_file = Path(str(defaults_file_raw)).expanduser() if defaults_file_raw else None
    timeout = database.get("timeout")

    return Configuration(
        database_name=resolved_name,
        migrations_dir=resolve("migrations"),
        ledger_dir=resolve("migrated"),
        rollback_dir=resolve("rollback"),
        environment=environment or str(migration.get("environment") or DEFAULT_ENVIRONMENT),
        dry_run=dry_run,
        rollback_mode=rollback_mode,
        suffix=str(migration.get("suffix") or DEFAULT_SUFFIX),
        executor=executor,
        client_path=str(database.get("client") or "mysql"),
        defaults_file=defaults_file,
        check_defaults_file=bool(database.get("check_defaults_file", False)),
        timeout=float(timeout) if timeout else None,
    )


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = config.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Configuration section '{key}' must be a mapping.")
    return section
