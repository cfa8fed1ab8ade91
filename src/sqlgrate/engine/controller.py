"""Controllers that apply pending migrations and roll back the latest one."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..config.settings import Configuration
from ..exceptions import ExecutionError, LedgerError
from ..storage.ledger import DirectoryLedgerStore, LedgerStore
from ..storage.naming import parse_migration_filename
from ..storage.source import MigrationSource
from ..utils.logging import get_logger
from .diff import pending_for
from .executor import DatabaseExecutor, build_executor

LOGGER = get_logger(__name__)

__all__ = [
    "MigrationController",
    "MigrationReport",
    "MigrationState",
    "RollbackController",
    "RollbackReport",
    "migration_status",
]

Echo = Callable[[str], None]


def _discard(_line: str) -> None:
    return None


@dataclass(slots=True)
class MigrationReport:
    """Outcome of a migrate run."""

    environment: str
    dry_run: bool
    applied: list[str] = field(default_factory=list)
    previewed: list[str] = field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return not self.applied and not self.previewed


@dataclass(slots=True)
class RollbackReport:
    """Outcome of a rollback run; ``name`` is ``None`` when the ledger was empty."""

    environment: str
    dry_run: bool
    name: str | None = None

    @property
    def nothing_to_do(self) -> bool:
        return self.name is None


@dataclass(frozen=True, slots=True)
class MigrationState:
    """One row of ``sqlgrate status``."""

    name: str
    applied: bool
    in_source: bool
    created_at: datetime | None = None


class _BaseController:
    def __init__(
        self,
        configuration: Configuration,
        *,
        executor: DatabaseExecutor | None = None,
        ledger: LedgerStore | None = None,
        source: MigrationSource | None = None,
        echo: Echo | None = None,
    ) -> None:
        self.configuration = configuration
        self._executor = executor
        self._ledger = ledger
        self._source = source
        self.echo = echo or _discard

    @property
    def ledger(self) -> LedgerStore:
        if self._ledger is None:
            assert self.configuration.ledger_dir is not None
            self._ledger = DirectoryLedgerStore(self.configuration.ledger_dir)
        return self._ledger

    @property
    def source(self) -> MigrationSource:
        if self._source is None:
            assert self.configuration.migrations_dir is not None
            assert self.configuration.rollback_dir is not None
            self._source = MigrationSource(
                self.configuration.migrations_dir,
                self.configuration.rollback_dir,
                suffix=self.configuration.suffix,
            )
        return self._source

    @property
    def executor(self) -> DatabaseExecutor:
        if self._executor is None:
            self._executor = build_executor(self.configuration)
        return self._executor


class MigrationController(_BaseController):
    """Apply every pending migration in ascending order, halting at the first failure."""

    def run(self) -> MigrationReport:
        config = self.configuration
        config.validate()
        environment = config.environment
        report = MigrationReport(environment=environment, dry_run=config.dry_run)

        if not config.dry_run:
            try:
                self.ledger.ensure_namespace(environment)
            except OSError as exc:
                LOGGER.warning(
                    "Can not create directory %s: %s", config.environment_ledger_dir, exc
                )

        pending = pending_for(self.source, self.ledger, environment)
        LOGGER.info("%s pending migration(s) for environment %s.", len(pending), environment)

        for name in pending:
            if config.dry_run:
                self._preview(name)
                report.previewed.append(name)
                continue

            self._apply(name)
            report.applied.append(name)

        if not pending:
            self.echo("Nothing to migrate.")
        return report

    def _preview(self, name: str) -> None:
        self.echo(f"Migrating {name}...done.")
        self.echo(f">> Contents of file {self.source.migration_path(name)}: ")
        self.echo(self.source.read_migration(name))

    def _apply(self, name: str) -> None:
        environment = self.configuration.environment
        try:
            # Everything the ledger entry needs is checked before the script runs.
            self.ledger.entry_path(environment, name)
            script = self.source.read_migration(name)
            snapshot = self.source.read_rollback(name)
            self.executor.apply(script, label=name)
        except (ExecutionError, LedgerError) as exc:
            self.echo(f"Migrating {name}...failed.")
            LOGGER.error(
                "Failed migrating %s with message: %s",
                self.source.migration_path(name),
                exc.message if isinstance(exc, ExecutionError) else exc,
            )
            raise

        try:
            self.ledger.record_applied(environment, name, snapshot)
        except OSError as exc:
            self.echo(f"Migrating {name}...failed.")
            LOGGER.error(
                "Applied %s but could not record it in %s; "
                "the database is ahead of the ledger: %s",
                name,
                self.configuration.environment_ledger_dir,
                exc,
            )
            raise ExecutionError(
                name, f"Applied but could not record ledger entry: {exc}"
            ) from exc
        self.echo(f"Migrating {name}...done.")
        LOGGER.info("Migrated %s in environment %s.", name, environment)


class RollbackController(_BaseController):
    """Undo exactly the most recently applied migration using its ledger snapshot."""

    def run(self) -> RollbackReport:
        config = self.configuration
        config.validate()
        environment = config.environment
        report = RollbackReport(environment=environment, dry_run=config.dry_run)

        name = self.ledger.latest(environment)
        if name is None:
            self.echo("Nothing to rollback.")
            return report

        report.name = name
        snapshot = self.ledger.read_entry(environment, name)
        entry_path = self.ledger.entry_path(environment, name)

        if config.dry_run:
            self.echo(f"Rollback {name}...done.")
            self.echo(f">> Contents of file {entry_path}: ")
            self.echo(snapshot)
            return report

        try:
            self.executor.apply(snapshot, label=name)
        except ExecutionError as exc:
            self.echo(f"Rollback {name}...failed.")
            LOGGER.error("Failed rolling back %s with message: %s", entry_path, exc.message)
            raise

        try:
            self.ledger.remove_applied(environment, name)
        except OSError as exc:
            self.echo(f"Rollback {name}...failed.")
            LOGGER.error(
                "Rolled back %s but could not remove %s; "
                "the ledger is ahead of the database: %s",
                name,
                entry_path,
                exc,
            )
            raise ExecutionError(
                name, f"Rolled back but could not remove ledger entry: {exc}"
            ) from exc
        self.echo(f"Rollback {name}...done.")
        LOGGER.info("Rolled back %s in environment %s.", name, environment)
        return report


def migration_status(
    configuration: Configuration,
    *,
    ledger: LedgerStore | None = None,
    source: MigrationSource | None = None,
) -> list[MigrationState]:
    """Return every known migration with its applied flag, ascending by name."""
    configuration.validate(require_database=False)
    controller = _BaseController(configuration, ledger=ledger, source=source)
    in_source = set(controller.source.list_migrations())
    applied = set(controller.ledger.list_applied(configuration.environment))

    states = []
    for name in sorted(in_source | applied):
        parsed = parse_migration_filename(name)
        states.append(
            MigrationState(
                name=name,
                applied=name in applied,
                in_source=name in in_source,
                created_at=parsed.created_at if parsed else None,
            )
        )
    return states
