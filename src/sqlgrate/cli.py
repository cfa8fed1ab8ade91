"""Command-line entrypoints for sqlgrate."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer

from sqlgrate import TOOL_NAME, __version__
from sqlgrate.config import Configuration, build_configuration, load_config
from sqlgrate.engine.controller import (
    MigrationController,
    RollbackController,
    migration_status,
)
from sqlgrate.exceptions import SqlgrateError
from sqlgrate.storage.scaffold import create_migration
from sqlgrate.utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)

app = typer.Typer(
    help=(
        "Simple database schema migration. Running without a command applies "
        "pending migrations, honouring the options given."
    ),
)

ENV_OPTION = typer.Option(
    None,
    "--env",
    "-e",
    help="Environment name used to namespace the ledger (default: production).",
)
DRY_RUN_OPTION = typer.Option(
    False,
    "--dry-run",
    "-r",
    help="Print what would run without touching the database or the ledger.",
)
DATABASE_OPTION = typer.Option(
    None,
    "--database",
    "-d",
    help="Database name, overriding database.name from the configuration.",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="YAML configuration file merged over the built-in defaults.",
)
LOG_FILE_OPTION = typer.Option(
    None,
    "--log-file",
    help="Also write log records to this file.",
)


def _fail(exc: SqlgrateError) -> typer.Exit:
    typer.echo(f"ERROR: {exc}", err=True)
    return typer.Exit(code=exc.exit_code)


def _echo_line(line: str) -> None:
    typer.echo(line)


def _load_configuration(
    config_file: Path | None,
    *,
    log_file: Path | None = None,
    environment: str | None = None,
    database: str | None = None,
    dry_run: bool = False,
    rollback_mode: bool = False,
) -> Configuration:
    """Load settings, configure logging and build the immutable run configuration."""
    try:
        settings = load_config(config_file)
        logging_settings = settings.get("logging")
        configure_logging(
            logging_settings if isinstance(logging_settings, dict) else None,
            log_file=log_file,
        )
        configuration = build_configuration(
            settings,
            environment=environment,
            database_name=database,
            dry_run=dry_run,
            rollback_mode=rollback_mode,
        )
    except SqlgrateError as exc:
        raise _fail(exc) from exc

    if dry_run:
        LOGGER.info("Running in DRY RUN mode")
    return configuration


def _run_migrate(
    *,
    environment: str | None,
    dry_run: bool,
    database: str | None,
    config_file: Path | None,
    log_file: Path | None,
) -> None:
    configuration = _load_configuration(
        config_file,
        log_file=log_file,
        environment=environment,
        database=database,
        dry_run=dry_run,
    )
    try:
        MigrationController(configuration, echo=_echo_line).run()
    except SqlgrateError as exc:
        raise _fail(exc) from exc


def _shared(ctx: typer.Context, key: str, value: Any) -> Any:
    """Return the subcommand's value, falling back to the one given before the command."""
    if value is not None and value is not False:
        return value
    options = ctx.obj if isinstance(ctx.obj, dict) else {}
    return options.get(key, value)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    env: Optional[str] = ENV_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    database: Optional[str] = DATABASE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
) -> None:
    """Apply pending migrations when no command is given."""
    ctx.obj = {
        "env": env,
        "dry_run": dry_run,
        "database": database,
        "config": config,
        "log_file": log_file,
    }
    if ctx.invoked_subcommand is None:
        _run_migrate(
            environment=env,
            dry_run=dry_run,
            database=database,
            config_file=config,
            log_file=log_file,
        )


@app.command()
def migrate(
    ctx: typer.Context,
    env: Optional[str] = ENV_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    database: Optional[str] = DATABASE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
) -> None:
    """Apply every pending migration in chronological order."""
    _run_migrate(
        environment=_shared(ctx, "env", env),
        dry_run=_shared(ctx, "dry_run", dry_run),
        database=_shared(ctx, "database", database),
        config_file=_shared(ctx, "config", config),
        log_file=_shared(ctx, "log_file", log_file),
    )


@app.command()
def rollback(
    ctx: typer.Context,
    env: Optional[str] = ENV_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    database: Optional[str] = DATABASE_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
) -> None:
    """Roll back the most recently applied migration (one step only)."""
    configuration = _load_configuration(
        _shared(ctx, "config", config),
        log_file=_shared(ctx, "log_file", log_file),
        environment=_shared(ctx, "env", env),
        database=_shared(ctx, "database", database),
        dry_run=_shared(ctx, "dry_run", dry_run),
        rollback_mode=True,
    )
    try:
        RollbackController(configuration, echo=_echo_line).run()
    except SqlgrateError as exc:
        raise _fail(exc) from exc


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Migration name, e.g. 'add users table'."),
    config: Optional[Path] = CONFIG_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
) -> None:
    """Create a timestamped migration script and its rollback script."""
    configuration = _load_configuration(
        _shared(ctx, "config", config), log_file=_shared(ctx, "log_file", log_file)
    )
    try:
        result = create_migration(configuration, name)
    except SqlgrateError as exc:
        raise _fail(exc) from exc

    typer.echo(f"Created {result.migration_path}")
    typer.echo(f"Created {result.rollback_path}")


@app.command()
def status(
    ctx: typer.Context,
    env: Optional[str] = ENV_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
) -> None:
    """List migrations and whether each is applied in the environment."""
    configuration = _load_configuration(
        _shared(ctx, "config", config), environment=_shared(ctx, "env", env)
    )
    try:
        states = migration_status(configuration)
    except SqlgrateError as exc:
        raise _fail(exc) from exc

    if not states:
        typer.echo("No migrations found.")
        return

    typer.echo(f"Environment: {configuration.environment}")
    for state in states:
        marker = "applied" if state.applied else "pending"
        note = "" if state.in_source else " (missing from migrations directory)"
        typer.echo(f"[{marker:>7}] {state.name}{note}")


@app.command()
def version() -> None:
    """Print the sqlgrate version."""
    typer.echo(f"{TOOL_NAME} version {__version__}.")


def main() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    main()
