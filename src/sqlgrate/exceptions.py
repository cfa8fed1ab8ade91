"""Exception types for sqlgrate."""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_EXECUTION_FAILURE",
    "ExecutionError",
    "LedgerError",
    "SqlgrateError",
]

EXIT_CONFIGURATION_ERROR = 2
EXIT_EXECUTION_FAILURE = 3


class SqlgrateError(Exception):
    """Base class for errors that end an invocation with a specific exit status."""

    exit_code = 1


class ConfigurationError(SqlgrateError):
    """
    Raised when a precondition for running is not met (missing database name,
    missing directory, unusable environment name). Always raised before any
    side effect.
    """

    exit_code = EXIT_CONFIGURATION_ERROR


class ExecutionError(SqlgrateError):
    """Raised when a migration or rollback script fails against the database."""

    exit_code = EXIT_EXECUTION_FAILURE

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}" if message else name)


class LedgerError(SqlgrateError):
    """Raised when the ledger is asked to do something inconsistent."""
