"""Migration engine: pending-set computation, executors and controllers."""

from __future__ import annotations

from .controller import (
    MigrationController,
    MigrationReport,
    MigrationState,
    RollbackController,
    RollbackReport,
    migration_status,
)
from .diff import pending, pending_for
from .executor import DatabaseExecutor, MySQLClientExecutor, SQLiteExecutor, build_executor

__all__ = [
    "DatabaseExecutor",
    "MigrationController",
    "MigrationReport",
    "MigrationState",
    "MySQLClientExecutor",
    "RollbackController",
    "RollbackReport",
    "SQLiteExecutor",
    "build_executor",
    "migration_status",
    "pending",
    "pending_for",
]
