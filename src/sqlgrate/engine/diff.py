"""Pending-set computation: migrations in the source but not in the ledger."""

from __future__ import annotations

from collections.abc import Iterable

from ..storage.ledger import LedgerStore
from ..storage.source import MigrationSource

__all__ = ["pending", "pending_for"]


def pending(source_names: Iterable[str], applied_names: Iterable[str]) -> list[str]:
    """Return names present in ``source_names`` but absent from ``applied_names``, ascending."""
    applied = set(applied_names)
    return sorted({name for name in source_names if name not in applied})


def pending_for(source: MigrationSource, ledger: LedgerStore, environment: str) -> list[str]:
    """Return the pending migrations of ``source`` for ``environment``."""
    return pending(source.list_migrations(), ledger.list_applied(environment))
