"""Minimal schema-migration runner for relational databases."""

from __future__ import annotations

__all__ = ["TOOL_NAME", "__version__"]

TOOL_NAME = "sqlgrate"
__version__ = "1.0.0"
