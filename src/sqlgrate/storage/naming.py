"""Helpers for generating and parsing canonical migration filenames."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

__all__ = [
    "MigrationName",
    "TIMESTAMP_FORMAT",
    "build_migration_filename",
    "normalize_slug",
    "parse_migration_filename",
]

TIMESTAMP_FORMAT = "%Y_%m_%d_%H_%M_%S"

_SLUG_SEPARATOR_RE = re.compile(r"[\s\-]+")
_SLUG_RE = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")
_FILENAME_RE = re.compile(
    r"^(?P<timestamp>\d{4}_\d{2}_\d{2}_\d{2}_\d{2}_\d{2})_(?P<slug>[a-z0-9_]+)\.(?P<suffix>.+)$"
)


@dataclass(frozen=True, slots=True)
class MigrationName:
    """Structured view of ``YYYY_MM_DD_HH_MM_SS_<slug>.<suffix>``."""

    created_at: datetime
    slug: str
    suffix: str

    @property
    def filename(self) -> str:
        return f"{self.created_at.strftime(TIMESTAMP_FORMAT)}_{self.slug}.{self.suffix}"


def normalize_slug(name: str) -> str:
    """Lower-case ``name`` and join its words with underscores."""
    slug = _SLUG_SEPARATOR_RE.sub("_", name.strip().lower())
    if not _SLUG_RE.match(slug):
        raise ValueError(
            "Migration name must contain letters, numbers, spaces, dashes or underscores only."
        )
    return slug


def build_migration_filename(name: str, created_at: datetime, suffix: str) -> str:
    """Return the filename for a migration called ``name`` created at ``created_at``."""
    ext = suffix.lstrip(".")
    if not ext:
        raise ValueError("Migration suffix must not be empty.")
    return MigrationName(created_at=created_at, slug=normalize_slug(name), suffix=ext).filename


def parse_migration_filename(filename: str) -> MigrationName | None:
    """Parse a migration filename, returning ``None`` when it does not follow the format."""
    match = _FILENAME_RE.match(filename)
    if not match:
        return None
    try:
        created_at = datetime.strptime(match.group("timestamp"), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return MigrationName(
        created_at=created_at,
        slug=match.group("slug"),
        suffix=match.group("suffix"),
    )
