"""Error kinds raised by the sync engine."""

from __future__ import annotations

from dataclasses import dataclass


class WdrcError(Exception):
    """Base error for the sync engine."""


@dataclass(slots=True)
class InvalidIdentifier(WdrcError):
    """Entity id that does not decode to a positive numeric id."""

    value: str

    def __str__(self) -> str:
        return f"Bad ID: {self.value!r}"


@dataclass(slots=True)
class RevisionFetchError(WdrcError):
    """Revision pair could not be fetched or parsed for one item."""

    message: str
    title: str | None = None
    old_revision: int | None = None
    new_revision: int | None = None

    def __str__(self) -> str:
        return self.message


class PersistenceError(WdrcError):
    """Write to one of the stores failed."""


class ConfigError(WdrcError, ValueError):
    """Missing or invalid configuration."""
