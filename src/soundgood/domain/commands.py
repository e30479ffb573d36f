"""The closed set of commands accepted by the executor.

Identifiers are carried as the raw text the user typed; the executor
parses them so that malformed input surfaces as ``INVALID_IDENTIFIER``
results rather than parser failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class Begin:
    """Begin a new transaction (rolling back any open one)."""


@dataclass(frozen=True)
class Commit:
    """Commit the current transaction."""


@dataclass(frozen=True)
class Rollback:
    """Roll back the current transaction."""


@dataclass(frozen=True)
class Rent:
    """Rent an instrument to a student."""

    student: str
    instrument: str


@dataclass(frozen=True)
class TerminateById:
    """Terminate one renting by its id."""

    rent_id: str


@dataclass(frozen=True)
class TryTerminate:
    """Terminate the active renting of a student and instrument, if unambiguous."""

    student: str
    instrument: str


@dataclass(frozen=True)
class ListItems:
    """List rentable instruments, optionally restricted to a category prefix."""

    instrument_type: str | None = None


Command: TypeAlias = Begin | Commit | Rollback | Rent | TerminateById | TryTerminate | ListItems
