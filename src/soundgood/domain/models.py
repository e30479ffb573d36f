"""Immutable records read from the store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class Instrument:
    """A rentable instrument model and how many of it the school owns."""

    instrument_id: int
    instrument_type_id: int
    brand: str
    model: str
    price: Decimal
    count: int

    def describe(self, available: int) -> str:
        """One-line summary including the number still available to rent."""
        return (
            f"ID:{self.instrument_id} => {self.model} by {self.brand}. "
            f"Price {self.price:.2f} with {available} left to rent out of a total {self.count}."
        )

    def to_dict(self, *, available: int | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.instrument_id,
            "type_id": self.instrument_type_id,
            "brand": self.brand,
            "model": self.model,
            "price": f"{self.price:.2f}",
            "total": self.count,
        }
        if available is not None:
            data["available"] = available
        return data


@dataclass(frozen=True)
class Renting:
    """A renting of one instrument by one student.

    INVARIANT: the renting is active iff ``end_date`` is None.
    """

    rent_id: int
    student_id: int
    instrument_id: int
    start_date: datetime
    end_date: datetime | None = None

    @property
    def active(self) -> bool:
        return self.end_date is None

    def __str__(self) -> str:
        return (
            f"Renting {self.rent_id} for student {self.student_id} "
            f"of instrument {self.instrument_id} started at {self.start_date.isoformat()}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.rent_id,
            "student_id": self.student_id,
            "instrument_id": self.instrument_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }
