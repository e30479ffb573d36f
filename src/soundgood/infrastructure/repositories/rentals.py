"""Data access for the rental workflow.

Every function takes the ``Connection`` of the caller's open transaction.
Nothing here commits, rolls back, or opens a connection: the executor owns
the transaction and these statements participate in it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, or_, select, update

from soundgood.domain.models import Instrument, Renting
from soundgood.infrastructure.database.schema import (
    business_rules,
    instrument_types,
    instruments,
    rentings,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select


def _to_instrument(row: Any) -> Instrument:
    return Instrument(
        instrument_id=row.instrument_id,
        instrument_type_id=row.instrument_type_id,
        brand=row.brand,
        model=row.model,
        price=row.price,
        count=row.count,
    )


def _to_renting(row: Any) -> Renting:
    return Renting(
        rent_id=row.rent_id,
        student_id=row.student_id,
        instrument_id=row.instrument_id,
        start_date=row.start_date,
        end_date=row.end_date,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def list_instruments(conn: Connection) -> list[Instrument]:
    """All instruments, ordered by id."""
    rows = conn.execute(select(instruments).order_by(instruments.c.instrument_id)).fetchall()
    return [_to_instrument(row) for row in rows]


def list_instruments_by_type(conn: Connection, instrument_type_id: int) -> list[Instrument]:
    """Instruments of one category, ordered by id."""
    rows = conn.execute(
        select(instruments)
        .where(instruments.c.instrument_type_id == instrument_type_id)
        .order_by(instruments.c.instrument_id)
    ).fetchall()
    return [_to_instrument(row) for row in rows]


def find_instrument_type(conn: Connection, prefix: str) -> tuple[int, str] | None:
    """Resolve a case-insensitive category prefix, e.g. ``"GUI"`` -> guitar.

    When several categories share the prefix the lowest id wins.
    LIKE wildcards in *prefix* are matched literally.
    """
    row = conn.execute(
        select(instrument_types.c.instrument_type_id, instrument_types.c.instrument_type)
        .where(
            func.lower(instrument_types.c.instrument_type).startswith(
                prefix.lower(), autoescape=True
            )
        )
        .order_by(instrument_types.c.instrument_type_id)
        .limit(1)
    ).first()
    if row is None:
        return None
    return int(row.instrument_type_id), str(row.instrument_type)


def read_business_rule(conn: Connection, name: str) -> str | None:
    """Raw string value of a business rule, or None if it is not set."""
    row = conn.execute(
        select(business_rules.c.value).where(business_rules.c.name == name)
    ).first()
    return None if row is None else str(row.value)


# ---------------------------------------------------------------------------
# Rentings
# ---------------------------------------------------------------------------


def lock_rentings_stmt(student_id: int, instrument_id: int) -> Select[Any]:
    """``SELECT ... FOR UPDATE`` over rentings of the student OR the instrument."""
    return (
        select(rentings.c.rent_id)
        .where(
            or_(
                rentings.c.student_id == student_id,
                rentings.c.instrument_id == instrument_id,
            )
        )
        .with_for_update()
    )


def lock_rentings(conn: Connection, student_id: int, instrument_id: int) -> None:
    """Lock every renting row of *student_id* or *instrument_id*.

    Blocks while another transaction holds a conflicting lock. The locks
    are released when the caller's transaction commits or rolls back.
    """
    conn.execute(lock_rentings_stmt(student_id, instrument_id)).fetchall()


def count_student_rentals(conn: Connection, student_id: int) -> int:
    """Number of active rentings held by a student."""
    stmt = select(func.count(rentings.c.rent_id)).where(
        rentings.c.student_id == student_id,
        rentings.c.end_date.is_(None),
    )
    return int(conn.execute(stmt).scalar_one() or 0)


def count_instrument_rentals(conn: Connection, instrument_id: int) -> int:
    """Number of active rentings of an instrument."""
    stmt = select(func.count(rentings.c.rent_id)).where(
        rentings.c.instrument_id == instrument_id,
        rentings.c.end_date.is_(None),
    )
    return int(conn.execute(stmt).scalar_one() or 0)


def insert_renting(conn: Connection, student_id: int, instrument_id: int) -> int:
    """Start a renting now. Returns rows affected (always 1 on success)."""
    result = conn.execute(
        insert(rentings).values(
            student_id=student_id,
            instrument_id=instrument_id,
            start_date=datetime.now(UTC),
        )
    )
    return result.rowcount


def find_active_rentings(conn: Connection, student_id: int, instrument_id: int) -> list[Renting]:
    """Active rentings of exactly this student and instrument, oldest first."""
    rows = conn.execute(
        select(rentings)
        .where(
            rentings.c.student_id == student_id,
            rentings.c.instrument_id == instrument_id,
            rentings.c.end_date.is_(None),
        )
        .order_by(rentings.c.rent_id)
    ).fetchall()
    return [_to_renting(row) for row in rows]


def end_renting(conn: Connection, rent_id: int) -> int:
    """Set the end date of an active renting to now. Returns rows affected.

    Already-ended rentings are left untouched and count as zero rows.
    """
    result = conn.execute(
        update(rentings)
        .where(rentings.c.rent_id == rent_id, rentings.c.end_date.is_(None))
        .values(end_date=datetime.now(UTC))
    )
    return result.rowcount
