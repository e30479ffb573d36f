"""SQLAlchemy Core table definitions for the soundgood database.

Only the rental slice of the school database is modelled here:
instrument catalog, business rules, students, and rentings.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
)

metadata = MetaData()

instrument_types = Table(
    "instrument_types",
    metadata,
    Column("instrument_type_id", Integer, primary_key=True, autoincrement=False),
    Column("instrument_type", String(100), nullable=False, unique=True),
)

instruments = Table(
    "instruments",
    metadata,
    Column("instrument_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "instrument_type_id",
        Integer,
        ForeignKey("instrument_types.instrument_type_id"),
        nullable=False,
    ),
    Column("brand", String(100), nullable=False),
    Column("model", String(100), nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("count", Integer, nullable=False),  # total owned, including rented out
)

business_rules = Table(
    "business_rules",
    metadata,
    Column("business_rule_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("value", String(50), nullable=False),
)

students = Table(
    "students",
    metadata,
    Column("student_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(100)),
)

rentings = Table(
    "rentings",
    metadata,
    Column("rent_id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False),
    Column("instrument_id", Integer, ForeignKey("instruments.instrument_id"), nullable=False),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True)),  # NULL while the renting is active
)

# ---------------------------------------------------------------------------
# Indexes for the lock and count predicates
# ---------------------------------------------------------------------------

Index("ix_rentings_student", rentings.c.student_id)
Index("ix_rentings_instrument", rentings.c.instrument_id)
Index("ix_instruments_type", instruments.c.instrument_type_id)

MAX_RENTALS_KEY = "rent_max_count"
MAX_RENTAL_MONTHS_KEY = "rent_max_time"
