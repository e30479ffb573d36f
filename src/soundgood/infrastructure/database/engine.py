"""Database engine setup and schema initialization.

PostgreSQL is the production store (real ``SELECT ... FOR UPDATE`` row
locks); SQLite is supported for local use and tests, where every
transaction takes the database write lock when it begins.

SQLAlchemy Core (not ORM) is used because every operation is a short,
explicit statement issued against a connection the executor owns.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Connection, create_engine, event, func, insert, select
from sqlalchemy.engine import Engine

from soundgood.infrastructure.database.schema import (
    MAX_RENTAL_MONTHS_KEY,
    MAX_RENTALS_KEY,
    business_rules,
    instrument_types,
    instruments,
    metadata,
    rentings,
    students,
)

_DEMO_TYPES: tuple[tuple[int, str], ...] = ((1, "guitar"), (2, "piano"))

_DEMO_INSTRUMENTS: tuple[dict[str, Any], ...] = (
    {"instrument_type_id": 1, "brand": "Gibson", "model": "J-45 Studio Walnut",
     "price": Decimal("101.01"), "count": 1},
    {"instrument_type_id": 2, "brand": "Steinway & Sons", "model": "K-132",
     "price": Decimal("202.02"), "count": 2},
    {"instrument_type_id": 1, "brand": "Taylor", "model": "414ce",
     "price": Decimal("303.03"), "count": 3},
    {"instrument_type_id": 2, "brand": "Sauter", "model": "Alpha 160",
     "price": Decimal("404.04"), "count": 4},
)  # fmt: skip

_DEMO_STUDENTS: tuple[dict[str, str], ...] = (
    {"name": "Liberty Melton", "email": "ac.eleifend@outlook.edu"},
    {"name": "Leila Kerr", "email": "duis@icloud.com"},
    {"name": "Contact Melton", "email": "kth.eleifend@outlook.edu"},
)


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url*.

    SQLite connections get foreign keys enabled, and every transaction
    starts with ``BEGIN IMMEDIATE``: SQLite ignores ``FOR UPDATE``, so the
    database write lock taken up front is what serializes two executors.
    The driver's own deferred BEGIN is switched off so SQLAlchemy emits it.
    """
    engine = create_engine(url, echo=echo)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn: Connection) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_database(
    engine: Engine,
    *,
    seed: bool = True,
    max_rentals: int = 2,
    max_rental_months: int = 12,
) -> dict[str, int]:
    """Create all tables and optionally seed the demo catalog.

    Idempotent: tables are created only if missing and seeding is skipped
    when the catalog already holds instrument types.

    Returns the number of rows inserted per table (empty when nothing was seeded).
    """
    metadata.create_all(engine)
    if not seed:
        return {}
    return _seed_demo_data(engine, max_rentals=max_rentals, max_rental_months=max_rental_months)


def _seed_demo_data(engine: Engine, *, max_rentals: int, max_rental_months: int) -> dict[str, int]:
    with engine.begin() as conn:
        existing = conn.execute(select(func.count()).select_from(instrument_types)).scalar_one()
        if existing:
            return {}

        conn.execute(
            insert(instrument_types),
            [{"instrument_type_id": tid, "instrument_type": name} for tid, name in _DEMO_TYPES],
        )
        conn.execute(insert(instruments), list(_DEMO_INSTRUMENTS))
        conn.execute(
            insert(business_rules),
            [
                {"name": MAX_RENTALS_KEY, "value": str(max_rentals)},
                {"name": MAX_RENTAL_MONTHS_KEY, "value": str(max_rental_months)},
            ],
        )
        conn.execute(insert(students), list(_DEMO_STUDENTS))
        conn.execute(
            insert(rentings),
            [
                {
                    "student_id": 1,
                    "instrument_id": 2,
                    "start_date": datetime(2022, 4, 1, 9, tzinfo=UTC),
                    "end_date": None,
                },
                {
                    "student_id": 2,
                    "instrument_id": 2,
                    "start_date": datetime(2022, 4, 1, 9, tzinfo=UTC),
                    "end_date": datetime(2022, 5, 15, 9, tzinfo=UTC),
                },
            ],
        )

    return {
        "instrument_types": len(_DEMO_TYPES),
        "instruments": len(_DEMO_INSTRUMENTS),
        "business_rules": 2,
        "students": len(_DEMO_STUDENTS),
        "rentings": 2,
    }
