"""Database engine, schema, and initialization via SQLAlchemy Core."""

from soundgood.infrastructure.database.engine import create_db_engine, init_database
from soundgood.infrastructure.database.schema import (
    MAX_RENTALS_KEY,
    business_rules,
    instrument_types,
    instruments,
    metadata,
    rentings,
    students,
)

__all__ = [
    "MAX_RENTALS_KEY",
    "business_rules",
    "create_db_engine",
    "init_database",
    "instrument_types",
    "instruments",
    "metadata",
    "rentings",
    "students",
]
