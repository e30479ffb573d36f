"""Database initialization service for ``soundgood init``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from soundgood.infrastructure.database.engine import init_database
from soundgood.services.errors import StoreError
from soundgood.services.result import ServiceResult

if TYPE_CHECKING:
    from soundgood.config.models import RentalsConfig
    from soundgood.infrastructure.store import Store

logger = logging.getLogger(__name__)


def init_store(store: Store, *, rentals: RentalsConfig, seed: bool = True) -> ServiceResult:
    """Create the schema and, unless disabled, seed the demo catalog.

    Seeding is skipped when the catalog already exists; the result then
    carries a warning instead of row counts.
    """
    op = "init"
    database = store.engine.url.render_as_string(hide_password=True)
    try:
        seeded = init_database(
            store.engine,
            seed=seed,
            max_rentals=rentals.max_rentals,
            max_rental_months=rentals.max_rental_months,
        )
    except SQLAlchemyError as exc:
        logger.warning("Database initialization failed: %s", exc)
        return ServiceResult(ok=False, op=op, error=StoreError(exc).to_service_error())

    warnings: list[str] = []
    if seed and not seeded:
        warnings.append("Catalog already present; demo data not seeded")
    return ServiceResult(
        ok=True,
        op=op,
        data={"database": database, "seeded": seeded},
        warnings=warnings,
    )
