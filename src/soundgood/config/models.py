"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, soundgood.toml only contains overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    """[database] section.

    ``url`` is any SQLAlchemy URL, e.g.
    ``postgresql+psycopg://user:pw@localhost/soundgood``. When unset the
    store is a SQLite file next to the config (or in the working directory).
    """

    model_config = {"frozen": True}

    url: str | None = None
    echo: bool = False


class RentalsConfig(BaseModel):
    """[rentals] section, written to business_rules by ``init``."""

    model_config = {"frozen": True}

    max_rentals: int = Field(default=2, ge=0)
    max_rental_months: int = Field(default=12, ge=1)


class ReplConfig(BaseModel):
    """[repl] section."""

    model_config = {"frozen": True}

    prompt: str = "🎵>>>"
    banner: bool = True
