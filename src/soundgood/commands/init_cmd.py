"""Command: database initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.commands._base import SgCommand

if TYPE_CHECKING:
    from soundgood.commands._context import AppContext


@click.command(
    "init",
    cls=SgCommand,
    examples="""\
  soundgood init
  soundgood init --no-seed
  soundgood --database-url postgresql+psycopg://localhost/soundgood init""",
)
@click.option("--no-seed", is_flag=True, help="Create tables only, without demo data.")
@click.pass_obj
def init_cmd(app: AppContext, no_seed: bool) -> None:
    """Create the rental tables and seed the demo catalog."""
    from soundgood.services.init import init_store

    app.emit(init_store(app.store, rentals=app.settings.rentals, seed=not no_seed))
