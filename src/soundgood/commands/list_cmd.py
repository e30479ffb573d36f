"""Command: list instruments available to rent."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.commands._base import SgCommand
from soundgood.domain.commands import ListItems

if TYPE_CHECKING:
    from soundgood.commands._context import AppContext


@click.command(
    "list",
    cls=SgCommand,
    examples="""\
  soundgood list
  soundgood list guitar
  soundgood list pi
  soundgood -q list""",
)
@click.argument("instrument_type", required=False)
@click.pass_obj
def list_cmd(app: AppContext, instrument_type: str | None) -> None:
    """List instruments with units left to rent, optionally by type prefix."""
    executor = app.begin()
    app.emit(app.complete(executor.execute(ListItems(instrument_type))))
