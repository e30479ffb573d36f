"""Command: rent an instrument to a student."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.commands._base import SgCommand
from soundgood.domain.commands import Rent

if TYPE_CHECKING:
    from soundgood.commands._context import AppContext


@click.command(
    cls=SgCommand,
    examples="""\
  soundgood rent 3 1
  soundgood --json rent 3 4""",
)
@click.argument("student")
@click.argument("instrument")
@click.pass_obj
def rent(app: AppContext, student: str, instrument: str) -> None:
    """Rent INSTRUMENT to STUDENT, committed immediately."""
    executor = app.begin()
    app.emit(app.complete(executor.execute(Rent(student, instrument))))
