"""Command: terminate a renting."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.commands._base import SgCommand
from soundgood.domain.commands import TerminateById, TryTerminate
from soundgood.services.errors import ErrorCode

if TYPE_CHECKING:
    from soundgood.commands._context import AppContext


@click.command(
    cls=SgCommand,
    examples="""\
  soundgood terminate 3 1
  soundgood terminate --id 7
  soundgood --no-interact terminate 3 1""",
)
@click.argument("student", required=False)
@click.argument("instrument", required=False)
@click.option("--id", "rent_id", default=None, help="Terminate this renting id directly.")
@click.pass_obj
def terminate(
    app: AppContext,
    student: str | None,
    instrument: str | None,
    rent_id: str | None,
) -> None:
    """Terminate the renting of INSTRUMENT by STUDENT, or a renting by --id.

    When the student has several active rentings of the instrument, the
    candidates are listed and the id to terminate is prompted for
    (unless --no-interact, which fails instead).
    """
    if rent_id is not None:
        executor = app.begin()
        app.emit(app.complete(executor.execute(TerminateById(rent_id))))
        return

    if student is None or instrument is None:
        msg = "Give STUDENT and INSTRUMENT, or --id."
        raise click.UsageError(msg)

    executor = app.begin()
    result = executor.execute(TryTerminate(student, instrument))
    if result.code == ErrorCode.AMBIGUOUS_TERMINATION and not app.settings.no_interact:
        from soundgood.repl.loop import emit

        emit(result, app.output)
        chosen = click.prompt("ID to terminate", type=str)
        result = executor.execute(TerminateById(chosen.strip()))
    app.emit(app.complete(result))
