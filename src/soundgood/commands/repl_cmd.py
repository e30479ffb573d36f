"""Command: interactive console."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.commands._base import SgCommand

if TYPE_CHECKING:
    from soundgood.commands._context import AppContext


@click.command(
    cls=SgCommand,
    examples="""\
  soundgood repl
  soundgood --json repl
  soundgood repl --no-banner""",
)
@click.option("--no-banner", is_flag=True, help="Skip the welcome text.")
@click.pass_obj
def repl(app: AppContext, no_banner: bool) -> None:
    """Start the interactive rental console.

    Transactions span commands: begin, rent or terminate, then commit.
    Anything not committed when the console exits is rolled back.
    """
    from soundgood.repl.loop import run_repl

    run_repl(
        app.executor,
        prompt=app.settings.repl.prompt,
        settings=app.output,
        banner=app.settings.repl.banner and not no_banner,
    )
