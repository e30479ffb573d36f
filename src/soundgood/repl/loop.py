"""Interactive read-execute-print loop.

Reads a line, parses it, runs it on the executor, and prints the result.
Help and quit are handled here since they only affect the console. When
a termination is ambiguous the loop asks for the renting id and
terminates it inside the same transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click

from soundgood.domain.commands import TerminateById, TryTerminate
from soundgood.output.formatters import OutputSettings, format_result
from soundgood.repl.parser import Action, ParseError, parse_command
from soundgood.services.errors import ErrorCode

if TYPE_CHECKING:
    from soundgood.services.executor import CommandExecutor
    from soundgood.services.result import ServiceResult

logger = logging.getLogger(__name__)

WELCOME = "Welcome to the 🎵 Soundgood Music School Database Program 🎵"

HELP_TEXT = """\
Commands: (is optional) [is required]
Begin:\t\tb(egin)
Commit:\t\tc(ommit)
Help:\t\th(elp)
List:\t\tl(ist) (instrument_type)
Quit:\t\tq(uit)
Rent:\t\tre(nt) [student] [instrument]
Rollback:\tro(llback)
Terminate:\tt(erminate) [student] [instrument]"""


def emit(result: ServiceResult, settings: OutputSettings) -> None:
    """Print *result*: successes to stdout, failures and warnings to stderr."""
    output = format_result(result, settings=settings)
    if result.ok:
        click.echo(output)
        if not settings.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
    else:
        click.echo(output, err=True)


def _read(prompt: str) -> str | None:
    """Read one line, or None on end of input / interrupt."""
    try:
        return click.prompt(prompt, default="", show_default=False, prompt_suffix=" ")
    except click.Abort:
        return None


def resolve_ambiguous(executor: CommandExecutor, settings: OutputSettings) -> ServiceResult | None:
    """Ask which renting to terminate and terminate it.

    Returns None when input ended before an id was given.
    """
    raw = _read("ID to terminate:")
    if raw is None:
        return None
    result = executor.execute(TerminateById(raw.strip()))
    emit(result, settings)
    return result


def run_repl(
    executor: CommandExecutor,
    *,
    prompt: str = "🎵>>>",
    settings: OutputSettings | None = None,
    banner: bool = True,
) -> None:
    """Run the console until ``quit`` or end of input.

    The executor is left open; the caller closes it (rolling back any
    transaction that was not committed).
    """
    settings = settings or OutputSettings()
    if banner:
        click.echo(WELCOME)
        click.echo(HELP_TEXT)

    while True:
        line = _read(f"\n{prompt}")
        if line is None:
            click.echo()
            break
        if not line.strip():
            continue

        try:
            parsed = parse_command(line)
        except ParseError as exc:
            click.echo(str(exc), err=True)
            continue

        if parsed is Action.QUIT:
            break
        if parsed is Action.HELP:
            click.echo(HELP_TEXT)
            continue

        result = executor.execute(parsed)
        emit(result, settings)

        if isinstance(parsed, TryTerminate) and result.code == ErrorCode.AMBIGUOUS_TERMINATION:
            resolve_ambiguous(executor, settings)

    if executor.in_transaction:
        logger.debug("Leaving console with an open transaction; it will be rolled back")
