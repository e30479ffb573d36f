"""Console command parser.

Commands are recognized by their leading letters, so both ``b`` and
``begin`` start a transaction::

    b(egin)  c(ommit)  h(elp)  l(ist) [type]  q(uit)
    re(nt) STUDENT INSTRUMENT  ro(llback)  t(erminate) STUDENT INSTRUMENT

Parsing does not validate identifiers; the executor does.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TypeAlias

from soundgood.domain.commands import (
    Begin,
    Command,
    Commit,
    ListItems,
    Rent,
    Rollback,
    TryTerminate,
)


class Action(StrEnum):
    """Console-level requests handled by the loop, not the executor."""

    HELP = "help"
    QUIT = "quit"


ParseResult: TypeAlias = Action | Command


class ParseErrorKind(StrEnum):
    DEFAULT = "default"
    NO_STUDENT = "no_student"
    NO_INSTRUMENT = "no_instrument"


_MESSAGES: dict[ParseErrorKind, str] = {
    ParseErrorKind.DEFAULT: "Command not understood! Invalid command.",
    ParseErrorKind.NO_STUDENT: "Command not understood! Missing student in command!",
    ParseErrorKind.NO_INSTRUMENT: "Command not understood! Missing instrument in command!",
}


class ParseError(ValueError):
    """A console line that does not form a command."""

    def __init__(self, kind: ParseErrorKind) -> None:
        super().__init__(_MESSAGES[kind])
        self.kind = kind


def parse_command(line: str) -> ParseResult:
    """Parse one console line.

    Raises:
        ParseError: If the line is empty, unrecognized, or misses arguments.

    Examples:
        >>> parse_command("rent 1 2")
        Rent(student='1', instrument='2')
        >>> parse_command("l gui")
        ListItems(instrument_type='gui')
    """
    words = line.split()
    if not words:
        raise ParseError(ParseErrorKind.DEFAULT)

    head, args = words[0], words[1:]
    first = head[0]
    if first == "b":
        return Begin()
    if first == "c":
        return Commit()
    if first == "h":
        return Action.HELP
    if first == "l":
        return ListItems(args[0] if args else None)
    if first == "q":
        return Action.QUIT
    if first == "t":
        student, instrument = _student_and_instrument(args)
        return TryTerminate(student, instrument)
    if first == "r":
        second = head[1:2]
        if second == "e":
            student, instrument = _student_and_instrument(args)
            return Rent(student, instrument)
        if second == "o":
            return Rollback()
    raise ParseError(ParseErrorKind.DEFAULT)


def _student_and_instrument(args: list[str]) -> tuple[str, str]:
    if not args:
        raise ParseError(ParseErrorKind.NO_STUDENT)
    if len(args) < 2:
        raise ParseError(ParseErrorKind.NO_INSTRUMENT)
    return args[0], args[1]
