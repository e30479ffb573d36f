"""Identifier parsing.

Student, instrument, and renting ids are 32-bit signed integers, typed
by the user as decimal text. Parsing is strict: no surrounding text, no
digit separators, no floats.
"""

from __future__ import annotations

import re

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def parse_int32(raw: str) -> int:
    """Parse *raw* as a 32-bit signed integer.

    Raises:
        ValueError: If *raw* is not an optionally signed run of digits
            or falls outside the 32-bit range.

    Examples:
        >>> parse_int32("42")
        42
        >>> parse_int32("+7")
        7
    """
    if not _INT_PATTERN.fullmatch(raw):
        msg = f"invalid digit found in {raw!r}" if raw else "cannot parse integer from empty string"
        raise ValueError(msg)
    value = int(raw)
    if not INT32_MIN <= value <= INT32_MAX:
        msg = f"number {raw!r} out of range for a 32-bit integer"
        raise ValueError(msg)
    return value


def parse_count(raw: str) -> int:
    """Parse a configuration count (64-bit range, no sign restrictions)."""
    if not _INT_PATTERN.fullmatch(raw):
        msg = f"invalid digit found in {raw!r}" if raw else "cannot parse integer from empty string"
        raise ValueError(msg)
    return int(raw)
