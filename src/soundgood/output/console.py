"""Rich console factory and the soundgood theme.

Renderers draw into an in-memory console and hand back the text, so
``format_result`` stays a pure ``ServiceResult -> str`` function. A
StringIO target is not a terminal, so no ANSI codes reach pipes or tests.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

SG_THEME = Theme(
    {
        "sg.ok": "bold green",
        "sg.error": "bold red",
        "sg.warning": "bold yellow",
        "sg.op": "bold cyan",
        "sg.key": "dim",
        "sg.id": "bold blue",
        "sg.brand": "bold",
        "sg.price": "magenta",
        "sg.available": "green",
        "sg.scarce": "yellow",
    }
)

DEFAULT_WIDTH = 120


def create_console(*, width: int = DEFAULT_WIDTH) -> Console:
    """A themed console writing into a fresh buffer."""
    return Console(file=StringIO(), theme=SG_THEME, highlight=False, width=width)


def get_output(console: Console) -> str:
    """Everything written to a console from :func:`create_console`."""
    buffer = console.file
    assert isinstance(buffer, StringIO)
    return buffer.getvalue()


def style_for_available(available: int) -> str:
    """Style for an availability count: the last unit is highlighted."""
    return "sg.scarce" if available == 1 else "sg.available"
