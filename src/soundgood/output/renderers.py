"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic status line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from soundgood.output.console import create_console, get_output, style_for_available
from soundgood.services.errors import ErrorCode

if TYPE_CHECKING:
    from rich.console import Console

    from soundgood.services.result import ServiceResult

_TRANSACTION_MESSAGES: dict[str, str] = {
    "begin": "Begun new transaction!",
    "commit": "Committed!",
    "rollback": "Rolled back!",
}


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode.

    An ambiguous termination still lists the candidate ids, one per line,
    since the caller is about to be asked for one of them.
    """
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        lines = [f"ERROR: {result.op} — {msg}"]
        if result.code == ErrorCode.AMBIGUOUS_TERMINATION:
            lines.extend(str(c["id"]) for c in result.candidates if "id" in c)
        return "\n".join(lines)

    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item["id"]) for item in items if "id" in item)

    if "rows_affected" in result.data:
        return str(result.data["rows_affected"])

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult, message: str | None = None) -> None:
    label = Text("OK", style="sg.ok")
    op = Text(f"  {result.op}", style="sg.op")
    if message:
        console.print(label, op, Text(f"  {message}"), end="")
    else:
        console.print(label, op, end="")
    console.print()


def _candidate_table(candidates: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Rent ID", style="sg.id", no_wrap=True, justify="right")
    table.add_column("Student", justify="right")
    table.add_column("Instrument", justify="right")
    table.add_column("Started")
    for c in candidates:
        table.add_row(
            str(c.get("id", "")),
            str(c.get("student_id", "")),
            str(c.get("instrument_id", "")),
            str(c.get("start_date", "")),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="sg.error")
    op = Text(f"  {result.op}", style="sg.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if err is None:
        return

    if err.code == ErrorCode.AMBIGUOUS_TERMINATION:
        console.print("Please pick one from the following list:")
        console.print(_candidate_table(result.candidates))
    elif verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Success renderers ─────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result, _TRANSACTION_MESSAGES.get(result.op))
    if verbose and result.meta:
        for k, v in result.meta.items():
            console.print(Text(f"  {k}: {v}", style="dim"))


def _render_rows(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render rent / terminate / try_terminate as rows affected."""
    verb = "Rented!" if result.op == "rent" else "Terminated!"
    rows = result.data.get("rows_affected", 0)
    _status_line(console, result, f"{verb} {rows} rows affected!")
    if verbose:
        for key in ("rent_id", "student_id", "instrument_id"):
            if key in result.data:
                console.print(Text(f"  {key}: ", style="sg.key"), Text(str(result.data[key])))


def _render_catalog(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the availability-annotated instrument list."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="sg.id", no_wrap=True, justify="right")
    table.add_column("Model")
    table.add_column("Brand", style="sg.brand")
    table.add_column("Price", style="sg.price", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("Total", justify="right")
    if verbose:
        table.add_column("Type", style="dim")

    for item in items:
        available = int(item.get("available", 0))
        row: list[Any] = [
            str(item.get("id", "")),
            str(item.get("model", "")),
            str(item.get("brand", "")),
            str(item.get("price", "")),
            Text(str(available), style=style_for_available(available)),
            str(item.get("total", "")),
        ]
        if verbose:
            row.append(str(item.get("type_id", "")))
        table.add_row(*row)

    console.print(table)
    heading = result.data.get("instrument_type")
    suffix = f" ({heading})" if heading else ""
    console.print(f"\n{result.data.get('count', len(items))} instruments available{suffix}")


_OP_RENDERERS = {
    "list": _render_catalog,
    "rent": _render_rows,
    "terminate": _render_rows,
    "try_terminate": _render_rows,
}
