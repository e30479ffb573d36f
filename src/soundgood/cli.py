"""Root CLI group for soundgood with global flags and command registration."""

from __future__ import annotations

import click

from soundgood import __version__
from soundgood.commands import register_commands
from soundgood.commands._context import AppContext
from soundgood.config.settings import SoundgoodSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="soundgood")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only ids or row counts.")
@click.option("-v", "--verbose", is_flag=True, help="Show error detail and debug logs.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option("--no-interact", is_flag=True, help="Never prompt; ambiguous terminations fail.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Use this soundgood.toml instead of searching for one.",
)
@click.option("--database-url", default=None, help="SQLAlchemy URL; overrides [database] url.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
    database_url: str | None,
) -> None:
    """soundgood — instrument rental console for the Soundgood music school.

    Without a command, starts the interactive console.
    """
    settings = SoundgoodSettings.from_cli(
        config_path=config_path,
        database_url=database_url,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        no_interact=no_interact,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        from soundgood.commands.repl_cmd import repl

        ctx.invoke(repl)


register_commands(cli)
