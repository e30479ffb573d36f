"""Subcommand modules for soundgood.

Provides register_commands() which uses deferred imports to keep
``soundgood --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from soundgood.commands.init_cmd import init_cmd
    from soundgood.commands.list_cmd import list_cmd
    from soundgood.commands.rent import rent
    from soundgood.commands.repl_cmd import repl
    from soundgood.commands.terminate import terminate

    cli.add_command(init_cmd)
    cli.add_command(repl)
    cli.add_command(list_cmd)
    cli.add_command(rent)
    cli.add_command(terminate)
