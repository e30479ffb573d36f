"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy store/executor initialization,
one-shot transaction handling, and centralized result emission
(stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from soundgood.output.formatters import OutputSettings
from soundgood.repl.loop import emit as echo_result

if TYPE_CHECKING:
    from soundgood.config.settings import SoundgoodSettings
    from soundgood.infrastructure.store import Store
    from soundgood.services.executor import CommandExecutor
    from soundgood.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The store is created lazily on first use so ``--help`` and
    ``--version`` never touch the database.
    """

    def __init__(self, settings: SoundgoodSettings) -> None:
        self.settings = settings
        self._store: Store | None = None
        self._executor: CommandExecutor | None = None

        from soundgood.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> Store:
        """The store (created lazily on first access)."""
        if self._store is None:
            from soundgood.infrastructure.store import Store

            self._store = Store(self.settings.database_url, echo=self.settings.database.echo)
        return self._store

    @property
    def executor(self) -> CommandExecutor:
        """The command executor bound to :attr:`store` (created lazily)."""
        if self._executor is None:
            from soundgood.services.executor import CommandExecutor

            self._executor = CommandExecutor(self.store)
        return self._executor

    @property
    def output(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        echo_result(result, self.output)
        if not result.ok:
            raise SystemExit(1)

    def begin(self) -> CommandExecutor:
        """Open the transaction for a one-shot command (exits 1 if it fails)."""
        executor = self.executor
        begun = executor.begin()
        if not begun.ok:
            self.emit(begun)
        return executor

    def complete(self, result: ServiceResult) -> ServiceResult:
        """Commit after a successful one-shot command, roll back otherwise.

        Returns *result*, or the failed commit result if committing failed.
        """
        executor = self.executor
        if not executor.in_transaction:
            return result
        if result.ok:
            committed = executor.commit()
            if not committed.ok:
                return committed
        else:
            executor.rollback()
        return result

    def close(self) -> None:
        """Roll back anything left open and release the database."""
        from soundgood.services.errors import ShutdownError

        try:
            if self._executor is not None:
                self._executor.close()
            elif self._store is not None:
                self._store.close()
        except ShutdownError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            self._executor = None
            self._store = None
