"""CommandExecutor — transaction-scoped execution of rental commands.

The executor owns at most one open :class:`StoreTransaction`. Commands
that read or write rentings require it and fail with
``NO_ACTIVE_TRANSACTION`` otherwise; ``begin``, ``commit`` and ``rollback``
manage it explicitly.

Concurrency control lives in the database: admission and termination by
(student, instrument) first lock every renting row of the student OR the
instrument, so two transactions touching the same student or the same
instrument are totally ordered and the check-then-act sequences below are
atomic. The locks are released when the transaction ends.

INVARIANT: every public method returns a ServiceResult; recoverable
failures never escape as exceptions. Only :meth:`close` raises.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Concatenate, ParamSpec

from sqlalchemy.exc import SQLAlchemyError

from soundgood.domain.commands import (
    Begin,
    Command,
    Commit,
    ListItems,
    Rent,
    Rollback,
    TerminateById,
    TryTerminate,
)
from soundgood.domain.ids import parse_count, parse_int32
from soundgood.infrastructure.database.schema import MAX_RENTALS_KEY
from soundgood.infrastructure.repositories import rentals as gateway
from soundgood.services.errors import (
    AmbiguousTermination,
    ExecutorError,
    InvalidConfiguration,
    InvalidIdentifier,
    NoActiveTransaction,
    NotFound,
    RentalCapExceeded,
    ShutdownError,
    StoreError,
)
from soundgood.services.result import ServiceResult

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy import Connection

    from soundgood.infrastructure.store import Store, StoreTransaction

logger = logging.getLogger(__name__)

P = ParamSpec("P")


def _command(
    op: str,
) -> Callable[
    [Callable[Concatenate[CommandExecutor, P], ServiceResult]],
    Callable[Concatenate[CommandExecutor, P], ServiceResult],
]:
    """Turn raised executor and store errors into failed results for *op*."""

    def decorator(
        fn: Callable[Concatenate[CommandExecutor, P], ServiceResult],
    ) -> Callable[Concatenate[CommandExecutor, P], ServiceResult]:
        @functools.wraps(fn)
        def wrapper(self: CommandExecutor, *args: P.args, **kwargs: P.kwargs) -> ServiceResult:
            try:
                return fn(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                logger.warning("Store error during %s: %s", op, exc)
                return self._fail(op, StoreError(exc))
            except ExecutorError as exc:
                logger.debug("%s failed: %s", op, exc.code)
                return self._fail(op, exc)

        return wrapper

    return decorator


def _parse_id(field: str, raw: str) -> int:
    try:
        return parse_int32(raw)
    except ValueError as exc:
        raise InvalidIdentifier(field, raw, str(exc)) from exc


def _parse_pair(student: str, instrument: str) -> tuple[int, int]:
    return _parse_id("student", student), _parse_id("instrument", instrument)


class CommandExecutor:
    """Executes commands against the store inside one explicit transaction.

    Single-threaded: one command is in flight per executor. Other
    executors (or clients) may hold their own transactions concurrently.

    Usage::

        with CommandExecutor(store) as executor:
            executor.execute(Begin())
            result = executor.execute(Rent("3", "1"))
            executor.execute(Commit())
    """

    def __init__(self, store: Store) -> None:
        self._store = store
        self._transaction: StoreTransaction | None = None

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open."""
        return self._transaction is not None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> ServiceResult:
        """Dispatch *command* to its operation."""
        if isinstance(command, Begin):
            return self.begin()
        if isinstance(command, Commit):
            return self.commit()
        if isinstance(command, Rollback):
            return self.rollback()
        if isinstance(command, Rent):
            return self.rent(command.student, command.instrument)
        if isinstance(command, TerminateById):
            return self.terminate(command.rent_id)
        if isinstance(command, TryTerminate):
            return self.try_terminate(command.student, command.instrument)
        if isinstance(command, ListItems):
            return self.list_items(command.instrument_type)
        msg = f"Unknown command: {command!r}"
        raise TypeError(msg)

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    @_command("begin")
    def begin(self) -> ServiceResult:
        """Start a transaction, rolling back (discarding) any open one first."""
        previous, self._transaction = self._transaction, None
        if previous is not None:
            logger.debug("Rolling back open transaction before begin")
            previous.rollback()
        self._transaction = self._store.begin()
        return self._ok("begin")

    @_command("commit")
    def commit(self) -> ServiceResult:
        self._take().commit()
        return self._ok("commit")

    @_command("rollback")
    def rollback(self) -> ServiceResult:
        self._take().rollback()
        return self._ok("rollback")

    def close(self) -> None:
        """Roll back any open transaction and dispose of the store.

        Raises:
            ShutdownError: If the open transaction could not be rolled back.
        """
        transaction, self._transaction = self._transaction, None
        try:
            if transaction is not None:
                try:
                    transaction.rollback()
                except SQLAlchemyError as exc:
                    msg = f"Failed to roll back open transaction on shutdown: {exc}"
                    raise ShutdownError(msg) from exc
                logger.debug("Rolled back open transaction on shutdown")
        finally:
            self._store.close()

    def __enter__(self) -> CommandExecutor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Rental admission
    # ------------------------------------------------------------------

    @_command("rent")
    def rent(self, student: str, instrument: str) -> ServiceResult:
        """Rent *instrument* to *student* unless the student is at the cap."""
        student_id, instrument_id = _parse_pair(student, instrument)
        conn = self._guard()

        gateway.lock_rentings(conn, student_id, instrument_id)
        maximum = self._max_rentals(conn)
        active = gateway.count_student_rentals(conn, student_id)

        if active >= maximum:
            raise RentalCapExceeded(student_id, active, maximum)

        rows = gateway.insert_renting(conn, student_id, instrument_id)
        logger.debug(
            "Renting admitted: student=%s instrument=%s (%s/%s active before)",
            student_id,
            instrument_id,
            active,
            maximum,
        )
        return self._ok(
            "rent",
            {"rows_affected": rows, "student_id": student_id, "instrument_id": instrument_id},
        )

    def _max_rentals(self, conn: Connection) -> int:
        raw = gateway.read_business_rule(conn, MAX_RENTALS_KEY)
        if raw is None:
            raise InvalidConfiguration(MAX_RENTALS_KEY, None, "rule is not set")
        try:
            return parse_count(raw)
        except ValueError as exc:
            raise InvalidConfiguration(MAX_RENTALS_KEY, raw, str(exc)) from exc

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    @_command("terminate")
    def terminate(self, rent_id: str) -> ServiceResult:
        """End a renting by id.

        Zero matching rows is a success with ``rows_affected == 0`` and a
        warning; already-ended rentings never match.
        """
        conn = self._guard()
        rid = _parse_id("renting", rent_id)
        rows = gateway.end_renting(conn, rid)
        warnings: list[str] = []
        if rows == 0:
            warnings.append(f"No active renting with id {rid}")
        return self._ok("terminate", {"rows_affected": rows, "rent_id": rid}, warnings=warnings)

    @_command("try_terminate")
    def try_terminate(self, student: str, instrument: str) -> ServiceResult:
        """End the single active renting of *student* and *instrument*.

        With several candidates nothing is changed: the result is an
        ``AMBIGUOUS_TERMINATION`` error listing them, and the transaction
        with its row locks stays open so the caller can follow up with
        :meth:`terminate` on a chosen id.
        """
        student_id, instrument_id = _parse_pair(student, instrument)
        conn = self._guard()

        gateway.lock_rentings(conn, student_id, instrument_id)
        candidates = gateway.find_active_rentings(conn, student_id, instrument_id)

        if not candidates:
            raise NotFound(
                f"No active renting of instrument {instrument_id} by student {student_id}",
                student_id=student_id,
                instrument_id=instrument_id,
            )
        if len(candidates) > 1:
            raise AmbiguousTermination(candidates)

        target = candidates[0]
        rows = gateway.end_renting(conn, target.rent_id)
        return self._ok("try_terminate", {"rows_affected": rows, "rent_id": target.rent_id})

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @_command("list")
    def list_items(self, instrument_type: str | None = None) -> ServiceResult:
        """Instruments with at least one unit available to rent.

        *instrument_type* is a case-insensitive category prefix.
        """
        conn = self._guard()

        data: dict[str, Any] = {}
        if instrument_type is not None:
            resolved = gateway.find_instrument_type(conn, instrument_type)
            if resolved is None:
                raise NotFound(
                    f"No instrument type matching {instrument_type!r}",
                    instrument_type=instrument_type,
                )
            type_id, type_name = resolved
            data["instrument_type"] = type_name
            catalog = gateway.list_instruments_by_type(conn, type_id)
        else:
            catalog = gateway.list_instruments(conn)

        items: list[dict[str, Any]] = []
        for item in catalog:
            available = item.count - gateway.count_instrument_rentals(conn, item.instrument_id)
            if available > 0:
                entry = item.to_dict(available=available)
                entry["summary"] = item.describe(available)
                items.append(entry)

        if not items:
            raise NotFound("No instruments available to rent", **data)

        data["items"] = items
        data["count"] = len(items)
        return self._ok("list", data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _guard(self) -> Connection:
        """Connection of the open transaction, or NO_ACTIVE_TRANSACTION."""
        if self._transaction is None:
            raise NoActiveTransaction
        return self._transaction.conn

    def _take(self) -> StoreTransaction:
        """Detach the open transaction from the executor."""
        transaction, self._transaction = self._transaction, None
        if transaction is None:
            raise NoActiveTransaction
        return transaction

    def _ok(
        self,
        op: str,
        data: dict[str, Any] | None = None,
        *,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        return ServiceResult(
            ok=True,
            op=op,
            data=data or {},
            warnings=warnings or [],
            meta={"in_transaction": self.in_transaction},
        )

    def _fail(self, op: str, exc: ExecutorError) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=exc.to_service_error(),
            meta={"in_transaction": self.in_transaction},
        )
