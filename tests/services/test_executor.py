"""Tests for CommandExecutor: transactions, admission, termination, listing."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from soundgood.domain.commands import (
    Begin,
    Commit,
    ListItems,
    Rent,
    Rollback,
    TerminateById,
    TryTerminate,
)
from soundgood.infrastructure.store import Store
from soundgood.services.errors import ErrorCode, ShutdownError
from soundgood.services.executor import CommandExecutor
from soundgood.services.result import ServiceResult
from tests.conftest import count_active, set_business_rule

STUDENT = "3"
INSTRUMENT = "1"


def _rent_ok(executor: CommandExecutor, student: str = STUDENT, instrument: str = INSTRUMENT) -> None:
    result = executor.rent(student, instrument)
    assert result.ok, result.error
    assert result.data["rows_affected"] == 1


# ---------------------------------------------------------------------------
# Transaction lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_begin_opens_transaction(self, executor: CommandExecutor) -> None:
        assert executor.in_transaction is False
        result = executor.begin()
        assert result.ok
        assert result.op == "begin"
        assert executor.in_transaction is True
        assert result.meta == {"in_transaction": True}

    def test_commit_without_transaction(self, executor: CommandExecutor) -> None:
        result = executor.commit()
        assert not result.ok
        assert result.code == ErrorCode.NO_ACTIVE_TRANSACTION

    def test_rollback_without_transaction(self, executor: CommandExecutor) -> None:
        result = executor.rollback()
        assert not result.ok
        assert result.code == ErrorCode.NO_ACTIVE_TRANSACTION

    def test_commit_persists(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun)
        result = begun.commit()
        assert result.ok
        assert begun.in_transaction is False
        assert count_active(store, student_id=3) == 1

    def test_rollback_discards(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun)
        result = begun.rollback()
        assert result.ok
        assert begun.in_transaction is False
        assert count_active(store, student_id=3) == 0

    def test_commit_twice_fails(self, begun: CommandExecutor) -> None:
        assert begun.commit().ok
        assert begun.commit().code == ErrorCode.NO_ACTIVE_TRANSACTION

    def test_begin_rolls_back_open_transaction(self, begun: CommandExecutor, store: Store) -> None:
        """A second begin discards the uncommitted work of the first."""
        _rent_ok(begun)
        assert begun.begin().ok
        assert begun.in_transaction is True
        # Instrument 1 owns a single unit; after the discard it is listed again.
        listed = begun.list_items()
        assert 1 in [item["id"] for item in listed.data["items"]]
        assert begun.commit().ok
        assert count_active(store, student_id=3) == 0

    def test_close_rolls_back_open_transaction(self, db_url: str) -> None:
        from soundgood.infrastructure.database.engine import init_database

        store = Store(db_url)
        init_database(store.engine)
        executor = CommandExecutor(store)
        executor.begin()
        _rent_ok(executor)
        executor.close()
        assert executor.in_transaction is False

        check = Store(db_url)
        try:
            assert count_active(check, student_id=3) == 0
        finally:
            check.close()

    def test_context_manager_closes(self, store: Store) -> None:
        with CommandExecutor(store) as executor:
            executor.begin()
        assert executor.in_transaction is False


class _FailingTransaction:
    def rollback(self) -> None:
        raise OperationalError("ROLLBACK", {}, Exception("connection lost"))

    def commit(self) -> None:  # pragma: no cover - not reached
        raise AssertionError


class _FailingStore:
    def __init__(self) -> None:
        self.closed = False

    def begin(self) -> Any:
        return _FailingTransaction()

    def close(self) -> None:
        self.closed = True


class TestShutdown:
    def test_failed_rollback_on_close_is_fatal(self) -> None:
        store = _FailingStore()
        executor = CommandExecutor(store)  # type: ignore[arg-type]
        assert executor.begin().ok
        with pytest.raises(ShutdownError, match="connection lost"):
            executor.close()
        assert store.closed is True
        assert executor.in_transaction is False

    def test_failed_rollback_on_begin_is_store_error(self) -> None:
        executor = CommandExecutor(_FailingStore())  # type: ignore[arg-type]
        executor.begin()
        result = executor.begin()
        assert result.code == ErrorCode.STORE_ERROR
        assert executor.in_transaction is False

    def test_close_without_transaction(self) -> None:
        store = _FailingStore()
        CommandExecutor(store).close()  # type: ignore[arg-type]
        assert store.closed is True


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


class TestGuard:
    @pytest.mark.parametrize(
        "command",
        [
            Rent(STUDENT, INSTRUMENT),
            TryTerminate(STUDENT, INSTRUMENT),
            TerminateById("1"),
            ListItems(),
            ListItems("guitar"),
        ],
        ids=lambda c: type(c).__name__,
    )
    def test_requires_transaction(
        self, executor: CommandExecutor, store: Store, command: Any
    ) -> None:
        before = count_active(store)
        result = executor.execute(command)
        assert not result.ok
        assert result.code == ErrorCode.NO_ACTIVE_TRANSACTION
        assert count_active(store) == before


# ---------------------------------------------------------------------------
# Rental admission
# ---------------------------------------------------------------------------


class TestRent:
    def test_rent_inserts_active_renting(self, begun: CommandExecutor) -> None:
        result = begun.rent(STUDENT, INSTRUMENT)
        assert result.ok
        assert result.op == "rent"
        assert result.data == {"rows_affected": 1, "student_id": 3, "instrument_id": 1}

    def test_cap_exceeded_after_max(self, begun: CommandExecutor, store: Store) -> None:
        """With rent_max_count = 2, the third rent fails and inserts nothing."""
        _rent_ok(begun)
        _rent_ok(begun)
        result = begun.rent(STUDENT, INSTRUMENT)
        assert not result.ok
        assert result.code == ErrorCode.RENTAL_CAP_EXCEEDED
        assert result.error is not None
        assert result.error.message == "This student has too many rentals!"
        assert result.error.detail == {"student_id": 3, "active": 2, "max": 2}
        # Transaction survives a business-rule rejection.
        assert begun.in_transaction is True
        assert begun.commit().ok
        assert count_active(store, student_id=3) == 2

    @pytest.mark.parametrize("maximum", [1, 3])
    def test_cap_follows_business_rule(self, executor: CommandExecutor, store: Store, maximum: int) -> None:
        set_business_rule(store, str(maximum))
        executor.begin()
        for _ in range(maximum):
            _rent_ok(executor, instrument="4")
        assert executor.rent(STUDENT, "4").code == ErrorCode.RENTAL_CAP_EXCEEDED

    def test_cap_zero_rejects_everything(self, executor: CommandExecutor, store: Store) -> None:
        set_business_rule(store, "0")
        executor.begin()
        assert executor.rent(STUDENT, INSTRUMENT).code == ErrorCode.RENTAL_CAP_EXCEEDED

    def test_cap_counts_existing_rentals(self, begun: CommandExecutor) -> None:
        """Student 1 already holds one active renting from the seed."""
        _rent_ok(begun, student="1", instrument="3")
        assert begun.rent("1", "3").code == ErrorCode.RENTAL_CAP_EXCEEDED

    def test_cap_applies_across_instruments(self, begun: CommandExecutor) -> None:
        _rent_ok(begun, instrument="1")
        _rent_ok(begun, instrument="3")
        assert begun.rent(STUDENT, "4").code == ErrorCode.RENTAL_CAP_EXCEEDED

    @pytest.mark.parametrize(
        ("student", "instrument", "field"),
        [
            ("x", "1", "student"),
            ("3", "one", "instrument"),
            ("", "1", "student"),
            ("3", "1.5", "instrument"),
            ("99999999999", "1", "student"),
        ],
    )
    def test_invalid_identifier(
        self, begun: CommandExecutor, student: str, instrument: str, field: str
    ) -> None:
        result = begun.rent(student, instrument)
        assert result.code == ErrorCode.INVALID_IDENTIFIER
        assert result.error is not None
        assert result.error.detail["field"] == field

    def test_invalid_identifier_checked_before_guard(self, executor: CommandExecutor) -> None:
        assert executor.rent("x", "1").code == ErrorCode.INVALID_IDENTIFIER

    @pytest.mark.parametrize("raw", ["two", "", "2.0"])
    def test_invalid_configuration(self, executor: CommandExecutor, store: Store, raw: str) -> None:
        set_business_rule(store, raw)
        executor.begin()
        result = executor.rent(STUDENT, INSTRUMENT)
        assert result.code == ErrorCode.INVALID_CONFIGURATION
        assert result.error is not None
        assert result.error.detail["value"] == raw

    def test_missing_configuration(self, executor: CommandExecutor, store: Store) -> None:
        from sqlalchemy import delete

        from soundgood.infrastructure.database.schema import business_rules

        with store.engine.begin() as conn:
            conn.execute(delete(business_rules))
        executor.begin()
        assert executor.rent(STUDENT, INSTRUMENT).code == ErrorCode.INVALID_CONFIGURATION

    def test_unknown_student_is_store_error(self, begun: CommandExecutor, store: Store) -> None:
        """A foreign key violation surfaces as STORE_ERROR and keeps the transaction."""
        _rent_ok(begun)
        result = begun.rent("999", INSTRUMENT)
        assert result.code == ErrorCode.STORE_ERROR
        assert begun.in_transaction is True
        assert begun.commit().ok
        assert count_active(store, student_id=3) == 1


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


class TestTryTerminate:
    def test_single_match_terminates(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun)
        result = begun.try_terminate(STUDENT, INSTRUMENT)
        assert result.ok
        assert result.op == "try_terminate"
        assert result.data["rows_affected"] == 1
        begun.commit()
        assert count_active(store, student_id=3) == 0

    def test_no_match_is_not_found(self, begun: CommandExecutor) -> None:
        result = begun.try_terminate(STUDENT, INSTRUMENT)
        assert result.code == ErrorCode.NOT_FOUND
        assert begun.in_transaction is True

    def test_ended_renting_not_matched(self, begun: CommandExecutor) -> None:
        """Seed renting 2 (student 2, instrument 2) has already ended."""
        assert begun.try_terminate("2", "2").code == ErrorCode.NOT_FOUND

    def test_multiple_matches_are_ambiguous(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun)
        _rent_ok(begun)
        result = begun.try_terminate(STUDENT, INSTRUMENT)
        assert result.code == ErrorCode.AMBIGUOUS_TERMINATION
        assert result.error is not None
        candidates = result.error.detail["candidates"]
        assert len(candidates) == 2
        assert {c["student_id"] for c in candidates} == {3}
        assert {c["instrument_id"] for c in candidates} == {1}
        assert all(c["end_date"] is None for c in candidates)
        # Nothing was terminated and the transaction is still open.
        assert begun.in_transaction is True
        begun.commit()
        assert count_active(store, student_id=3) == 2

    def test_ambiguous_then_terminate_by_id(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun)
        _rent_ok(begun)
        ambiguous = begun.execute(TryTerminate(STUDENT, INSTRUMENT))
        assert ambiguous.error is not None
        chosen = ambiguous.error.detail["candidates"][0]["id"]

        result = begun.execute(TerminateById(str(chosen)))
        assert result.ok
        assert result.data == {"rows_affected": 1, "rent_id": chosen}
        begun.commit()
        assert count_active(store, student_id=3) == 1

    def test_other_students_rentings_untouched(self, begun: CommandExecutor, store: Store) -> None:
        _rent_ok(begun, student="2", instrument="1")
        _rent_ok(begun)
        assert begun.try_terminate(STUDENT, INSTRUMENT).ok
        begun.commit()
        assert count_active(store, student_id=2, instrument_id=1) == 1

    def test_invalid_identifier(self, begun: CommandExecutor) -> None:
        assert begun.try_terminate("3", "abc").code == ErrorCode.INVALID_IDENTIFIER


class TestTerminateById:
    def test_terminates_active_renting(self, begun: CommandExecutor, store: Store) -> None:
        result = begun.terminate("1")
        assert result.ok
        assert result.data == {"rows_affected": 1, "rent_id": 1}
        assert result.warnings == []
        begun.commit()
        assert count_active(store, student_id=1) == 0

    def test_unknown_id_is_zero_rows(self, begun: CommandExecutor) -> None:
        result = begun.terminate("12345")
        assert result.ok
        assert result.data["rows_affected"] == 0
        assert result.warnings == ["No active renting with id 12345"]

    def test_ended_renting_is_zero_rows(self, begun: CommandExecutor) -> None:
        assert begun.terminate("2").data["rows_affected"] == 0

    def test_invalid_identifier(self, begun: CommandExecutor) -> None:
        result = begun.terminate("seven")
        assert result.code == ErrorCode.INVALID_IDENTIFIER
        assert result.error is not None
        assert result.error.detail["field"] == "renting"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListItems:
    def test_list_all(self, begun: CommandExecutor) -> None:
        result = begun.list_items()
        assert result.ok
        assert result.op == "list"
        by_id = {item["id"]: item for item in result.data["items"]}
        assert sorted(by_id) == [1, 2, 3, 4]
        # Instrument 2 owns two units, one rented by the seed.
        assert by_id[2]["available"] == 1
        assert by_id[2]["total"] == 2
        assert by_id[4]["available"] == 4
        assert result.data["count"] == 4
        assert by_id[1]["summary"] == (
            "ID:1 => J-45 Studio Walnut by Gibson. "
            "Price 101.01 with 1 left to rent out of a total 1."
        )

    def test_fully_rented_excluded(self, begun: CommandExecutor) -> None:
        """available == 1 is listed; available == 0 is not."""
        _rent_ok(begun, instrument="2")
        ids = [item["id"] for item in begun.list_items().data["items"]]
        assert 2 not in ids
        assert 1 in ids

    def test_filter_prefix_case_insensitive(self, begun: CommandExecutor) -> None:
        result = begun.execute(ListItems("GUI"))
        assert result.ok
        assert result.data["instrument_type"] == "guitar"
        assert [item["id"] for item in result.data["items"]] == [1, 3]

    def test_filter_full_name(self, begun: CommandExecutor) -> None:
        result = begun.list_items("piano")
        assert [item["id"] for item in result.data["items"]] == [2, 4]

    def test_unknown_type_not_found(self, begun: CommandExecutor) -> None:
        result = begun.list_items("drums")
        assert result.code == ErrorCode.NOT_FOUND
        assert begun.in_transaction is True

    def test_wildcards_are_literal(self, begun: CommandExecutor) -> None:
        assert begun.list_items("%").code == ErrorCode.NOT_FOUND
        assert begun.list_items("_uitar").code == ErrorCode.NOT_FOUND

    def test_nothing_available_not_found(self, begun: CommandExecutor) -> None:
        """Every guitar rented out leaves an empty result, which is NOT_FOUND."""
        _rent_ok(begun, student="3", instrument="1")
        _rent_ok(begun, student="3", instrument="3")
        _rent_ok(begun, student="2", instrument="3")
        _rent_ok(begun, student="2", instrument="3")
        result = begun.list_items("guitar")
        assert result.code == ErrorCode.NOT_FOUND
        assert result.error is not None
        assert result.error.detail == {"instrument_type": "guitar"}
        # Pianos are unaffected.
        assert begun.list_items("piano").ok

    def test_empty_catalog_not_found(self, executor: CommandExecutor, store: Store) -> None:
        from sqlalchemy import update

        from soundgood.infrastructure.database.schema import instruments

        with store.engine.begin() as conn:
            conn.execute(update(instruments).values(count=0))
        executor.begin()
        result = executor.list_items()
        assert result.code == ErrorCode.NOT_FOUND
        assert result.error is not None
        assert result.error.message == "No instruments available to rent"


# ---------------------------------------------------------------------------
# execute() dispatch
# ---------------------------------------------------------------------------


class TestExecute:
    def test_full_session(self, executor: CommandExecutor, store: Store) -> None:
        ops = [
            executor.execute(Begin()),
            executor.execute(Rent(STUDENT, "4")),
            executor.execute(ListItems("pi")),
            executor.execute(Commit()),
            executor.execute(Begin()),
            executor.execute(TryTerminate(STUDENT, "4")),
            executor.execute(Rollback()),
        ]
        assert [r.op for r in ops] == [
            "begin",
            "rent",
            "list",
            "commit",
            "begin",
            "try_terminate",
            "rollback",
        ]
        assert all(r.ok for r in ops)
        assert count_active(store, student_id=3, instrument_id=4) == 1

    def test_unknown_command_rejected(self, executor: CommandExecutor) -> None:
        with pytest.raises(TypeError, match="Unknown command"):
            executor.execute("begin")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Two executors on one database
# ---------------------------------------------------------------------------


def _start(work: Callable[[], Any]) -> tuple[threading.Thread, dict[str, Any]]:
    box: dict[str, Any] = {}

    def target() -> None:
        box["value"] = work()

    thread = threading.Thread(target=target)
    thread.start()
    return thread, box


class TestConcurrentExecutors:
    """A second executor's transaction waits for the first and sees its commit."""

    @pytest.fixture
    def rival(self, db_url: str, store: Store) -> Iterator[CommandExecutor]:
        other = CommandExecutor(Store(db_url))
        try:
            yield other
        finally:
            other.close()

    def test_cap_holds_across_executors(
        self, executor: CommandExecutor, rival: CommandExecutor, store: Store
    ) -> None:
        set_business_rule(store, "1")
        assert executor.begin().ok
        _rent_ok(executor, instrument="4")

        def second_rental() -> tuple[ServiceResult, ServiceResult]:
            begun = rival.begin()
            rented = rival.rent(STUDENT, "4")
            rival.commit()
            return begun, rented

        thread, box = _start(second_rental)
        assert executor.commit().ok
        thread.join(timeout=30)
        assert not thread.is_alive()

        begun, rented = box["value"]
        assert begun.ok, begun.error
        assert rented.code == ErrorCode.RENTAL_CAP_EXCEEDED
        assert count_active(store, student_id=3) == 1

    def test_try_terminate_sees_committed_termination(
        self, executor: CommandExecutor, rival: CommandExecutor, store: Store
    ) -> None:
        assert executor.begin().ok
        _rent_ok(executor, instrument="4")
        assert executor.commit().ok

        assert executor.begin().ok
        assert executor.try_terminate(STUDENT, "4").ok

        def second_termination() -> tuple[ServiceResult, ServiceResult]:
            begun = rival.begin()
            ended = rival.try_terminate(STUDENT, "4")
            rival.rollback()
            return begun, ended

        thread, box = _start(second_termination)
        assert executor.commit().ok
        thread.join(timeout=30)
        assert not thread.is_alive()

        begun, ended = box["value"]
        assert begun.ok, begun.error
        assert ended.code == ErrorCode.NOT_FOUND
        assert count_active(store, student_id=3) == 0
