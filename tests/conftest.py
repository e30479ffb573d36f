"""Shared pytest fixtures and test helpers for soundgood tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy import func, select, update

from soundgood.infrastructure.database.engine import init_database
from soundgood.infrastructure.database.schema import MAX_RENTALS_KEY, business_rules, rentings
from soundgood.infrastructure.store import Store
from soundgood.services.executor import CommandExecutor


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """SQLite URL of a file database in the test's temp directory."""
    return f"sqlite:///{tmp_path / 'soundgood.db'}"


@pytest.fixture
def store(db_url: str) -> Iterator[Store]:
    """Store over a freshly initialized and seeded database.

    Seed: guitar (type 1) and piano (type 2); instruments 1..4 owning
    1, 2, 3, 4 units; students 1..3; renting 1 (student 1, instrument 2)
    active and renting 2 ended; ``rent_max_count`` = 2.
    """
    s = Store(db_url)
    init_database(s.engine)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def executor(store: Store) -> Iterator[CommandExecutor]:
    """Executor with no open transaction."""
    ex = CommandExecutor(store)
    try:
        yield ex
    finally:
        ex.close()


@pytest.fixture
def begun(executor: CommandExecutor) -> CommandExecutor:
    """Executor with an open transaction."""
    result = executor.begin()
    assert result.ok, result.error
    return executor


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI from an empty temp directory with no soundgood env vars.

    Use via ``@pytest.mark.usefixtures("_isolated_root")``; the default
    SQLite database is then created in ``tmp_path``.
    """
    for name in ("SOUNDGOOD_CONFIG", "SOUNDGOOD_DATABASE__URL", "SOUNDGOOD_ROOT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def set_business_rule(store: Store, value: str, name: str = MAX_RENTALS_KEY) -> None:
    """Overwrite a business rule value (call outside an open transaction)."""
    with store.engine.begin() as conn:
        conn.execute(update(business_rules).where(business_rules.c.name == name).values(value=value))


def count_active(store: Store, *, student_id: int | None = None, instrument_id: int | None = None) -> int:
    """Committed count of active rentings, optionally filtered."""
    stmt = select(func.count()).select_from(rentings).where(rentings.c.end_date.is_(None))
    if student_id is not None:
        stmt = stmt.where(rentings.c.student_id == student_id)
    if instrument_id is not None:
        stmt = stmt.where(rentings.c.instrument_id == instrument_id)
    with store.engine.connect() as conn:
        return int(conn.execute(stmt).scalar_one())
