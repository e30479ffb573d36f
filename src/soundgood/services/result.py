"""The executor's return contract.

INVARIANT: ``CommandExecutor.execute`` always returns a ServiceResult.
Failures travel in ``error`` and are never raised to the caller; the CLI
and the console only ever format these values.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceError(BaseModel):
    """Why a command failed: a stable ``ErrorCode`` value plus context."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one executed command.

    Attributes:
        ok: Whether the command succeeded.
        op: Command name: ``begin``, ``commit``, ``rollback``, ``rent``,
            ``terminate``, ``try_terminate``, ``list`` or ``init``.
        data: Command payload on success (rows affected, catalog items).
        warnings: Non-fatal notes, e.g. a termination that matched nothing.
        error: Set when ``ok`` is False.
        meta: Executor state after the command (``in_transaction``).
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @property
    def code(self) -> str | None:
        """Error code of a failed result, None on success."""
        return self.error.code if self.error else None

    @property
    def candidates(self) -> list[dict[str, Any]]:
        """Rentings offered for an ambiguous termination (empty otherwise)."""
        if self.error is None:
            return []
        return list(self.error.detail.get("candidates", []))
