"""Executor error taxonomy.

Each failure kind is an exception class carrying a stable ``code``.
Operations raise them internally; ``CommandExecutor.execute`` converts
them into ``ServiceError`` payloads so callers only ever see values.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from soundgood.domain.models import Renting
    from soundgood.services.result import ServiceError


class ErrorCode(StrEnum):
    """Stable error codes exposed in ``ServiceError.code``."""

    NO_ACTIVE_TRANSACTION = "NO_ACTIVE_TRANSACTION"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    RENTAL_CAP_EXCEEDED = "RENTAL_CAP_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS_TERMINATION = "AMBIGUOUS_TERMINATION"
    STORE_ERROR = "STORE_ERROR"


class ExecutorError(Exception):
    """Base class for recoverable command failures."""

    code: ErrorCode

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_service_error(self) -> ServiceError:
        from soundgood.services.result import ServiceError

        return ServiceError(code=self.code.value, message=self.message, detail=self.detail)


class NoActiveTransaction(ExecutorError):
    code = ErrorCode.NO_ACTIVE_TRANSACTION

    def __init__(self) -> None:
        super().__init__("No active transaction! Begin one first.")


class InvalidIdentifier(ExecutorError):
    code = ErrorCode.INVALID_IDENTIFIER

    def __init__(self, field: str, raw: str, reason: str) -> None:
        super().__init__(f"Invalid {field} id {raw!r}: {reason}", field=field, value=raw)


class InvalidConfiguration(ExecutorError):
    code = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, key: str, raw: str | None, reason: str) -> None:
        super().__init__(f"Invalid business rule {key!r}: {reason}", key=key, value=raw)


class RentalCapExceeded(ExecutorError):
    code = ErrorCode.RENTAL_CAP_EXCEEDED

    def __init__(self, student_id: int, active: int, maximum: int) -> None:
        super().__init__(
            "This student has too many rentals!",
            student_id=student_id,
            active=active,
            max=maximum,
        )


class NotFound(ExecutorError):
    code = ErrorCode.NOT_FOUND


class AmbiguousTermination(ExecutorError):
    """Several active rentings match; the caller must pick one by id."""

    code = ErrorCode.AMBIGUOUS_TERMINATION

    def __init__(self, candidates: Sequence[Renting]) -> None:
        super().__init__(
            "Multiple rentings to terminate!",
            candidates=[c.to_dict() for c in candidates],
        )
        self.candidates = list(candidates)


class StoreError(ExecutorError):
    """Wraps a database failure. The transaction is left for the caller."""

    code = ErrorCode.STORE_ERROR

    def __init__(self, exc: Exception) -> None:
        reason = getattr(exc, "orig", None) or exc
        super().__init__(f"SQL error: {reason}", exception=type(exc).__name__)


class ShutdownError(RuntimeError):
    """Rolling back the open transaction failed while closing the executor."""
