"""Tests for output mode selection."""

import json

from soundgood.output.formatters import OutputSettings, format_result
from soundgood.services.result import ServiceError, ServiceResult

RENTED = ServiceResult(
    ok=True,
    op="rent",
    data={"rows_affected": 1, "student_id": 3, "instrument_id": 1},
    meta={"in_transaction": True},
)


class TestFormatResult:
    def test_default_is_human(self) -> None:
        assert "Rented! 1 rows affected!" in format_result(RENTED)

    def test_json(self) -> None:
        output = format_result(RENTED, settings=OutputSettings(json_output=True))
        payload = json.loads(output)
        assert payload["ok"] is True
        assert payload["op"] == "rent"
        assert payload["data"]["rows_affected"] == 1
        assert payload["meta"] == {"in_transaction": True}

    def test_json_error(self) -> None:
        result = ServiceResult(
            ok=False,
            op="commit",
            error=ServiceError(code="NO_ACTIVE_TRANSACTION", message="No active transaction! Begin one first."),
        )
        payload = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert payload["error"]["code"] == "NO_ACTIVE_TRANSACTION"

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(RENTED, settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["op"] == "rent"

    def test_quiet(self) -> None:
        assert format_result(RENTED, settings=OutputSettings(quiet=True)) == "1"

    def test_verbose(self) -> None:
        output = format_result(RENTED, settings=OutputSettings(verbose=True))
        assert "student_id:" in output
