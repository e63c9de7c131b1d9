"""Tests for output mode selection."""

from __future__ import annotations

import json

from acctgraph.output.formatters import OutputSettings, format_result
from acctgraph.services.result import ServiceError, ServiceResult


def _ok() -> ServiceResult:
    return ServiceResult(ok=True, op="get_account", data={"id": "a1", "name": "Acme"})


class TestFormatResult:
    def test_json_mode(self) -> None:
        output = format_result(_ok(), settings=OutputSettings(json_output=True))
        parsed = json.loads(output)
        assert parsed["ok"] is True
        assert parsed["op"] == "get_account"
        assert parsed["data"]["id"] == "a1"

    def test_json_error(self) -> None:
        result = ServiceResult(
            ok=False,
            op="add_relationship",
            error=ServiceError(
                code="CIRCULAR_REFERENCE", message="loop", detail={"path": ["p", "c", "p"]}
            ),
        )
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["error"]["code"] == "CIRCULAR_REFERENCE"
        assert parsed["error"]["detail"]["path"] == ["p", "c", "p"]

    def test_quiet_mode(self) -> None:
        assert format_result(_ok(), settings=OutputSettings(quiet=True)) == "a1"

    def test_default_is_rich(self) -> None:
        output = format_result(_ok())
        assert "OK" in output
        assert "get_account" in output
        assert "Acme" in output

    def test_json_beats_quiet(self) -> None:
        output = format_result(_ok(), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["ok"] is True
