from __future__ import annotations

from datetime import UTC, datetime

import pytest

from table_admin.models.processing_result import PasteResult, RunResult
from table_admin.services.summary import render_summary_line


def _result(elapsed: float, errors: int = 0) -> RunResult:
    now = datetime.now(UTC)
    return RunResult(
        table_name="customers",
        staged_rows=2,
        inserted_rows=2,
        updated_rows=0,
        error_count=errors,
        start_time=now,
        end_time=now,
        elapsed_seconds=elapsed,
    )


@pytest.mark.parametrize(
    "elapsed, text",
    [(0.0, "0"), (2.0, "2"), (0.5, "0.5"), (1.23456, "1.235"), (0.005, "0.005")],
)
def test_elapsed_formatting(elapsed: float, text: str):
    assert render_summary_line(_result(elapsed)).endswith(f"elapsed_sec={text}")


def test_summary_line_fields():
    assert render_summary_line(_result(1.0, errors=3)) == (
        "SUMMARY table=customers staged=2 inserted=2 updated=0 errors=3 elapsed_sec=1"
    )


def test_paste_result_message():
    assert PasteResult(6, 0, 2).message == "Pasted 6 cells across 2 rows."
    assert PasteResult(2, 1, 1).message == "Pasted 2 cells across 1 rows. 1 cells were truncated."
