from __future__ import annotations

from ..models.processing_result import RunResult

"""SUMMARY line rendering.

Format:
SUMMARY table={name} staged={n} inserted={n} updated={n} errors={n} elapsed_sec={sec}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line of one CLI run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = RunResult(
        ...     table_name="customers", staged_rows=3, inserted_rows=3, updated_rows=0,
        ...     error_count=0, start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(r)
        'SUMMARY table=customers staged=3 inserted=3 updated=0 errors=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY table={result.table_name} "
        f"staged={result.staged_rows} "
        f"inserted={result.inserted_rows} "
        f"updated={result.updated_rows} "
        f"errors={result.error_count} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
