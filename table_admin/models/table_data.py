from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

"""Row / table payload models for the table admin API.

A Row is a plain ``dict[str, Any]`` (column name -> scalar). Column order of a
table is the first row's key order extended by keys first seen in later rows.
"""

__all__ = [
    "ApiResponse",
    "Row",
    "TableDataResponse",
    "table_columns",
]

Row = dict[str, Any]


def table_columns(rows: Iterable[Row]) -> list[str]:
    """Column order for a sequence of rows (first row's keys, then new keys in first-seen order)."""
    columns: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row.keys():
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return columns


@dataclass(frozen=True)
class TableDataResponse:
    """Response of ``GET /api/tables/{name}/data``."""
    table_name: str
    data: list[Row] = field(default_factory=list)
    total_count: int = 0
    limit: int = 0
    offset: int = 0

    @staticmethod
    def from_json(body: dict[str, Any]) -> TableDataResponse:
        data = body.get("data") or []
        return TableDataResponse(
            table_name=str(body.get("table_name", "")),
            data=[dict(r) for r in data if isinstance(r, dict)],
            total_count=int(body.get("total_count") or 0),
            limit=int(body.get("limit") or 0),
            offset=int(body.get("offset") or 0),
        )


@dataclass(frozen=True)
class ApiResponse:
    """``{success, message, details}`` body of insert / update / bulk-replace."""
    success: bool
    message: str
    details: Any = None

    @staticmethod
    def from_json(body: Any, default_message: str = "") -> ApiResponse:
        if not isinstance(body, dict):
            return ApiResponse(success=True, message=default_message, details=body)
        return ApiResponse(
            success=bool(body.get("success", True)),
            message=str(body.get("message") or default_message),
            details=body.get("details"),
        )
