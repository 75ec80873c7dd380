from __future__ import annotations

import copy
import logging
import math
from collections.abc import Sequence
from typing import Any

from ..models.table_data import Row, table_columns

"""In-memory table store.

Holds the current rows of the selected table plus a separately retained
deep-copied snapshot of the rows as loaded (``original_data``). Edit
operations only touch ``table_data``; the snapshot is replaced wholesale on
load (set_table_data), save-commit (commit) and is the source of
reset_to_original.

The store is an explicit object owned by whoever drives the session (CLI
command, tests); nothing here talks to the network.
"""

__all__ = [
    "ID_COLUMN",
    "TableStore",
]

logger = logging.getLogger(__name__)

ID_COLUMN = "id"


def _numeric_id(value: Any) -> float:
    # 数値化できない id は 0 扱い
    if isinstance(value, bool):
        return float(value)
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


class TableStore:
    """Current rows, original snapshot and edit flags of one table."""

    def __init__(self, table_name: str | None = None, columns: Sequence[str] | None = None) -> None:
        self.table_name = table_name
        # 空テーブルでも行追加できるよう既知の列を保持
        self.schema_columns: list[str] = list(columns or [])
        self.table_data: list[Row] = []
        self.original_data: list[Row] = []
        self.is_edit_mode = False
        self.error: str | None = None

    # ----- loading / snapshot -------------------------------------------
    def set_table_data(self, rows: Sequence[Row]) -> None:
        """Replace the rows and reset the original snapshot to a deep copy."""
        self.table_data = [dict(r) for r in rows]
        if self.table_data:
            self.schema_columns = table_columns(self.table_data)
        self.original_data = copy.deepcopy(self.table_data)
        logger.debug("table=%s loaded rows=%d", self.table_name, len(self.table_data))

    def commit(self) -> None:
        """Accept the current rows as the new original snapshot."""
        self.original_data = copy.deepcopy(self.table_data)
        self.is_edit_mode = False

    def reset_to_original(self) -> None:
        """Discard every edit (and added row) since the last load / commit."""
        self.table_data = copy.deepcopy(self.original_data)
        self.is_edit_mode = False

    # ----- accessors ------------------------------------------------------
    @property
    def columns(self) -> list[str]:
        if not self.table_data:
            return list(self.schema_columns)
        return table_columns(self.table_data)

    @property
    def original_length(self) -> int:
        return len(self.original_data)

    def new_rows(self) -> list[Row]:
        """Rows appended after the original snapshot."""
        return self.table_data[self.original_length:]

    def set_edit_mode(self, is_edit: bool) -> None:
        self.is_edit_mode = is_edit

    def set_error(self, error: str | None) -> None:
        self.error = error

    # ----- mutators -------------------------------------------------------
    def update_cell(self, row_index: int, column: str, value: Any) -> None:
        """Assign one cell. Out-of-range row indexes are ignored."""
        if 0 <= row_index < len(self.table_data):
            row = dict(self.table_data[row_index])
            row[column] = value
            self.table_data[row_index] = row

    def _max_id(self) -> int:
        return int(max([0.0] + [_numeric_id(r.get(ID_COLUMN)) for r in self.table_data]))

    def _blank_row(self, next_id: int) -> Row:
        row: Row = {}
        keys = self.table_data[0].keys() if self.table_data else self.schema_columns
        for key in keys:
            row[key] = str(next_id) if key == ID_COLUMN else ""
        return row

    def add_rows(self, count: int) -> list[int]:
        """Append ``count`` blank rows and return their indexes.

        Rows copy the first row's keys; an ``id`` column gets max(id)+1,
        incrementing per row. No-op when no column is known.
        """
        if not self.columns or count <= 0:
            return []
        max_id = self._max_id()
        start = len(self.table_data)
        for i in range(count):
            self.table_data.append(self._blank_row(max_id + i + 1))
        logger.debug("added rows=%d new_length=%d", count, len(self.table_data))
        return list(range(start, start + count))

    def add_row(self) -> int | None:
        added = self.add_rows(1)
        return added[0] if added else None

    def insert_row_at_top(self) -> bool:
        if not self.columns:
            return False
        self.table_data.insert(0, self._blank_row(self._max_id() + 1))
        return True

    def add_column(self, column_name: str) -> None:
        if column_name not in self.schema_columns:
            self.schema_columns.append(column_name)
        self.table_data = [{**row, column_name: ""} for row in self.table_data]

    def delete_row(self, row_index: int) -> None:
        self.table_data = [r for i, r in enumerate(self.table_data) if i != row_index]

    def rename_column(self, old_name: str, new_name: str) -> None:
        """Rename a column in every row (the renamed key moves to the end)."""
        renamed: list[Row] = []
        for row in self.table_data:
            new_row = dict(row)
            if old_name in new_row:
                new_row[new_name] = new_row.pop(old_name)
            renamed.append(new_row)
        self.table_data = renamed
        self.schema_columns = [new_name if c == old_name else c for c in self.schema_columns]

    def append_rows(self, rows: Sequence[Row]) -> list[int]:
        """Append populated rows (uploaded files) and return their indexes.

        Cells are written for the table's columns only; columns the row does
        not carry stay "". On a table without known columns the first row's
        keys become the columns.
        """
        if not rows:
            return []
        if not self.columns:
            self.schema_columns = list(rows[0].keys())
        columns = self.columns
        indexes = self.add_rows(len(rows))
        for idx, row in zip(indexes, rows, strict=True):
            for col in columns:
                if col in row:
                    self.update_cell(idx, col, row[col])
        return indexes
