from __future__ import annotations

import logging
from typing import Literal

from ..models.processing_result import PasteResult
from ..models.table_data import Row
from ..parsing.column_mapper import parse_line
from ..parsing.tokenizer import detect_delimiter, split_lines
from .table_store import TableStore

"""Paste & bulk-add services.

Turns raw clipboard / file text into rows of the TableStore:

    text -> split_lines -> parse_line (tokenizer + column mapper) -> store

Rows needed for the paste are appended first (add_rows returns their
indexes) and the cells are written in the same call, so no later step can
observe appended-but-empty rows.
"""

__all__ = [
    "DEFAULT_MAX_BULK_ROWS",
    "PasteError",
    "EditMode",
    "paste_into_table",
    "bulk_add_rows",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_BULK_ROWS = 500

EditMode = Literal["insert", "update"]


class PasteError(Exception):
    """Raised when a paste / bulk add cannot be applied at all."""


def paste_into_table(
    store: TableStore,
    text: str,
    row_index: int,
    column: str,
    mode: EditMode = "insert",
) -> PasteResult:
    """Paste ``text`` with its top-left cell at (``row_index``, ``column``).

    - insert mode: only new rows (after the original snapshot) may be pasted into
    - update mode: existing rows may be pasted into, the primary key
      (first column) is never written
    - rows missing below ``row_index`` are appended automatically
    - cells beyond the last column are counted as truncated
    """
    if not store.table_name:
        raise PasteError("No table selected. Please select a table first.")

    lines = split_lines(text)
    if not lines:
        raise PasteError("No valid data found to paste.")

    if mode != "update" and row_index < store.original_length:
        raise PasteError("You can only paste data in new rows while in Insert mode.")

    columns = store.columns
    if column not in columns:
        raise PasteError(f"Unknown column '{column}'.")
    start = columns.index(column)
    delimiter = detect_delimiter(text)
    primary_key = columns[0]

    needed = max(0, row_index + len(lines) - len(store.table_data))
    added = store.add_rows(needed) if needed > 0 else []

    pasted = 0
    truncated = 0
    for offset, line in enumerate(lines):
        target_row = row_index + offset
        cells = parse_line(line, columns, start, delimiter)
        for cell_index, cell in enumerate(cells):
            field_index = start + cell_index
            if field_index >= len(columns):
                truncated += 1
                continue
            field = columns[field_index]
            if target_row >= len(store.table_data):
                continue
            if mode == "update" and field == primary_key:
                # 更新モードでは主キーを書き換えない
                continue
            store.update_cell(target_row, field, cell)
            pasted += 1

    store.set_edit_mode(True)
    result = PasteResult(
        pasted_cells=pasted,
        truncated_cells=truncated,
        row_count=len(lines),
        added_rows=added,
    )
    logger.info(result.message)
    return result


def bulk_add_rows(store: TableStore, text: str, max_rows: int = DEFAULT_MAX_BULK_ROWS) -> list[Row]:
    """Append one new row per non-blank line of ``text`` and fill it.

    Every line is mapped from the first column; columns without a cell are
    set to "". Raises PasteError on empty input or more than ``max_rows`` lines.
    """
    lines = split_lines(text.strip())
    if not lines:
        raise PasteError("No data found.")
    if len(lines) > max_rows:
        raise PasteError(f"You can paste up to {max_rows} rows at once.")

    columns = store.columns
    if not columns:
        raise PasteError("Table has no columns to paste into.")
    delimiter = detect_delimiter(text)

    new_rows: list[Row] = []
    for line in lines:
        cells = parse_line(line, columns, 0, delimiter)
        new_rows.append({
            col: (cells[i] if i < len(cells) and cells[i] else "")
            for i, col in enumerate(columns)
        })

    indexes = store.add_rows(len(new_rows))
    for idx, row in zip(indexes, new_rows, strict=True):
        for col in columns:
            store.update_cell(idx, col, row[col])

    store.set_edit_mode(True)
    logger.info("Added %d rows.", len(new_rows))
    return new_rows
