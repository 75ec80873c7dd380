from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from ..models.table_data import Row
from .errors import MissingPrimaryKeyError

"""Request payload builders for insert / update.

insert: rows are cleaned before submission; the ``id`` column is dropped so
the server assigns it, empty cells are dropped, and rows that carry no value
at all are skipped.

update: every entry must carry a primary key value; it is sent as
``primary_key_value`` and never as a changed field. One entry without a key
fails the whole batch.
"""

__all__ = [
    "PRIMARY_KEY_VALUE",
    "clean_insert_rows",
    "build_update_payload",
]

PRIMARY_KEY_VALUE = "primary_key_value"

_ADDITIONAL_PROP = re.compile(r"^additionalProp\d*$", re.IGNORECASE)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def clean_insert_rows(rows: Sequence[Any]) -> list[Row]:
    """Drop empty rows, the ``id`` column and empty cells.

    A row left with no field after cleaning (e.g. a blank row that only
    carries its generated id) is dropped as well.
    """
    cleaned: list[Row] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        # Swagger の雛形キー (additionalProp1..) は値判定から除外
        keys = [k for k in row.keys() if not _ADDITIONAL_PROP.match(str(k))]
        if not any(not _is_blank(row[k]) for k in keys):
            continue
        clean = {k: v for k, v in row.items() if k != "id" and not _is_blank(v)}
        if clean:
            # id だけの行 (追加直後の空行) は送らない
            cleaned.append(clean)
    return cleaned


def build_update_payload(primary_key_column: str, updates: Sequence[Any]) -> list[Row]:
    """Build the ``updates`` list of an update request.

    The key value is taken from ``primary_key_column`` or an existing
    ``primary_key_value`` field. Empty fields are dropped and entries without
    any remaining field are skipped. Raises MissingPrimaryKeyError listing
    every entry index without a key.
    """
    payload: list[Row] = []
    missing: list[int] = []
    for idx, update in enumerate(updates):
        if not isinstance(update, dict):
            missing.append(idx)
            continue
        pk_value = update.get(primary_key_column)
        if pk_value is None and primary_key_column not in update:
            pk_value = update.get(PRIMARY_KEY_VALUE)
        if _is_blank(pk_value):
            missing.append(idx)
            continue

        entry: Row = {PRIMARY_KEY_VALUE: pk_value}
        for key, value in update.items():
            if key in (primary_key_column, PRIMARY_KEY_VALUE) or _is_blank(value):
                continue
            entry[key] = value
        if len(entry) > 1:
            payload.append(entry)

    if missing:
        raise MissingPrimaryKeyError(
            "Each update must include a valid primary key value "
            f"(column '{primary_key_column}' or '{PRIMARY_KEY_VALUE}'). "
            f"Missing at indexes: {', '.join(str(i) for i in missing)}",
            indexes=missing,
        )
    return payload
