from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..api.client import DEFAULT_PAGE_LIMIT, TableApiClient
from ..api.errors import ApiError, MissingPrimaryKeyError
from ..models.processing_result import SaveResult
from ..models.table_data import Row
from .auto_fix import DEFAULT_SAMPLE_SIZE, validate_and_auto_fix
from .table_store import TableStore

"""Save routines: submit staged rows of a TableStore to the API.

insert: only the rows appended after the original snapshot are sent.
update: current rows are diffed against the original snapshot by primary
key; each changed row becomes one entry with the key plus only the changed
non-key fields.

Both run the auto-fix engine first (reference = original snapshot) and
submit nothing if any cell fails. After a successful submit the store is
reloaded from the API; a failed reload is logged and otherwise ignored.
"""

__all__ = [
    "SaveError",
    "build_update_entries",
    "save_new_rows",
    "save_updates",
]

logger = logging.getLogger(__name__)


class SaveError(Exception):
    """Nothing to save / no table selected."""


def _as_text(value: Any) -> str:
    # None と "" は同一視, "5" と 5 も同一視
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def build_update_entries(
    original_rows: Sequence[Row], current_rows: Sequence[Row], pk_column: str
) -> list[Row]:
    """Diff ``current_rows`` against ``original_rows`` by primary key.

    - unchanged rows produce no entry
    - a changed row produces ``{pk_column: pk, <changed fields>}``
    - rows whose key is not in the original are new rows and are skipped
    - a row without a key that differs from every original row raises
      MissingPrimaryKeyError for the whole batch
    """
    originals: dict[str, Row] = {}
    for row in original_rows:
        pk = row.get(pk_column)
        if not _is_blank(pk):
            originals.setdefault(_as_text(pk), row)

    entries: list[Row] = []
    missing: list[int] = []
    for idx, row in enumerate(current_rows):
        pk = row.get(pk_column)
        if _is_blank(pk):
            if row not in original_rows:
                missing.append(idx)
            continue
        original = originals.get(_as_text(pk))
        if original is None:
            continue
        changed = {
            k: v for k, v in row.items()
            if k != pk_column and _as_text(original.get(k)) != _as_text(v)
        }
        if changed:
            entries.append({pk_column: pk, **changed})

    if missing:
        raise MissingPrimaryKeyError(
            f"Each update must include a valid primary key value (column '{pk_column}'). "
            f"Missing at indexes: {', '.join(str(i) for i in missing)}",
            indexes=missing,
        )
    return entries


def _refresh(store: TableStore, client: TableApiClient, limit: int) -> bool:
    try:
        refreshed = client.fetch_table_data(store.table_name or "", limit, 0)
    except ApiError as e:
        logger.warning("could not refresh table=%s after save: %s", store.table_name, e)
        return False
    store.set_table_data(refreshed.data)
    return True


def save_new_rows(
    store: TableStore,
    client: TableApiClient,
    *,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> SaveResult:
    """Auto-fix and insert the rows added since the last load / commit.

    Raises SaveError (nothing to save), AutoFixError (validation) or ApiError.
    """
    if not store.table_name:
        raise SaveError("No table selected.")
    new_rows = store.new_rows()
    if not new_rows:
        raise SaveError("Please add new rows to save.")

    fixed = validate_and_auto_fix(new_rows, store.original_data, sample_size)
    response = client.insert_rows(store.table_name, fixed)
    refreshed = _refresh(store, client, page_limit)
    logger.info("table=%s inserted rows=%d", store.table_name, len(new_rows))
    return SaveResult(
        table_name=store.table_name,
        submitted_rows=len(new_rows),
        message=f"{len(new_rows)} rows inserted successfully with auto-fix applied!",
        refreshed=refreshed,
        details=response.details,
    )


def save_updates(
    store: TableStore,
    client: TableApiClient,
    pk_column: str | None = None,
    *,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> SaveResult:
    """Diff, auto-fix and submit changed rows. ``pk_column`` defaults to the first column.

    Raises SaveError (no changes), MissingPrimaryKeyError, AutoFixError or ApiError.
    """
    if not store.table_name:
        raise SaveError("No table selected.")
    columns = store.columns
    key = pk_column or (columns[0] if columns else None)
    if not key:
        raise SaveError("Table has no primary key column.")

    entries = build_update_entries(store.original_data, store.table_data, key)
    if not entries:
        raise SaveError("No changes to save.")

    fixed = validate_and_auto_fix(entries, store.original_data, sample_size)
    response = client.update_rows(store.table_name, key, fixed)
    refreshed = _refresh(store, client, page_limit)
    logger.info("table=%s updated rows=%d", store.table_name, len(entries))
    return SaveResult(
        table_name=store.table_name,
        submitted_rows=len(entries),
        message=response.message or f"{len(entries)} rows updated successfully",
        refreshed=refreshed,
        details=response.details,
    )
