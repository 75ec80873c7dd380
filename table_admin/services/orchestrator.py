from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..api.client import TableApiClient
from ..api.errors import ApiError, MissingPrimaryKeyError
from ..config.loader import AdminConfig
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.processing_result import FileStat, RunResult
from ..models.table_data import Row
from ..upload.reader import UploadError, read_upload_file
from .auto_fix import AutoFixError, validate_and_auto_fix
from .paste import PasteError, bulk_add_rows
from .progress import ProgressTracker
from .save import SaveError, build_update_entries, save_new_rows, save_updates
from .table_store import TableStore

"""Service orchestration for the import / update commands.

import: load table -> stage every upload file (tokenizer path for pasted
text, header CSV / xlsx otherwise) -> auto-fix -> insert -> reload
update: load table -> overwrite matching rows by primary key -> diff ->
auto-fix -> update -> reload

Validation failures (auto-fix, missing primary key) are returned in the
RunResult (error_count > 0) and written to the error log; API failures are
fatal and raised as ProcessingError.
"""

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal error of a command run (API / load failure)."""


def load_table(client: TableApiClient, table_name: str, page_limit: int) -> TableStore:
    """Fetch the first page of ``table_name`` into a new TableStore."""
    store = TableStore(table_name)
    try:
        response = client.fetch_table_data(table_name, page_limit, 0)
    except ApiError as e:
        raise ProcessingError(f"failed to load table '{table_name}': {e}") from e
    store.set_table_data(response.data)
    logger.info(
        "table=%s loaded rows=%d total_count=%d", table_name, len(response.data), response.total_count
    )
    return store


def _result(
    table_name: str,
    start_time: datetime,
    *,
    staged: int = 0,
    inserted: int = 0,
    updated: int = 0,
    errors: int = 0,
    file_stats: list[FileStat] | None = None,
) -> RunResult:
    end_time = datetime.now(UTC)
    return RunResult(
        table_name=table_name,
        staged_rows=staged,
        inserted_rows=inserted,
        updated_rows=updated,
        error_count=errors,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def _record_batch_error(error_log: ErrorLogBuffer, table: str, error_type: str, message: str) -> None:
    error_log.append(ErrorRecord.create(
        table=table, row=-1, column="", error_type=error_type, message=message,
    ))


def _stage_file(store: TableStore, path: Path, paste_mode: bool, config: AdminConfig) -> int:
    if paste_mode:
        if not path.exists():
            raise UploadError(f"file not found: {path}")
        added = bulk_add_rows(store, path.read_text(encoding="utf-8-sig"), max_rows=config.max_bulk_rows)
        return len(added)
    _, rows = read_upload_file(path, keep_na_strings=list(config.keep_na_strings))
    return len(store.append_rows(rows))


def _preview(rows: list[Row], limit: int = 5) -> None:
    for row in rows[:limit]:
        logger.info("dry-run row=%s", row)
    if len(rows) > limit:
        logger.info("dry-run ... %d more rows", len(rows) - limit)


def run_import(
    config: AdminConfig,
    client: TableApiClient,
    table_name: str,
    files: list[Path],
    *,
    paste_mode: bool = False,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Stage ``files`` as new rows of ``table_name`` and insert them.

    Raises:
        ProcessingError: table load or insert request failed
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    store = load_table(client, table_name, config.page_limit)

    file_stats: list[FileStat] = []
    file_errors = 0
    with ProgressTracker(len(files), description="Staging files") as progress:
        for path in files:
            progress.start_file(path)
            try:
                staged = _stage_file(store, path, paste_mode, config)
            except (UploadError, PasteError, OSError, ValueError) as e:
                # ファイル単位の失敗は記録して次へ
                logger.error("file=%s %s", path.name, e)
                _record_batch_error(error_log, table_name, "FILE_ERROR", f"{path.name}: {e}")
                file_stats.append(FileStat(file_name=path.name, status="failed", staged_rows=0, error=str(e)))
                file_errors += 1
                progress.finish_file(0)
                continue
            file_stats.append(FileStat(file_name=path.name, status="success", staged_rows=staged))
            logger.debug("file=%s staged rows=%d", path.name, staged)
            progress.finish_file(staged)

    new_rows = store.new_rows()
    if not new_rows:
        logger.warning("table=%s no rows staged", table_name)
        return _result(table_name, start_time, errors=file_errors, file_stats=file_stats)

    try:
        if dry_run:
            fixed = validate_and_auto_fix(new_rows, store.original_data, config.type_sample_size)
            _preview(fixed)
            return _result(
                table_name, start_time, staged=len(new_rows), errors=file_errors, file_stats=file_stats
            )
        saved = save_new_rows(
            store,
            client,
            sample_size=config.type_sample_size,
            page_limit=config.page_limit,
        )
    except AutoFixError as e:
        for line in str(e).splitlines():
            logger.error(line)
        error_log.extend_cell_errors(table_name, e.errors)
        return _result(
            table_name,
            start_time,
            staged=len(new_rows),
            errors=file_errors + len(e.errors),
            file_stats=file_stats,
        )
    except ApiError as e:
        _record_batch_error(error_log, table_name, "API_INSERT_ERROR", e.detail)
        raise ProcessingError(f"insert failed: {e}") from e

    logger.info(saved.message)
    return _result(
        table_name,
        start_time,
        staged=len(new_rows),
        inserted=saved.submitted_rows,
        errors=file_errors,
        file_stats=file_stats,
    )


def apply_rows_by_key(store: TableStore, rows: list[Row], pk_column: str) -> tuple[int, int]:
    """Overwrite non-key cells of store rows whose key matches a file row.

    Returns (matched, unmatched). Columns unknown to the table are ignored.
    """
    columns = set(store.columns)
    index_by_key: dict[str, int] = {}
    for idx, row in enumerate(store.table_data):
        key: Any = row.get(pk_column)
        if key is not None and key != "":
            index_by_key.setdefault(str(key), idx)

    matched = unmatched = 0
    for row in rows:
        key = row.get(pk_column)
        idx = index_by_key.get(str(key)) if key not in (None, "") else None
        if idx is None:
            unmatched += 1
            continue
        matched += 1
        for col, value in row.items():
            if col != pk_column and col in columns:
                store.update_cell(idx, col, value)
    if matched:
        store.set_edit_mode(True)
    return matched, unmatched


def run_update(
    config: AdminConfig,
    client: TableApiClient,
    table_name: str,
    file: Path,
    *,
    pk_column: str | None = None,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Apply ``file`` rows onto matching rows of ``table_name`` and submit the diff.

    Raises:
        ProcessingError: table load, file read or update request failed
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    store = load_table(client, table_name, config.page_limit)

    try:
        _, rows = read_upload_file(file, keep_na_strings=list(config.keep_na_strings))
    except (UploadError, OSError, ValueError) as e:
        _record_batch_error(error_log, table_name, "FILE_ERROR", f"{file.name}: {e}")
        raise ProcessingError(f"file={file.name} {e}") from e

    columns = store.columns
    key = pk_column or config.primary_key_column or (columns[0] if columns else None)
    if not key:
        raise ProcessingError(f"table '{table_name}' has no columns to match on")

    matched, unmatched = apply_rows_by_key(store, rows, key)
    logger.info("file=%s matched=%d unmatched=%d pk=%s", file.name, matched, unmatched, key)
    file_stats = [FileStat(file_name=file.name, status="success", staged_rows=matched)]

    try:
        if dry_run:
            entries = build_update_entries(store.original_data, store.table_data, key)
            fixed = validate_and_auto_fix(entries, store.original_data, config.type_sample_size)
            _preview(fixed)
            return _result(table_name, start_time, staged=matched, file_stats=file_stats)
        saved = save_updates(
            store,
            client,
            key,
            sample_size=config.type_sample_size,
            page_limit=config.page_limit,
        )
    except SaveError as e:
        logger.warning("table=%s %s", table_name, e)
        return _result(table_name, start_time, staged=matched, file_stats=file_stats)
    except AutoFixError as e:
        for line in str(e).splitlines():
            logger.error(line)
        error_log.extend_cell_errors(table_name, e.errors)
        return _result(table_name, start_time, staged=matched, errors=len(e.errors), file_stats=file_stats)
    except MissingPrimaryKeyError as e:
        logger.error(e.detail)
        _record_batch_error(error_log, table_name, "MISSING_PRIMARY_KEY", e.detail)
        return _result(table_name, start_time, staged=matched, errors=1, file_stats=file_stats)
    except ApiError as e:
        _record_batch_error(error_log, table_name, "API_UPDATE_ERROR", e.detail)
        raise ProcessingError(f"update failed: {e}") from e

    logger.info(saved.message)
    return _result(
        table_name, start_time, staged=matched, updated=saved.submitted_rows, file_stats=file_stats
    )
