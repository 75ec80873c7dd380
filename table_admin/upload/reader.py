from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.table_data import Row
from ..parsing.tokenizer import split_lines

"""Upload file reader.

- .csv / .txt : first line is the header, lines break on LF or CRLF only,
  remaining lines are split naively on "," (no quote / bracket awareness),
  short lines are back-filled with ""
- .tsv        : same, split on tab
- .xlsx       : read with pandas (first row = header), empty cells -> ""

Pasted clipboard text does not come through here; it goes through the
tokenizer / column mapper (services.paste).
"""

__all__ = [
    "UploadError",
    "TEXT_SUFFIXES",
    "EXCEL_SUFFIXES",
    "read_csv_text",
    "read_excel_upload",
    "read_upload_file",
]

TEXT_SUFFIXES = {".csv": ",", ".txt": ",", ".tsv": "\t"}
EXCEL_SUFFIXES = {".xlsx"}


class UploadError(Exception):
    """Raised when an upload file is missing, unsupported or has no header."""


def read_csv_text(text: str, delimiter: str = ",") -> tuple[list[str], list[Row]]:
    """Parse header + data lines. Returns (columns, rows)."""
    lines = split_lines(text)
    if not lines:
        raise UploadError("file is empty (header line missing)")
    header = [h.strip() for h in lines[0].split(delimiter)]
    rows: list[Row] = []
    for line in lines[1:]:
        values = [v.strip() for v in line.split(delimiter)]
        # 列不足は空文字で補完, 余剰セルは捨てる
        rows.append({
            col: (values[i] if i < len(values) else "")
            for i, col in enumerate(header)
        })
    return header, rows


def _to_cell(val: Any) -> Any:
    if pd.isna(val):
        return ""
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if hasattr(val, "item"):  # numpy scalar -> python
        return val.item()
    return val


def read_excel_upload(
    path: Path, sheet_name: str | int = 0, keep_na_strings: list[str] | None = None
) -> tuple[list[str], list[Row]]:
    """Read one sheet of an .xlsx upload. Returns (columns, rows).

    keep_na_strings: strings (e.g. 'NA') that must not become empty cells.
    """
    import pandas._libs.parsers as parsers

    if keep_na_strings:
        na_values = list(parsers.STR_NA_VALUES - set(keep_na_strings))
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True

    df = pd.read_excel(
        path,
        sheet_name=sheet_name,
        header=None,
        keep_default_na=keep_default_na,
        na_values=na_values,
    )
    if df.shape[0] < 1:
        raise UploadError(f"sheet '{sheet_name}' lacks a header row")
    columns = [str(c).strip() for c in df.iloc[0].tolist()]
    rows: list[Row] = []
    for _, raw in df.iloc[1:].iterrows():
        if raw.isna().all():
            continue
        rows.append({col: _to_cell(val) for col, val in zip(columns, raw.tolist(), strict=False)})
    return columns, rows


def read_upload_file(
    path: Path, keep_na_strings: list[str] | None = None
) -> tuple[list[str], list[Row]]:
    """Dispatch on the file suffix. Returns (columns, rows).

    keep_na_strings only applies to .xlsx uploads.
    """
    if not path.exists():
        raise UploadError(f"file not found: {path}")
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return read_csv_text(path.read_text(encoding="utf-8-sig"), TEXT_SUFFIXES[suffix])
    if suffix in EXCEL_SUFFIXES:
        return read_excel_upload(path, keep_na_strings=keep_na_strings)
    raise UploadError(f"unsupported file type: {path.name}")
