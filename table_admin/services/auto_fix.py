from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.cell_value import CellKind, CellValue, ColumnType
from ..models.table_data import Row

"""Type inference & auto-fix engine.

Column types are inferred from a sample of the reference (pre-edit) rows,
never from the rows being validated. Staged rows are then coerced cell by cell
to the inferred types. Every failing cell of every row is collected into one
report and the batch fails as a whole: either all rows come back coerced or
AutoFixError is raised and nothing is returned.
"""

__all__ = [
    "DEFAULT_SAMPLE_SIZE",
    "CellError",
    "CellCoercionError",
    "AutoFixError",
    "infer_column_type",
    "infer_column_types",
    "coerce_value",
    "analyze_cells",
    "validate_and_auto_fix",
]

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 50

# ASCII 数字のみ (全角・アラビア数字は不可)
INT_PATTERN = re.compile(r"^-?\d+$", re.ASCII)
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
DATE_PATTERNS = (
    re.compile(r"^\d{4}-\d{2}-\d{2}", re.ASCII),  # YYYY-MM-DD...
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}", re.ASCII),  # M/D/YYYY
)

TRUE_TOKENS = frozenset({"true", "1", "yes"})
FALSE_TOKENS = frozenset({"false", "0", "no"})

REASON_BOOL = "must be a boolean (true/false)"
REASON_INT = "must be an integer"
REASON_FLOAT = "must be a number"
REASON_DATE = "must be a date (YYYY-MM-DD)"


@dataclass(frozen=True)
class CellError:
    """One failing cell. ``row`` is 1-based within the validated batch."""
    row: int
    column: str
    original: Any
    reason: str

    def __str__(self) -> str:
        return (
            f"Row {self.row}, Column '{self.column}': "
            f"Invalid value '{_display(self.original)}'. It {self.reason}."
        )


class CellCoercionError(ValueError):
    """Raised by coerce_value; ``reason`` completes the sentence 'It ...'."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AutoFixError(Exception):
    """Batch validation failure carrying every collected cell error."""

    def __init__(self, errors: Sequence[CellError]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))


def _display(value: Any) -> str:
    # JSON 由来の bool は true/false 表記に揃える
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_number(text: str) -> bool:
    if not NUMBER_PATTERN.match(text):
        return False
    return math.isfinite(float(text))


def _is_date(text: str) -> bool:
    return any(p.match(text) for p in DATE_PATTERNS)


def infer_column_type(values: Iterable[Any]) -> ColumnType:
    """Infer one column's type from its sampled values.

    Empty cells (None / "") are ignored. The first rule satisfied by every
    remaining value wins, in the order bool, int, float, date; otherwise
    string. A column with no non-empty values is string.
    """
    is_bool = is_int = is_float = is_date = True
    seen = False
    for v in values:
        if _is_empty(v):
            continue
        seen = True
        text = _display(v).strip().lower()
        if text not in ("true", "false"):
            is_bool = False
        if not INT_PATTERN.match(text):
            is_int = False
        if not _is_number(text):
            is_float = False
        if not _is_date(text):
            is_date = False
    if not seen:
        return ColumnType.STRING
    if is_bool:
        return ColumnType.BOOL
    if is_int:
        return ColumnType.INT
    if is_float:
        return ColumnType.FLOAT
    if is_date:
        return ColumnType.DATE
    return ColumnType.STRING


def infer_column_types(
    reference_rows: Sequence[Row], sample_size: int = DEFAULT_SAMPLE_SIZE
) -> dict[str, ColumnType]:
    """Infer a type for every column of the first reference row.

    Only the first ``sample_size`` rows are examined. An empty reference set
    yields an empty mapping (every column is then treated as string).
    """
    if not reference_rows:
        return {}
    sample = reference_rows[:sample_size]
    types = {
        col: infer_column_type(row.get(col) for row in sample)
        for col in reference_rows[0].keys()
    }
    logger.debug("inferred column types: %s", {c: t.value for c, t in types.items()})
    return types


def coerce_value(value: Any, column_type: ColumnType) -> CellValue:
    """Coerce a single cell to ``column_type``.

    Empty cells pass through unchanged as NULL-tagged values. Raises
    CellCoercionError when the value cannot be coerced.
    """
    if _is_empty(value):
        return CellValue(kind=CellKind.NULL, original=value, value=value)

    kind = CellKind.for_type(column_type)
    text = _display(value).strip()

    if column_type is ColumnType.BOOL:
        lowered = text.lower()
        if lowered in TRUE_TOKENS:
            return CellValue(kind=kind, original=value, value=True)
        if lowered in FALSE_TOKENS:
            return CellValue(kind=kind, original=value, value=False)
        raise CellCoercionError(REASON_BOOL)

    if column_type is ColumnType.INT:
        if not INT_PATTERN.match(text):
            raise CellCoercionError(REASON_INT)
        return CellValue(kind=kind, original=value, value=int(text))

    if column_type is ColumnType.FLOAT:
        if not _is_number(text):
            raise CellCoercionError(REASON_FLOAT)
        return CellValue(kind=kind, original=value, value=float(text))

    if column_type is ColumnType.DATE:
        if not _is_date(text):
            raise CellCoercionError(REASON_DATE)
        # 日付の書式変換は行わない (元の値のまま)
        return CellValue(kind=kind, original=value, value=value)

    return CellValue(kind=kind, original=value, value=value)


def analyze_cells(
    rows: Sequence[Row],
    reference_rows: Sequence[Row],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> tuple[list[dict[str, CellValue]], list[CellError]]:
    """Coerce every cell and return the tagged cells plus collected errors.

    Failing cells are absent from the returned per-row mapping.
    """
    types = infer_column_types(reference_rows, sample_size)
    typed_rows: list[dict[str, CellValue]] = []
    errors: list[CellError] = []
    for row_index, row in enumerate(rows):
        typed: dict[str, CellValue] = {}
        for col, value in row.items():
            column_type = types.get(col, ColumnType.STRING)
            try:
                typed[col] = coerce_value(value, column_type)
            except CellCoercionError as e:
                errors.append(CellError(row=row_index + 1, column=col, original=value, reason=e.reason))
        typed_rows.append(typed)
    return typed_rows, errors


def validate_and_auto_fix(
    rows: Sequence[Row],
    reference_rows: Sequence[Row],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> list[Row]:
    """Return coerced copies of ``rows`` or raise AutoFixError.

    The input rows are never modified. If any cell fails, no row is returned.
    """
    if not rows:
        return []
    typed_rows, errors = analyze_cells(rows, reference_rows, sample_size)
    if errors:
        logger.debug("auto-fix rejected batch rows=%d errors=%d", len(rows), len(errors))
        raise AutoFixError(errors)
    fixed: list[Row] = []
    for row, typed in zip(rows, typed_rows, strict=True):
        fixed.append({col: typed[col].value for col in row.keys()})
    return fixed
