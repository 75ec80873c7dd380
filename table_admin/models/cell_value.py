from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Column type and typed cell value models.

ColumnType is inferred per column from the reference (pre-edit) rows and is
never stored server-side. CellValue is the tagged view of a single cell after
coercion: it keeps both the original text and the coerced Python value so
downstream code does not re-infer types.
"""

__all__ = [
    "ColumnType",
    "CellKind",
    "CellValue",
]


class ColumnType(Enum):
    """Inferred column type. Inference order: BOOL -> INT -> FLOAT -> DATE -> STRING."""
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DATE = "date"
    STRING = "string"


class CellKind(Enum):
    """Tag of a coerced cell (ColumnType + NULL for empty cells)."""
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DATE = "date"
    TEXT = "text"
    NULL = "null"

    @classmethod
    def for_type(cls, column_type: ColumnType) -> CellKind:
        if column_type is ColumnType.STRING:
            return cls.TEXT
        return cls(column_type.value)


@dataclass(frozen=True)
class CellValue:
    """Single coerced cell.

    ``value`` is what gets submitted; ``original`` is the cell as it was
    staged (pasted text, or an already-typed value on a second pass).
    """
    kind: CellKind
    original: Any  # 入力値そのまま (None / "" を含む)
    value: Any  # 変換後の値 (DATE は文字列のまま)

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL
