"""Domain models for the table admin client.

Rows are plain dicts; the dataclasses here describe typed cells, API payloads,
error log records and run results.
"""

from .cell_value import CellKind, CellValue, ColumnType
from .error_record import ErrorRecord
from .processing_result import FileStat, PasteResult, RunResult, SaveResult
from .table_data import ApiResponse, Row, TableDataResponse, table_columns

__all__ = [
    # Typed cells
    "CellKind",
    "CellValue",
    "ColumnType",
    # Payloads
    "ApiResponse",
    "Row",
    "TableDataResponse",
    "table_columns",
    # Results
    "ErrorRecord",
    "FileStat",
    "PasteResult",
    "RunResult",
    "SaveResult",
]
