from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Result models for paste, save and CLI runs.

PasteResult / SaveResult are returned by the paste and save services;
RunResult aggregates one CLI command run for the SUMMARY line.
"""


@dataclass(frozen=True)
class PasteResult:
    """Outcome of pasting clipboard text into the table."""
    pasted_cells: int  # 書き込んだセル数
    truncated_cells: int  # 列数を超えて捨てたセル数
    row_count: int  # 貼り付け対象行数 (空行除外後)
    added_rows: list[int] | None = None  # 新規追加された行 index

    @property
    def message(self) -> str:
        msg = f"Pasted {self.pasted_cells} cells across {self.row_count} rows."
        if self.truncated_cells > 0:
            msg += f" {self.truncated_cells} cells were truncated."
        return msg


@dataclass(frozen=True)
class SaveResult:
    """Outcome of submitting staged rows to the API."""
    table_name: str
    submitted_rows: int  # API に送った行数 (insert: 新規行, update: 差分エントリ)
    message: str  # サーバ応答 message / ローカル生成メッセージ
    refreshed: bool = False  # 保存後の再取得に成功したか
    details: object | None = None


@dataclass(frozen=True)
class FileStat:
    """Per-upload-file staging statistics."""
    file_name: str
    status: str  # success/failed
    staged_rows: int
    error: str | None = None


@dataclass(frozen=True)
class RunResult:
    """Aggregated result of one CLI command run (SUMMARY line source)."""
    table_name: str
    staged_rows: int  # ファイルから取り込んだ行数
    inserted_rows: int
    updated_rows: int
    error_count: int  # セル検証エラー + API エラー
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
