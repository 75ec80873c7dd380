from __future__ import annotations

import re
from collections.abc import Sequence

from .tokenizer import TAB, detect_delimiter, split_cells

"""Column mapper: align tokenized fields to the table's column order.

Policy for one row of tokens against the columns from ``start`` onward:
1. token count == column count -> positional 1:1
2. fewer tokens -> positional, remaining columns left unset
3. more tokens -> a single "merge column" absorbs the surplus tokens,
   joined with ", " (a comma-delimited paste fragments free-text address
   cells; merging puts them back together without shifting later columns)

Best-effort heuristic layer: nothing here raises on under / over-count.
"""

__all__ = [
    "EXACT_MERGE_NAMES",
    "MERGE_NAME_PATTERN",
    "find_merge_column",
    "map_tokens",
    "map_row",
    "parse_line",
]

EXACT_MERGE_NAMES = frozenset({"address", "addr"})
MERGE_NAME_PATTERN = re.compile(r"address|addr|street|line|location|city|state|area")

MERGE_JOINER = ", "


def find_merge_column(columns: Sequence[str], start: int = 0, end: int | None = None) -> int:
    """Return the index of the column that absorbs surplus tokens.

    Searches ``columns[start:end]``: an exact ``address`` / ``addr`` name wins,
    then the first name matching :data:`MERGE_NAME_PATTERN`, else ``start``.
    """
    stop = len(columns) if end is None else min(end, len(columns))
    lowered = [str(c).lower() for c in columns]
    for idx in range(start, stop):
        if lowered[idx] in EXACT_MERGE_NAMES:
            return idx
    for idx in range(start, stop):
        if MERGE_NAME_PATTERN.search(lowered[idx]):
            return idx
    return start


def map_tokens(tokens: Sequence[str], columns: Sequence[str], start: int = 0) -> list[str]:
    """Align ``tokens`` to ``columns[start:]`` and return one cell per covered column.

    The returned list is shorter than the target window when there are fewer
    tokens than columns (the remaining columns stay unset).
    """
    needed = len(columns) - start
    if needed <= 0:
        return list(tokens)
    if len(tokens) <= needed:
        return list(tokens)

    merge_index = find_merge_column(columns, start, start + needed)
    end_index = start + needed - 1
    mapped: list[str] = []
    p = 0
    for col_index in range(start, end_index + 1):
        if col_index == merge_index:
            remaining_after = end_index - col_index
            take = max(1, len(tokens) - p - remaining_after)
            mapped.append(MERGE_JOINER.join(tokens[p:p + take]).strip())
            p += take
        else:
            mapped.append(tokens[p] if p < len(tokens) else "")
            p += 1
    return mapped


def map_row(tokens: Sequence[str], columns: Sequence[str], start: int = 0) -> dict[str, str]:
    """Like :func:`map_tokens` but keyed by column name."""
    cells = map_tokens(tokens, columns, start)
    return {
        columns[start + offset]: cell
        for offset, cell in enumerate(cells)
        if start + offset < len(columns)
    }


def parse_line(
    line: str,
    columns: Sequence[str],
    start: int = 0,
    delimiter: str | None = None,
) -> list[str]:
    """Tokenize one pasted line and align it to the columns from ``start``.

    Tab-delimited lines come from spreadsheet clipboards where every cell is
    already separate, so they are mapped positionally without merging.
    """
    delim = delimiter if delimiter is not None else detect_delimiter(line)
    cells = split_cells(line, delim)
    if delim == TAB:
        return cells
    return map_tokens(cells, columns, start)
