"""Paste / import text parsing: tokenizer and column mapper."""

from .column_mapper import find_merge_column, map_row, map_tokens, parse_line
from .tokenizer import detect_delimiter, split_cells, split_lines, strip_enclosing_quotes, tokenize

__all__ = [
    "detect_delimiter",
    "find_merge_column",
    "map_row",
    "map_tokens",
    "parse_line",
    "split_cells",
    "split_lines",
    "strip_enclosing_quotes",
    "tokenize",
]
