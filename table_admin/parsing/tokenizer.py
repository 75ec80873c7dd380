from __future__ import annotations

import re

"""Delimited-text tokenizer for pasted / uploaded spreadsheet text.

One line of text is split on a delimiter (tab or comma) while keeping
quoted strings and bracket / brace / parenthesis groups together, so that
free-text address fields or JSON-like values containing commas are not
fragmented into several cells.

The bracket tracking is a heuristic, not a grammar: it assumes balanced
brackets that do not occur inside string content.
"""

__all__ = [
    "TAB",
    "COMMA",
    "tokenize",
    "strip_enclosing_quotes",
    "split_cells",
    "detect_delimiter",
    "split_lines",
]

TAB = "\t"
COMMA = ","

_OPENERS = {"[": "bracket", "{": "brace", "(": "paren"}
_CLOSERS = {"]": "bracket", "}": "brace", ")": "paren"}

_LINE_BREAK = re.compile(r"\r?\n")


def tokenize(line: str, delimiter: str) -> list[str]:
    """Split a single line into trimmed field tokens.

    Rules:
    - ``"`` toggles the in-quotes state; ``""`` inside quotes is an escaped
      literal quote and does not toggle.
    - Outside quotes, ``[]``, ``{}`` and ``()`` adjust their depth counters,
      clamped at zero (unmatched closers are ignored).
    - The delimiter splits only when not in quotes and every depth is zero.
    - The last token is always emitted, even if empty (trailing delimiter).

    Quote characters that toggle the state stay in the token; callers strip
    one enclosing layer with :func:`strip_enclosing_quotes`.
    """
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    depth = {"bracket": 0, "brace": 0, "paren": 0}

    i = 0
    length = len(line)
    while i < length:
        ch = line[i]

        if ch == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            current.append(ch)
            i += 1
            continue

        if not in_quotes:
            if ch in _OPENERS:
                depth[_OPENERS[ch]] += 1
            elif ch in _CLOSERS:
                kind = _CLOSERS[ch]
                depth[kind] = max(0, depth[kind] - 1)

        nested = any(d > 0 for d in depth.values())
        if ch == delimiter and not in_quotes and not nested:
            tokens.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    # 末尾区切り文字でも空トークンを出す
    tokens.append("".join(current))
    return [t.strip() for t in tokens]


def strip_enclosing_quotes(token: str) -> str:
    """Remove one leading and one trailing literal double quote, if present."""
    if token.startswith('"'):
        token = token[1:]
    if token.endswith('"'):
        token = token[:-1]
    return token


def split_cells(line: str, delimiter: str) -> list[str]:
    """Tokenize a line and strip one layer of enclosing quotes from each cell."""
    return [strip_enclosing_quotes(t) for t in tokenize(line, delimiter)]


def detect_delimiter(text: str) -> str:
    """Tab-separated text (Excel / Sheets clipboard) wins over comma."""
    return TAB if TAB in text else COMMA


def split_lines(text: str) -> list[str]:
    """Split raw text into lines, dropping blank / whitespace-only lines."""
    return [line for line in _LINE_BREAK.split(text) if line.strip()]
