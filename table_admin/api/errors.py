from __future__ import annotations

import json
from typing import Any

"""API error types and error-body normalization.

Every failure shape of the table API is normalized to an ApiError whose
``detail`` is one human readable string:

- transport failure            -> ApiError(<transport message>)
- non-2xx, ``detail`` string   -> ApiError(detail)
- non-2xx, ``detail`` list     -> ApiError("msg1; msg2", raw=<list>)
- non-2xx, unrecognized body   -> ApiError(<json dump of body>)
- non-2xx, non-JSON body       -> ApiError("Request failed with status N")

No retry is performed anywhere; the caller decides what to do.
"""

__all__ = [
    "ApiError",
    "MissingPrimaryKeyError",
    "flatten_validation_detail",
    "normalize_error_body",
]


class ApiError(Exception):
    """Normalized API failure."""

    def __init__(self, detail: str, status: int | None = None, raw: Any = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status
        self.raw = raw

    def __str__(self) -> str:
        return self.detail


class MissingPrimaryKeyError(ApiError):
    """Update batch contains entries without a primary key value (fatal for the batch)."""

    def __init__(self, detail: str, indexes: list[int] | None = None) -> None:
        super().__init__(detail)
        self.indexes = indexes or []


def flatten_validation_detail(detail: list[Any], separator: str = "; ") -> str:
    """Join the ``msg`` of each ``{loc, msg, type}`` entry into one string."""
    parts = []
    for entry in detail:
        if isinstance(entry, dict) and entry.get("msg"):
            parts.append(str(entry["msg"]))
        else:
            parts.append(json.dumps(entry, ensure_ascii=False))
    return separator.join(parts)


def normalize_error_body(body: Any, status: int | None, fallback: str) -> ApiError:
    """Build an ApiError from a decoded non-2xx response body.

    ``fallback`` is used when the body is empty / null.
    """
    if isinstance(body, dict) and "detail" in body:
        detail = body["detail"]
        if isinstance(detail, str):
            return ApiError(detail, status=status)
        if isinstance(detail, list):
            return ApiError(flatten_validation_detail(detail), status=status, raw=detail)
    if body:
        return ApiError(json.dumps(body, ensure_ascii=False), status=status, raw=body)
    return ApiError(fallback, status=status)
