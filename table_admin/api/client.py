from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..models.table_data import ApiResponse, Row, TableDataResponse
from .errors import ApiError, normalize_error_body
from .payloads import build_update_payload, clean_insert_rows

"""HTTP client for the table admin REST API and the chat webhook.

Endpoints:
- GET  /api/tables                          -> list of table names
- GET  /api/tables/{name}/data?limit&offset -> TableDataResponse
- POST /api/tables/insert                   -> {success, message, details}
- PUT  /api/tables/update                   -> {success, message, details}
- PUT  /api/tables/{name}/bulk-replace      -> legacy, inserts server-side
- POST <webhook_url> {question}             -> {reply | answer}

Calls block until the transport resolves: no timeout, no retry.
"""

__all__ = [
    "TableApiClient",
]

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 1000


class TableApiClient:
    """Synchronous client over ``httpx.Client``.

    ``transport`` is passed through to httpx (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        webhook_url: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.webhook_url = webhook_url
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=None,  # タイムアウト無し (応答 or 失敗まで待つ)
            headers={"accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> TableApiClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ----- transport helpers ----------------------------------------------
    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.debug("%s %s transport failure: %s", method, url, e)
            raise ApiError(str(e) or "Network error") from e

    def _json_or_raise(self, response: httpx.Response, fallback: str) -> Any:
        try:
            body = response.json()
        except ValueError as e:
            if response.is_error:
                raise ApiError(
                    f"Request failed with status {response.status_code}",
                    status=response.status_code,
                ) from e
            raise ApiError("Invalid JSON response from server", status=response.status_code) from e
        logger.debug("%s %s -> %d", response.request.method, response.request.url, response.status_code)
        if response.is_error:
            raise normalize_error_body(body, response.status_code, fallback)
        return body

    # ----- table endpoints --------------------------------------------------
    def list_tables(self) -> list[str]:
        try:
            response = self._send("GET", "/api/tables")
            body = self._json_or_raise(response, "Failed to fetch table names")
        except ApiError as e:
            raise ApiError("Failed to fetch table names", status=e.status, raw=e.detail) from e
        if not isinstance(body, list):
            raise ApiError("Failed to fetch table names", raw=body)
        return [str(name) for name in body]

    def fetch_table_data(
        self, table_name: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0
    ) -> TableDataResponse:
        response = self._send(
            "GET",
            f"/api/tables/{quote(table_name, safe='')}/data",
            params={"limit": limit, "offset": offset},
        )
        body = self._json_or_raise(response, "Failed to fetch table data.")
        if not isinstance(body, dict):
            raise ApiError("Invalid table data response", status=response.status_code, raw=body)
        return TableDataResponse.from_json(body)

    def insert_rows(self, table_name: str, rows: Sequence[Row]) -> ApiResponse:
        """Insert new rows (cleaned: no ``id``, no empty cells, no empty rows)."""
        clean = clean_insert_rows(rows)
        if not clean:
            raise ApiError("No valid data provided for insertion")
        logger.debug("insert payload table=%s rows=%d", table_name, len(clean))
        response = self._send(
            "POST",
            "/api/tables/insert",
            json={"table_name": table_name, "data": clean},
        )
        body = self._json_or_raise(response, "Bulk insert failed")
        return ApiResponse.from_json(body, f"{len(clean)} rows inserted successfully")

    def update_rows(
        self, table_name: str, primary_key_column: str, updates: Sequence[Row]
    ) -> ApiResponse:
        """Update existing rows identified by ``primary_key_column``.

        Raises MissingPrimaryKeyError (no request sent) if any entry lacks a key.
        """
        if not table_name or not primary_key_column:
            raise ApiError("tableName and primaryKeyColumn are required")
        if not updates:
            raise ApiError("updates must be a non-empty array")
        payload = build_update_payload(primary_key_column, updates)
        body_out = {
            "table_name": table_name,
            "primary_key_column": primary_key_column,
            "updates": payload,
        }
        logger.debug("update payload table=%s entries=%d", table_name, len(payload))
        response = self._send("PUT", "/api/tables/update", json=body_out)
        body = self._json_or_raise(response, f"Update failed with status {response.status_code}")
        return ApiResponse.from_json(body, f"{len(payload)} rows updated successfully")

    def bulk_replace(self, table_name: str, rows: Sequence[Row]) -> ApiResponse:
        """Legacy endpoint; the server performs inserts, not a real replace."""
        response = self._send(
            "PUT",
            f"/api/tables/{quote(table_name, safe='')}/bulk-replace",
            json={"table_name": table_name, "data": list(rows)},
        )
        body = self._json_or_raise(response, "Unknown error occurred.")
        return ApiResponse.from_json(body)

    # ----- chat webhook -----------------------------------------------------
    def ask(self, question: str) -> str:
        """Send a question to the chat webhook; failures come back as text."""
        if not self.webhook_url:
            return "Webhook error: webhook url is not configured"
        try:
            response = self.client.post(self.webhook_url, json={"question": question})
            if response.is_error:
                raise ApiError("Webhook error", status=response.status_code)
            data = response.json()
        except (httpx.HTTPError, ApiError, ValueError) as e:
            logger.warning("chat webhook failed: %s", e)
            return f"Webhook error: {str(e) or 'Unknown error'}"
        if isinstance(data, dict):
            answer = data.get("reply") or data.get("answer")
            if answer:
                return str(answer)
        return json.dumps(data, ensure_ascii=False)
