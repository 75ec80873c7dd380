# Shared pytest fixtures
from __future__ import annotations

import json
import logging
import re
import tempfile
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from table_admin.api.client import TableApiClient
from table_admin.logging.init import LOGGER_NAME, reset_logging

BASE_URL = "http://testserver"
WEBHOOK_URL = "http://testserver/webhook"

CUSTOMERS = [
    {"id": 1, "name": "Alice", "email": "alice@example.com", "age": 30, "active": True},
    {"id": 2, "name": "Bob", "email": "bob@example.com", "age": 25, "active": False},
]

_DATA_PATH = re.compile(r"^/api/tables/([^/]+)/data$")


class FakeTableApi:
    """In-memory table API served through httpx.MockTransport."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        self.tables = {name: [dict(r) for r in rows] for name, rows in tables.items()}
        self.requests: list[httpx.Request] = []
        self.fail_fetch = False
        self.fail_insert = False
        self.webhook_reply: Any = {"reply": "There are 2 customers."}

    def bodies(self, method: str) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/webhook":
            return httpx.Response(200, json=self.webhook_reply)

        if request.method == "GET" and path == "/api/tables":
            return httpx.Response(200, json=list(self.tables))

        m = _DATA_PATH.match(request.url.raw_path.decode().split("?")[0])
        if request.method == "GET" and m:
            if self.fail_fetch:
                return httpx.Response(500, json={"detail": "database unavailable"})
            name = unquote(m.group(1))
            if name not in self.tables:
                return httpx.Response(404, json={"detail": f"Table '{name}' not found"})
            rows = self.tables[name]
            limit = int(request.url.params.get("limit", "1000"))
            offset = int(request.url.params.get("offset", "0"))
            return httpx.Response(200, json={
                "table_name": name,
                "data": rows[offset:offset + limit],
                "total_count": len(rows),
                "limit": limit,
                "offset": offset,
            })

        if request.method == "POST" and path == "/api/tables/insert":
            if self.fail_insert:
                return httpx.Response(400, json={"detail": "duplicate key value violates unique constraint"})
            body = json.loads(request.content)
            rows = self.tables[body["table_name"]]
            next_id = max([int(r.get("id") or 0) for r in rows] + [0]) + 1
            for i, row in enumerate(body["data"]):
                rows.append({"id": next_id + i, **row})
            return httpx.Response(200, json={
                "success": True,
                "message": f"{len(body['data'])} rows inserted",
                "details": None,
            })

        if request.method == "PUT" and path == "/api/tables/update":
            body = json.loads(request.content)
            rows = self.tables[body["table_name"]]
            pk = body["primary_key_column"]
            updated = 0
            for entry in body["updates"]:
                fields = {k: v for k, v in entry.items() if k != "primary_key_value"}
                for row in rows:
                    if str(row.get(pk)) == str(entry["primary_key_value"]):
                        row.update(fields)
                        updated += 1
            return httpx.Response(200, json={
                "success": True,
                "message": f"{updated} rows updated",
                "details": None,
            })

        return httpx.Response(404, json={"detail": "Not Found"})

    def client(self, base_url: str = BASE_URL, webhook_url: str | None = WEBHOOK_URL) -> TableApiClient:
        return TableApiClient(base_url, webhook_url, transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def _reset_app_logger():
    # ハンドラは setup 時の sys.stdout に束縛されるため毎テスト作り直す
    reset_logging()
    app_logger = logging.getLogger(LOGGER_NAME)
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    monkeypatch.delenv("TABLE_ADMIN_API_URL", raising=False)
    monkeypatch.delenv("TABLE_ADMIN_WEBHOOK_URL", raising=False)
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return f"""api_base_url: {BASE_URL}
webhook_url: {WEBHOOK_URL}
page_limit: 100
max_bulk_rows: 500
type_sample_size: 50
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "admin.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fake_api() -> FakeTableApi:
    return FakeTableApi({"customers": CUSTOMERS})


@pytest.fixture()
def api_client(fake_api: FakeTableApi):
    client = fake_api.client()
    yield client
    client.close()


@pytest.fixture()
def patch_cli_client(monkeypatch, fake_api: FakeTableApi) -> FakeTableApi:
    """Route the CLI's TableApiClient through the in-memory fake."""
    import table_admin.cli.__main__ as cli_module

    def factory(base_url: str, webhook_url: str | None = None) -> TableApiClient:
        return fake_api.client(base_url, webhook_url)

    monkeypatch.setattr(cli_module, "TableApiClient", factory)
    return fake_api
