from __future__ import annotations

import json

import httpx
import pytest

from table_admin.api.client import TableApiClient
from table_admin.api.errors import ApiError, MissingPrimaryKeyError


def _client(handler, webhook_url: str | None = "http://testserver/webhook") -> TableApiClient:
    return TableApiClient("http://testserver/", webhook_url, transport=httpx.MockTransport(handler))


def test_list_tables(api_client):
    assert api_client.list_tables() == ["customers"]


def test_list_tables_failure_is_normalized():
    client = _client(lambda request: httpx.Response(500, json={"detail": "boom"}))
    with pytest.raises(ApiError) as e:
        client.list_tables()
    assert e.value.detail == "Failed to fetch table names"


def test_fetch_table_data_encodes_name_and_pages():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "table_name": "my table", "data": [{"id": 1}], "total_count": 7, "limit": 10, "offset": 5,
        })

    response = _client(handler).fetch_table_data("my table", 10, 5)

    assert seen[0].url.raw_path.startswith(b"/api/tables/my%20table/data")
    assert seen[0].url.params["limit"] == "10"
    assert seen[0].url.params["offset"] == "5"
    assert response.data == [{"id": 1}]
    assert response.total_count == 7


def test_string_detail_becomes_message(api_client):
    with pytest.raises(ApiError) as e:
        api_client.fetch_table_data("missing")
    assert e.value.detail == "Table 'missing' not found"
    assert e.value.status == 404


def test_validation_detail_list_is_flattened():
    detail = [
        {"loc": ["body", "table_name"], "msg": "field required", "type": "missing"},
        {"loc": ["body", "limit"], "msg": "value is not a valid integer", "type": "int_parsing"},
    ]
    client = _client(lambda request: httpx.Response(422, json={"detail": detail}))
    with pytest.raises(ApiError) as e:
        client.fetch_table_data("t")
    assert e.value.detail == "field required; value is not a valid integer"
    assert e.value.raw == detail


def test_non_json_bodies():
    client = _client(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))
    with pytest.raises(ApiError, match="Request failed with status 502"):
        client.fetch_table_data("t")
    client = _client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(ApiError, match="Invalid JSON response from server"):
        client.fetch_table_data("t")


def test_transport_failure_becomes_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError, match="connection refused"):
        _client(handler).fetch_table_data("t")


def test_insert_rows_cleans_payload(fake_api, api_client):
    response = api_client.insert_rows("customers", [
        {"id": "3", "name": "Carol", "email": ""},
        {"id": "4", "name": "", "email": None},
    ])
    assert response.success is True
    assert response.message == "1 rows inserted"
    assert fake_api.bodies("POST") == [{"table_name": "customers", "data": [{"name": "Carol"}]}]


def test_insert_rows_without_data_sends_nothing(fake_api, api_client):
    with pytest.raises(ApiError, match="No valid data provided for insertion"):
        api_client.insert_rows("customers", [{"id": "3", "name": ""}])
    assert fake_api.requests == []


def test_update_rows_payload(fake_api, api_client):
    response = api_client.update_rows("customers", "id", [{"id": 2, "name": "Bobby", "email": ""}])
    assert response.message == "1 rows updated"
    assert fake_api.bodies("PUT")[0]["updates"] == [{"primary_key_value": 2, "name": "Bobby"}]


def test_update_rows_rejects_missing_keys_before_sending(fake_api, api_client):
    with pytest.raises(MissingPrimaryKeyError) as e:
        api_client.update_rows("customers", "id", [{"id": 1, "name": "x"}, {"name": "y"}])
    assert e.value.indexes == [1]
    with pytest.raises(ApiError, match="non-empty"):
        api_client.update_rows("customers", "id", [])
    assert fake_api.requests == []


def test_bulk_replace_path():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "message": "ok"})

    assert _client(handler).bulk_replace("customers", [{"name": "x"}]).message == "ok"
    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/api/tables/customers/bulk-replace"
    assert json.loads(seen[0].content)["data"] == [{"name": "x"}]


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"reply": "hello"}, "hello"),
        ({"answer": "42"}, "42"),
        ({"other": 1}, '{"other": 1}'),
    ],
)
def test_ask_reply_shapes(body, expected):
    client = _client(lambda request: httpx.Response(200, json=body))
    assert client.ask("how many rows?") == expected


def test_ask_failures_are_returned_as_text():
    client = _client(lambda request: httpx.Response(500, json={}))
    assert client.ask("q").startswith("Webhook error:")
    assert _client(lambda request: httpx.Response(200), webhook_url=None).ask("q") == (
        "Webhook error: webhook url is not configured"
    )
