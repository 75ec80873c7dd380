from __future__ import annotations

import pytest

from table_admin.api.errors import MissingPrimaryKeyError
from table_admin.services.auto_fix import AutoFixError
from table_admin.services.orchestrator import load_table
from table_admin.services.save import SaveError, build_update_entries, save_new_rows, save_updates


def test_unchanged_rows_produce_no_entries():
    original = [{"id": 1, "name": "A", "note": None}]
    current = [{"id": "1", "name": "A", "note": ""}]
    assert build_update_entries(original, current, "id") == []


def test_one_changed_field_produces_one_entry():
    original = [{"id": 1, "name": "A", "age": 3}, {"id": 2, "name": "B", "age": 4}]
    current = [{"id": 1, "name": "A2", "age": 3}, {"id": 2, "name": "B", "age": "4"}]
    assert build_update_entries(original, current, "id") == [{"id": 1, "name": "A2"}]


def test_new_keys_are_skipped():
    original = [{"id": 1, "name": "A"}]
    current = [{"id": 1, "name": "A"}, {"id": "9", "name": "new"}]
    assert build_update_entries(original, current, "id") == []


def test_changed_row_without_key_fails_the_batch():
    original = [{"id": "", "name": "x"}]
    assert build_update_entries(original, [{"id": "", "name": "x"}], "id") == []
    with pytest.raises(MissingPrimaryKeyError) as e:
        build_update_entries(original, [{"id": "", "name": "y"}], "id")
    assert e.value.indexes == [0]


def test_save_new_rows_inserts_and_refreshes(fake_api, api_client):
    store = load_table(api_client, "customers", 100)
    store.append_rows([{"name": "Carol", "email": "carol@example.com", "age": "41", "active": "yes"}])

    result = save_new_rows(store, api_client)

    assert result.submitted_rows == 1
    assert result.message == "1 rows inserted successfully with auto-fix applied!"
    assert result.refreshed is True
    assert fake_api.bodies("POST") == [{
        "table_name": "customers",
        "data": [{"name": "Carol", "email": "carol@example.com", "age": 41, "active": True}],
    }]
    assert store.original_length == 3
    assert store.new_rows() == []


def test_save_new_rows_requires_new_rows(api_client):
    store = load_table(api_client, "customers", 100)
    with pytest.raises(SaveError, match="Please add new rows to save."):
        save_new_rows(store, api_client)


def test_auto_fix_failure_submits_nothing(fake_api, api_client):
    store = load_table(api_client, "customers", 100)
    store.append_rows([{"name": "Carol", "age": "forty"}])
    with pytest.raises(AutoFixError):
        save_new_rows(store, api_client)
    assert fake_api.bodies("POST") == []


def test_failed_refresh_is_not_fatal(fake_api, api_client):
    store = load_table(api_client, "customers", 100)
    store.append_rows([{"name": "Carol"}])
    fake_api.fail_fetch = True
    result = save_new_rows(store, api_client)
    assert result.refreshed is False
    assert len(fake_api.tables["customers"]) == 3


def test_save_updates_sends_changed_fields_only(fake_api, api_client):
    store = load_table(api_client, "customers", 100)
    store.update_cell(0, "name", "Alicia")

    result = save_updates(store, api_client)

    assert result.submitted_rows == 1
    assert fake_api.bodies("PUT") == [{
        "table_name": "customers",
        "primary_key_column": "id",
        "updates": [{"primary_key_value": 1, "name": "Alicia"}],
    }]
    assert fake_api.tables["customers"][0]["name"] == "Alicia"


def test_save_updates_without_changes(api_client):
    store = load_table(api_client, "customers", 100)
    with pytest.raises(SaveError, match="No changes to save."):
        save_updates(store, api_client)
