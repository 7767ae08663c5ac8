from __future__ import annotations

from case_assistant.db.settings_store import (
    InMemoryConfigStore,
    SQLiteConfigStore,
    read_json_key,
    write_json_key,
)


def test_sqlite_store_upserts_and_deletes(tmp_path) -> None:
    store = SQLiteConfigStore(tmp_path / "settings.db")

    assert store.get("departments_list") is None

    store.set("departments_list", "[]")
    store.set("departments_list", '[{"name": "قسم الدخل"}]')
    assert store.get("departments_list") == '[{"name": "قسم الدخل"}]'
    assert store.keys() == ["departments_list"]

    store.delete("departments_list")
    assert store.get("departments_list") is None


def test_sqlite_store_persists_across_instances(tmp_path) -> None:
    path = tmp_path / "nested" / "settings.db"
    write_json_key(SQLiteConfigStore(path), "routing_system_defaults", {"dynName": False})

    assert read_json_key(SQLiteConfigStore(path), "routing_system_defaults") == {"dynName": False}


def test_read_json_key_returns_default_for_missing_or_malformed_values() -> None:
    store = InMemoryConfigStore()
    store.set("broken", "{not json")
    store.set("blank", "  ")

    assert read_json_key(store, "missing", default=[]) == []
    assert read_json_key(store, "broken", default={}) == {}
    assert read_json_key(store, "blank") is None
