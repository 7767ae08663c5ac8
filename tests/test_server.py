from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from case_assistant.config import SETTINGS
from case_assistant.db.settings_store import InMemoryConfigStore
from case_assistant.web import server

TOKEN = SETTINGS.admin_api_token


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> InMemoryConfigStore:
    memory = InMemoryConfigStore()
    monkeypatch.setattr(server.STATE, "store", memory)
    return memory


@pytest.fixture
def client(store: InMemoryConfigStore) -> TestClient:
    with TestClient(server.app) as test_client:
        yield test_client


def test_auto_reply_endpoint(client: TestClient) -> None:
    response = client.post("/api/auto-reply", json={"message": "مرحبا"})

    assert response.status_code == 200
    assert response.json()["intent"] == "greeting"
    assert response.json()["confidence"] == 0.85


def test_routing_suggest_endpoint(client: TestClient) -> None:
    response = client.post("/api/routing/suggest", json={"details": "أريد الاستعلام عن دفع الرسوم والفاتورة"})

    assert response.status_code == 200
    body = response.json()
    assert body["department"] == "الخزينة"
    assert body["confidence"] == 1.0
    assert body["reason"]


def test_directory_update_changes_routing(client: TestClient) -> None:
    departments = [{"name": "قسم الدخل", "aliases": ["الإقرار"]}, "قسم الإدارة العامة", 7]
    response = client.put("/api/admin/departments", json={"admin_token": TOKEN, "departments": departments})

    assert response.status_code == 200
    assert response.json()["usable_entries"] == 2

    routed = client.post("/api/routing/suggest", json={"details": "مراجعة قسم الدخل بخصوص الإقرار"}).json()
    assert routed["department"] == "قسم الدخل"

    listed = client.get("/api/admin/departments", params={"admin_token": TOKEN}).json()
    assert listed["departments"] == departments


def test_admin_endpoints_require_token(client: TestClient) -> None:
    assert client.put("/api/admin/departments", json={"admin_token": "wrong", "departments": []}).status_code == 403
    assert client.get("/api/admin/routing/history", params={"admin_token": "wrong"}).status_code == 403


def test_debug_endpoint_returns_breakdown_and_records_history(client: TestClient, store: InMemoryConfigStore) -> None:
    client.put(
        "/api/admin/departments",
        json={"admin_token": TOKEN, "departments": [{"name": "قسم الدخل", "aliases": ["/[/i", "الإقرار"]}]},
    )

    response = client.post(
        "/api/routing/debug",
        json={
            "details": "مراجعة قسم الدخل بخصوص الإقرار",
            "options": {"boosts": {"dynAlias": 0.1}},
            "record_history": True,
            "admin_token": TOKEN,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["department"] == "قسم الدخل"
    assert body["result"]["confidence"] == pytest.approx(0.82)
    assert body["candidates"][0]["alias_hits"] == ["الإقرار"]
    assert body["invalidRegex"][0]["kind"] == "alias"

    history = client.get("/api/admin/routing/history", params={"admin_token": TOKEN}).json()["history"]
    assert history["قسم الدخل"]["samples"][0]["text"] == "مراجعة قسم الدخل بخصوص الإقرار"

    peaks = client.get("/api/peaks/history").json()
    assert len(peaks) == 3


def test_debug_endpoint_can_preview_system_defaults(client: TestClient) -> None:
    saved = client.put(
        "/api/admin/routing/system-defaults",
        json={"admin_token": TOKEN, "payload_json": json.dumps({"ruleInclude": {"الخزينة": False}})},
    )
    assert saved.status_code == 200
    assert saved.json()["tuning"]["ruleInclude"] == {"الخزينة": False}

    body = client.post(
        "/api/routing/debug",
        json={"details": "أريد الاستعلام عن دفع الرسوم والفاتورة", "use_system_defaults": True},
    ).json()
    assert body["result"]["department"] == "الخدمة المواطنية"

    production = client.post("/api/routing/suggest", json={"details": "أريد الاستعلام عن دفع الرسوم والفاتورة"}).json()
    assert production["department"] == "الخدمة المواطنية"

    status = client.get("/api/admin/routing/system-defaults", params={"admin_token": TOKEN}).json()
    assert status["present"] is True

    client.delete("/api/admin/routing/system-defaults", params={"admin_token": TOKEN})
    status = client.get("/api/admin/routing/system-defaults", params={"admin_token": TOKEN}).json()
    assert status["present"] is False


def test_tuning_payload_must_be_a_json_object(client: TestClient) -> None:
    bad_json = client.put("/api/admin/routing/tuning-defaults", json={"admin_token": TOKEN, "payload_json": "{oops"})
    not_object = client.put("/api/admin/routing/tuning-defaults", json={"admin_token": TOKEN, "payload_json": "[1]"})

    assert bad_json.status_code == 400
    assert not_object.status_code == 400


def test_history_import_rejects_invalid_shape(client: TestClient) -> None:
    response = client.post(
        "/api/admin/routing/history/import",
        json={"admin_token": TOKEN, "payload_json": "[]"},
    )

    assert response.status_code == 400


def test_peaks_endpoint(client: TestClient) -> None:
    response = client.post(
        "/api/peaks",
        json={"history": [{"timestamp": "2025-09-23T08:00:00"}, "2025-09-23T08:30:00", "garbage"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 3
    assert body[0]["hour"] == 8
    assert body[0]["confidence"] == 1.0


def test_debug_endpoint_does_not_write_history_without_admin_token(
    client: TestClient, store: InMemoryConfigStore
) -> None:
    response = client.post("/api/routing/debug", json={"details": "دفع الرسوم"})

    assert response.status_code == 200
    assert response.json()["result"]["department"] == "الخزينة"
    assert store.get(SETTINGS.history_key) is None

    forged = client.post(
        "/api/routing/debug",
        json={"details": "دفع الرسوم", "record_history": True, "admin_token": "wrong"},
    )
    assert forged.status_code == 403
    assert client.post("/api/routing/debug", json={"details": "دفع الرسوم", "record_history": True}).status_code == 403
    assert store.get(SETTINGS.history_key) is None


def test_debug_endpoint_accepts_empty_text(client: TestClient) -> None:
    response = client.post("/api/routing/debug", json={"details": ""})

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["department"] == "إدارة الاستعلامات والشكاوى"
    assert body["result"]["confidence"] == 0.6
    assert body["candidates"] == []


def test_debug_endpoint_falls_back_to_saved_tuning_defaults(client: TestClient) -> None:
    text = "أريد الاستعلام عن دفع الرسوم والفاتورة"
    assert client.post("/api/routing/debug", json={"details": text}).json()["result"]["department"] == "الخزينة"

    client.put(
        "/api/admin/routing/tuning-defaults",
        json={"admin_token": TOKEN, "payload_json": json.dumps({"ruleInclude": {"الخزينة": False}})},
    )

    body = client.post("/api/routing/debug", json={"details": text}).json()
    assert body["result"]["department"] == "الخدمة المواطنية"
