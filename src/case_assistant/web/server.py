from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from case_assistant.analytics.peaks import predict_peaks
from case_assistant.config import SETTINGS, ensure_directories
from case_assistant.db.settings_store import ConfigStore, SQLiteConfigStore, read_json_key, write_json_key
from case_assistant.nlp.intent import IntentClassifier
from case_assistant.routing.directory import TuningConfig, parse_directory
from case_assistant.routing.history import RoutingHistory
from case_assistant.routing.scoring import DepartmentRouter

logger = logging.getLogger(__name__)

app = FastAPI(title="Case Assistant Routing Engine", version="1.0.0")


@dataclass
class RuntimeState:
    store: ConfigStore | None = None
    intent_classifier: IntentClassifier | None = None

    def get_store(self) -> ConfigStore:
        if self.store is None:
            self.store = SQLiteConfigStore(SETTINGS.settings_db_path)
        return self.store

    def get_classifier(self) -> IntentClassifier:
        if self.intent_classifier is None:
            self.intent_classifier = IntentClassifier()
        return self.intent_classifier


STATE = RuntimeState()


class AutoReplyRequest(BaseModel):
    message: str = Field(default="", max_length=SETTINGS.max_text_chars)


class RoutingRequest(BaseModel):
    details: str = Field(default="", max_length=SETTINGS.max_text_chars)


class DebugRoutingRequest(BaseModel):
    details: str = Field(default="", max_length=SETTINGS.max_text_chars)
    options: dict[str, Any] | None = None
    use_system_defaults: bool = False
    record_history: bool = False
    admin_token: str | None = None


class PeaksRequest(BaseModel):
    history: list[Any] = Field(default_factory=list, max_length=100_000)


class AdminDirectoryRequest(BaseModel):
    admin_token: str
    departments: list[Any]


class AdminTuningRequest(BaseModel):
    admin_token: str
    payload_json: str


class AdminHistoryImportRequest(BaseModel):
    admin_token: str
    payload_json: str


@app.on_event("startup")
def startup() -> None:
    ensure_directories()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/auto-reply")
def auto_reply(payload: AutoReplyRequest) -> dict[str, Any]:
    return STATE.get_classifier().predict(payload.message).to_dict()


@app.post("/api/routing/suggest")
def routing_suggest(payload: RoutingRequest) -> dict[str, Any]:
    return DepartmentRouter(STATE.get_store()).suggest(payload.details).to_dict()


@app.post("/api/routing/debug")
def routing_debug(payload: DebugRoutingRequest) -> dict[str, Any]:
    if payload.record_history:
        _authorize_admin(payload.admin_token)

    store = STATE.get_store()
    router = DepartmentRouter(store)

    if payload.use_system_defaults and router.resolver.has_system_defaults():
        tuning = router.resolver.load_system_defaults()
    elif payload.options is not None:
        tuning = TuningConfig.from_mapping(payload.options)
    elif router.resolver.has_tuning_defaults():
        tuning = router.resolver.load_tuning_defaults()
    else:
        tuning = TuningConfig()

    evaluation = router.debug(payload.details, tuning)
    if payload.record_history and payload.details.strip():
        RoutingHistory(store).record(evaluation.result.department, payload.details.strip())
    return evaluation.to_dict()


@app.post("/api/peaks")
def peaks(payload: PeaksRequest) -> list[dict[str, Any]]:
    return [prediction.to_dict() for prediction in predict_peaks(payload.history)]


@app.get("/api/peaks/history")
def peaks_from_history() -> list[dict[str, Any]]:
    timestamps = RoutingHistory(STATE.get_store()).timestamps()
    return [prediction.to_dict() for prediction in predict_peaks(timestamps)]


@app.get("/api/admin/departments")
def admin_get_departments(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    departments = read_json_key(STATE.get_store(), SETTINGS.departments_key, default=[])
    return {
        "ok": True,
        "departments": departments,
        "usable_entries": len(parse_directory(departments)),
    }


@app.put("/api/admin/departments")
def admin_put_departments(payload: AdminDirectoryRequest) -> dict[str, Any]:
    _authorize_admin(payload.admin_token)
    usable = parse_directory(payload.departments)
    write_json_key(STATE.get_store(), SETTINGS.departments_key, payload.departments)
    logger.info("Department directory updated: %s entries (%s usable)", len(payload.departments), len(usable))
    return {"ok": True, "entries": len(payload.departments), "usable_entries": len(usable)}


@app.delete("/api/admin/departments")
def admin_delete_departments(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    STATE.get_store().delete(SETTINGS.departments_key)
    return {"ok": True}


@app.get("/api/admin/routing/system-defaults")
def admin_get_system_defaults(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    return _tuning_status(SETTINGS.system_defaults_key)


@app.put("/api/admin/routing/system-defaults")
def admin_put_system_defaults(payload: AdminTuningRequest) -> dict[str, Any]:
    _authorize_admin(payload.admin_token)
    return _save_tuning(SETTINGS.system_defaults_key, payload.payload_json)


@app.delete("/api/admin/routing/system-defaults")
def admin_delete_system_defaults(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    STATE.get_store().delete(SETTINGS.system_defaults_key)
    return {"ok": True}


@app.get("/api/admin/routing/tuning-defaults")
def admin_get_tuning_defaults(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    return _tuning_status(SETTINGS.tuning_defaults_key)


@app.put("/api/admin/routing/tuning-defaults")
def admin_put_tuning_defaults(payload: AdminTuningRequest) -> dict[str, Any]:
    _authorize_admin(payload.admin_token)
    return _save_tuning(SETTINGS.tuning_defaults_key, payload.payload_json)


@app.delete("/api/admin/routing/tuning-defaults")
def admin_delete_tuning_defaults(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    STATE.get_store().delete(SETTINGS.tuning_defaults_key)
    return {"ok": True}


@app.get("/api/admin/routing/history")
def admin_get_history(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    return {"ok": True, "history": RoutingHistory(STATE.get_store()).to_dict()}


@app.post("/api/admin/routing/history/import")
def admin_import_history(payload: AdminHistoryImportRequest) -> dict[str, Any]:
    _authorize_admin(payload.admin_token)
    parsed = _parse_payload_json(payload.payload_json)
    history = RoutingHistory(STATE.get_store())
    try:
        history.merge(parsed)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True, "history": history.to_dict()}


@app.delete("/api/admin/routing/history")
def admin_delete_history(admin_token: str) -> dict[str, Any]:
    _authorize_admin(admin_token)
    RoutingHistory(STATE.get_store()).clear()
    return {"ok": True}


def _tuning_status(key: str) -> dict[str, Any]:
    raw = read_json_key(STATE.get_store(), key)
    return {
        "ok": True,
        "present": raw is not None,
        "tuning": TuningConfig.from_mapping(raw).to_dict(),
    }


def _save_tuning(key: str, payload_json: str) -> dict[str, Any]:
    parsed = _parse_payload_json(payload_json)
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=400, detail="payload_json must be a JSON object")

    tuning = TuningConfig.from_mapping(parsed).to_dict()
    write_json_key(STATE.get_store(), key, tuning)
    logger.info("Saved routing tuning under %s", key)
    return {"ok": True, "tuning": tuning}


def _parse_payload_json(payload_json: str) -> Any:
    try:
        return json.loads(payload_json)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid JSON payload: {exc.msg}")


def _authorize_admin(admin_token: str | None) -> None:
    if admin_token != SETTINGS.admin_api_token:
        raise HTTPException(status_code=403, detail="Invalid admin token")
