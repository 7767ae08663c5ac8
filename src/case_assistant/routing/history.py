from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from case_assistant.config import SETTINGS, Settings
from case_assistant.data_models import RoutingSample
from case_assistant.db.settings_store import ConfigStore, read_json_key, write_json_key

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_DEPARTMENT = 10
MAX_SAMPLE_CHARS = 400


class RoutingHistory:
    """Recent texts routed to each department during tuning sessions, newest first."""

    def __init__(self, store: ConfigStore, settings: Settings = SETTINGS) -> None:
        self.store = store
        self.key = settings.history_key

    def load(self) -> dict[str, list[RoutingSample]]:
        raw = read_json_key(self.store, self.key, default={})
        if not isinstance(raw, Mapping):
            logger.warning("Routing history has unexpected shape %s; ignoring it", type(raw).__name__)
            return {}
        return {str(department): _samples(value) for department, value in raw.items()}

    def record(self, department: str, text: str, ts: str | None = None) -> RoutingSample:
        sample = RoutingSample(text=text[:MAX_SAMPLE_CHARS])
        if ts:
            sample = replace(sample, ts=ts)
        history = self.load()
        history[department] = [sample, *history.get(department, [])][:MAX_SAMPLES_PER_DEPARTMENT]
        self._save(history)
        return sample

    def merge(self, payload: Any) -> dict[str, list[RoutingSample]]:
        """Merge an exported history into the stored one, de-duplicating on text and timestamp."""
        if not isinstance(payload, Mapping):
            raise ValueError("Routing history import must be an object keyed by department")

        history = self.load()
        for department, value in payload.items():
            merged: dict[str, RoutingSample] = {}
            for sample in [*_samples(value), *history.get(str(department), [])]:
                if sample.text:
                    merged[f"{sample.text}::{sample.ts}"] = sample
            history[str(department)] = sorted(
                merged.values(),
                key=lambda item: _timestamp_key(item.ts),
                reverse=True,
            )[:MAX_SAMPLES_PER_DEPARTMENT]

        self._save(history)
        return history

    def clear(self) -> None:
        self.store.delete(self.key)

    def timestamps(self) -> list[str]:
        return [sample.ts for samples in self.load().values() for sample in samples]

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self.load())

    def _save(self, history: dict[str, list[RoutingSample]]) -> None:
        write_json_key(self.store, self.key, _serialize(history))


def _serialize(history: dict[str, list[RoutingSample]]) -> dict[str, Any]:
    return {department: {"samples": [s.to_dict() for s in samples]} for department, samples in history.items()}


def _samples(value: Any) -> list[RoutingSample]:
    rows = value.get("samples") if isinstance(value, Mapping) else None
    if not isinstance(rows, list):
        return []
    samples: list[RoutingSample] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        samples.append(
            RoutingSample(
                text=str(row.get("text") or "")[:MAX_SAMPLE_CHARS],
                ts=str(row.get("ts") or ""),
            )
        )
    return samples


def _timestamp_key(ts: str) -> float:
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return float("-inf")
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.timestamp()
