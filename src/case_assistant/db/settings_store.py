from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from case_assistant.config import SETTINGS

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SQLiteConfigStore:
    """Key-value settings table shared with the admin side of the case workflow."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or SETTINGS.settings_db_path)
        self._init_table()

    def _init_table(self) -> None:
        with _connect(self.path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def get(self, key: str) -> str | None:
        with _connect(self.path) as conn:
            row = conn.execute("SELECT value FROM app_settings WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        with _connect(self.path) as conn:
            conn.execute(
                """
                INSERT INTO app_settings (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with _connect(self.path) as conn:
            conn.execute("DELETE FROM app_settings WHERE key = ?", (key,))
            conn.commit()

    def keys(self) -> list[str]:
        with _connect(self.path) as conn:
            rows = conn.execute("SELECT key FROM app_settings ORDER BY key").fetchall()
        return [row["key"] for row in rows]


class InMemoryConfigStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._values[key] = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)


def read_json_key(store: ConfigStore, key: str, default: Any = None) -> Any:
    raw = store.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed JSON stored under %s: %s", key, exc)
        return default


def write_json_key(store: ConfigStore, key: str, payload: Any) -> None:
    store.set(key, json.dumps(payload, ensure_ascii=False))


def _connect(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn
