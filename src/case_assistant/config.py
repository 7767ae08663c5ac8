from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("CASE_ASSISTANT_DATA_DIR", str(PROJECT_ROOT / "data")))
EVAL_DATA_DIR = DATA_DIR / "eval"
REPORTS_DIR = DATA_DIR / "reports"
DB_DIR = DATA_DIR / "db"


def _load_dotenv_file(path: Path) -> None:
    if not path.exists():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'\"")
        if key and key not in os.environ:
            os.environ[key] = value


_load_dotenv_file(PROJECT_ROOT / ".env")


@dataclass(frozen=True)
class Settings:
    settings_db_path: str = os.getenv("CASE_ASSISTANT_SETTINGS_DB", str(DB_DIR / "settings.db"))
    admin_api_token: str = os.getenv("ADMIN_API_TOKEN", "case-admin")
    log_level: str = os.getenv("CASE_ASSISTANT_LOG_LEVEL", "INFO")

    # Guards for operator-supplied alias/negative patterns.
    regex_timeout_seconds: float = float(os.getenv("REGEX_TIMEOUT_SECONDS", "0.05"))
    max_pattern_length: int = int(os.getenv("MAX_PATTERN_LENGTH", "300"))
    max_text_chars: int = int(os.getenv("MAX_TEXT_CHARS", "5000"))

    departments_key: str = "departments_list"
    system_defaults_key: str = "routing_system_defaults"
    tuning_defaults_key: str = "routing_tuning_defaults"
    history_key: str = "routing_history"


SETTINGS = Settings()


def ensure_directories() -> None:
    for path in [EVAL_DATA_DIR, REPORTS_DIR, DB_DIR]:
        path.mkdir(parents=True, exist_ok=True)
