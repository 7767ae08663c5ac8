from __future__ import annotations

import logging
import sys

from case_assistant.config import SETTINGS

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = getattr(logging, (level or SETTINGS.log_level).upper(), logging.INFO)
    logging.basicConfig(format=LOG_FORMAT, stream=sys.stderr, level=resolved)
