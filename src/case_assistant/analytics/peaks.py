from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

from case_assistant.data_models import PeakPrediction

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
TOP_PEAKS = 3
PEAK_LABEL = "ذروة متوقعة"
ELEVATED_LABEL = "نشاط مرتفع"
CONFIDENCE_BIAS = 0.2

# Numeric timestamps above this are treated as epoch milliseconds.
_EPOCH_MILLIS_THRESHOLD = 1e11


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 or RFC 2822 string, an epoch number or a `{"timestamp": ...}` record."""
    if isinstance(value, Mapping):
        value = value.get("timestamp")

    try:
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            seconds = value / 1000 if abs(value) >= _EPOCH_MILLIS_THRESHOLD else value
            return datetime.fromtimestamp(seconds).astimezone()
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            return _parse_date_string(value)
    except (ValueError, OverflowError, OSError):
        return None
    return None


def hourly_histogram(history: Iterable[Any] | None) -> list[int]:
    counts = [0] * HOURS_PER_DAY
    skipped = 0
    for item in history or []:
        parsed = parse_timestamp(item)
        if parsed is None:
            skipped += 1
            continue
        # Naive timestamps are already local; aware ones are converted.
        local = parsed.astimezone() if parsed.tzinfo is not None else parsed
        counts[local.hour] += 1
    if skipped:
        logger.debug("Skipped %s unparseable timestamps", skipped)
    return counts


def predict_peaks(history: Iterable[Any] | None) -> list[PeakPrediction]:
    """
    Return the three busiest hours of the day.

    Always three predictions, even for sparse or empty history; each confidence is the
    hour's share of all contacts plus a flat 0.2, capped at 1.
    """
    counts = hourly_histogram(history)
    total = sum(counts) or 1
    ranked = sorted(range(HOURS_PER_DAY), key=lambda hour: counts[hour], reverse=True)

    return [
        PeakPrediction(
            hour=hour,
            label=PEAK_LABEL if idx == 0 else ELEVATED_LABEL,
            confidence=min(1.0, counts[hour] / total + CONFIDENCE_BIAS),
        )
        for idx, hour in enumerate(ranked[:TOP_PEAKS])
    ]


def _parse_date_string(value: str) -> datetime | None:
    text = value.strip()
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    # RFC 2822, e.g. "Tue, 23 Sep 2025 08:00:00 GMT"
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
