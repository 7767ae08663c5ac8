from __future__ import annotations

import statistics
from pathlib import Path
from typing import Any

from case_assistant.evaluation.metrics import classification_metrics, per_department_accuracy
from case_assistant.nlp.patterns import (
    COMPLAINT_REASON,
    DIRECT_MENTION_REASON,
    GENERAL_REASON,
    TECHNICAL_FAULT_REASON,
)
from case_assistant.routing.directory import TuningConfig, parse_directory
from case_assistant.routing.scoring import suggest_department
from case_assistant.utils.io import read_json, write_json

FALLBACK_REASONS = {COMPLAINT_REASON, TECHNICAL_FAULT_REASON, DIRECT_MENTION_REASON, GENERAL_REASON}


class RoutingBenchmark:
    """
    Replays a labelled set of case texts through the production routing path.

    The gold file is either a list of `{text, department}` rows or an object with
    `cases`, an optional `directory` and optional `tuning` applied to every case.
    """

    def __init__(self, tuning: TuningConfig | None = None) -> None:
        self.tuning = tuning

    def run(self, gold_path: Path, output_path: Path | None = None) -> dict[str, Any]:
        payload = read_json(gold_path)
        if isinstance(payload, dict):
            cases = payload.get("cases", [])
            directory = parse_directory(payload.get("directory"))
            tuning = self.tuning or TuningConfig.from_mapping(payload.get("tuning"))
        else:
            cases = payload
            directory = ()
            tuning = self.tuning or TuningConfig()

        y_true: list[str] = []
        y_pred: list[str] = []
        confidences: list[float] = []
        fallbacks = 0
        details: list[dict[str, Any]] = []

        for row in cases:
            suggestion = suggest_department(row["text"], directory, tuning)
            y_true.append(row["department"])
            y_pred.append(suggestion.department)
            confidences.append(suggestion.confidence)
            if suggestion.reason in FALLBACK_REASONS:
                fallbacks += 1
            details.append(
                {
                    "text": row["text"],
                    "expected": row["department"],
                    "predicted": suggestion.department,
                    "confidence": round(suggestion.confidence, 4),
                    "reason": suggestion.reason,
                }
            )

        report = {
            "cases": len(details),
            "routing": classification_metrics(y_true, y_pred),
            "per_department_accuracy": per_department_accuracy(y_true, y_pred),
            "mean_confidence": statistics.mean(confidences) if confidences else 0.0,
            "fallback_rate": fallbacks / len(details) if details else 0.0,
            "samples": details,
        }
        if output_path is not None:
            write_json(output_path, report)
        return report
