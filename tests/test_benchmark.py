from __future__ import annotations

import json
from pathlib import Path

import pytest

from case_assistant.evaluation.benchmark import RoutingBenchmark
from case_assistant.evaluation.metrics import classification_metrics, per_department_accuracy

GOLD_PATH = Path(__file__).resolve().parents[1] / "data" / "eval" / "routing_gold.json"


def test_classification_metrics_on_small_sample() -> None:
    metrics = classification_metrics(["a", "b", "b"], ["a", "b", "a"])

    assert metrics["accuracy"] == pytest.approx(2 / 3)
    assert set(metrics) == {"accuracy", "precision_macro", "recall_macro", "f1_macro"}
    assert classification_metrics([], [])["accuracy"] == 0.0
    assert per_department_accuracy(["a", "b", "b"], ["a", "b", "a"]) == {"a": 1.0, "b": 0.5}


def test_routing_benchmark_writes_report(tmp_path) -> None:
    output = tmp_path / "report.json"
    report = RoutingBenchmark().run(gold_path=GOLD_PATH, output_path=output)

    assert report["cases"] == 10
    assert 0.0 <= report["routing"]["accuracy"] <= 1.0
    assert 0.5 <= report["mean_confidence"] <= 1.0
    assert json.loads(output.read_text(encoding="utf-8"))["cases"] == 10

    treasury = next(row for row in report["samples"] if row["expected"] == "الخزينة")
    assert treasury["predicted"] == "الخزينة"


def test_routing_benchmark_accepts_plain_case_lists(tmp_path) -> None:
    gold = tmp_path / "gold.json"
    gold.write_text(json.dumps([{"text": "hello world", "department": "إدارة الاستعلامات والشكاوى"}]), encoding="utf-8")

    report = RoutingBenchmark().run(gold_path=gold)

    assert report["routing"]["accuracy"] == 1.0
    assert report["fallback_rate"] == 1.0
