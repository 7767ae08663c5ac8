from __future__ import annotations

from collections.abc import Sequence

from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score


def classification_metrics(y_true: Sequence[str], y_pred: Sequence[str]) -> dict[str, float]:
    if not y_true:
        return {"accuracy": 0.0, "precision_macro": 0.0, "recall_macro": 0.0, "f1_macro": 0.0}
    return {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "precision_macro": float(precision_score(y_true, y_pred, average="macro", zero_division=0)),
        "recall_macro": float(recall_score(y_true, y_pred, average="macro", zero_division=0)),
        "f1_macro": float(f1_score(y_true, y_pred, average="macro", zero_division=0)),
    }


def per_department_accuracy(y_true: Sequence[str], y_pred: Sequence[str]) -> dict[str, float]:
    totals: dict[str, int] = {}
    correct: dict[str, int] = {}
    for expected, predicted in zip(y_true, y_pred):
        totals[expected] = totals.get(expected, 0) + 1
        if expected == predicted:
            correct[expected] = correct.get(expected, 0) + 1
    return {department: correct.get(department, 0) / count for department, count in totals.items()}
