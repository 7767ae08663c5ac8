from __future__ import annotations

import json

from case_assistant.config import EVAL_DATA_DIR, REPORTS_DIR
from case_assistant.evaluation.benchmark import RoutingBenchmark
from case_assistant.utils.logging import configure_logging


if __name__ == "__main__":
    configure_logging()
    report = RoutingBenchmark().run(
        gold_path=EVAL_DATA_DIR / "routing_gold.json",
        output_path=REPORTS_DIR / "routing_report.json",
    )
    print(json.dumps(report["routing"], indent=2))
