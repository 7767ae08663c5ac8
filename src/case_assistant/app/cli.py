from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from case_assistant.config import EVAL_DATA_DIR, REPORTS_DIR, SETTINGS, ensure_directories
from case_assistant.utils.logging import configure_logging


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run_reply(text: str) -> None:
    from case_assistant.nlp.intent import auto_reply

    _print(auto_reply(text).to_dict())


def run_route(text: str, debug: bool, options_path: str | None) -> None:
    from case_assistant.db.settings_store import SQLiteConfigStore
    from case_assistant.routing.scoring import DepartmentRouter
    from case_assistant.utils.io import read_json

    router = DepartmentRouter(SQLiteConfigStore(SETTINGS.settings_db_path))
    if not debug:
        _print(router.suggest(text).to_dict())
        return

    options = read_json(Path(options_path)) if options_path else router.resolver.load_tuning_defaults()
    _print(router.debug(text, options).to_dict())


def run_peaks(history_path: Path) -> None:
    from case_assistant.analytics.peaks import predict_peaks
    from case_assistant.utils.io import read_json

    history = read_json(history_path)
    if not isinstance(history, list):
        raise SystemExit("History file must contain a JSON array of timestamps or {timestamp} records.")
    _print([prediction.to_dict() for prediction in predict_peaks(history)])


def run_eval(gold_path: Path, report_path: Path) -> None:
    from case_assistant.evaluation.benchmark import RoutingBenchmark

    report = RoutingBenchmark().run(gold_path=gold_path, output_path=report_path)
    _print({key: value for key, value in report.items() if key != "samples"})


def store_json_setting(key: str, path: Path) -> None:
    from case_assistant.db.settings_store import SQLiteConfigStore, write_json_key
    from case_assistant.routing.directory import TuningConfig, parse_directory
    from case_assistant.utils.io import read_json

    payload = read_json(path)
    store = SQLiteConfigStore(SETTINGS.settings_db_path)
    if key == SETTINGS.departments_key:
        write_json_key(store, key, payload)
        print(f"Stored {len(parse_directory(payload))} usable department entries")
    else:
        write_json_key(store, key, TuningConfig.from_mapping(payload).to_dict())
        print(f"Stored routing tuning under {key}")


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("case_assistant.web.server:app", host=host, port=port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Case Assistant routing engine")
    parser.add_argument(
        "command",
        choices=["reply", "route", "peaks", "evaluate", "serve", "set-directory", "set-system-defaults"],
    )
    parser.add_argument("target", nargs="?", help="Input text, or a JSON file for peaks/set-* commands")
    parser.add_argument("--debug", action="store_true", help="Return the full candidate breakdown")
    parser.add_argument("--options", default=None, help="JSON file with debug tuning options")
    parser.add_argument("--gold-path", default=str(EVAL_DATA_DIR / "routing_gold.json"))
    parser.add_argument("--report-path", default=str(REPORTS_DIR / "routing_report.json"))
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    configure_logging()
    ensure_directories()

    if args.command in {"reply", "route", "peaks", "set-directory", "set-system-defaults"} and not args.target:
        parser.error(f"{args.command} requires a target argument")

    if args.command == "reply":
        run_reply(args.target)
    elif args.command == "route":
        run_route(args.target, debug=args.debug, options_path=args.options)
    elif args.command == "peaks":
        run_peaks(Path(args.target))
    elif args.command == "evaluate":
        run_eval(gold_path=Path(args.gold_path), report_path=Path(args.report_path))
    elif args.command == "serve":
        serve(host=args.host, port=args.port)
    elif args.command == "set-directory":
        store_json_setting(SETTINGS.departments_key, Path(args.target))
    elif args.command == "set-system-defaults":
        store_json_setting(SETTINGS.system_defaults_key, Path(args.target))


if __name__ == "__main__":
    main()
