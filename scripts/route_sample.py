from __future__ import annotations

import json
import sys

from case_assistant.db.settings_store import SQLiteConfigStore
from case_assistant.nlp.intent import auto_reply
from case_assistant.routing.scoring import DepartmentRouter


if __name__ == "__main__":
    router = DepartmentRouter(SQLiteConfigStore())
    print("Case Assistant (type 'exit' to quit)")
    for line in sys.stdin:
        text = line.strip()
        if text.lower() in {"exit", "quit"}:
            break
        print(json.dumps(
            {"reply": auto_reply(text).to_dict(), "routing": router.suggest(text).to_dict()},
            ensure_ascii=False,
        ))
