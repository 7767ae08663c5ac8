from __future__ import annotations

import uvicorn

from case_assistant.utils.logging import configure_logging


if __name__ == "__main__":
    configure_logging()
    uvicorn.run("case_assistant.web.server:app", host="127.0.0.1", port=8000)
