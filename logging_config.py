from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

# Extra fields copied into JSON log lines when present on a record.
_EXTRA_FIELDS = ("row_index", "accessory", "mode")


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        return f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"


def _truthy_env(name: str) -> bool:
    return str(os.getenv(name, "")).strip().lower() in {"1", "true", "yes", "y", "on"}


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Configure root logging once at startup.

    `level` defaults to LOG_LEVEL (INFO); `json_logs` defaults to LOG_JSON.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if json_logs is None:
        json_logs = _truthy_env("LOG_JSON")

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)

    for name in ("streamlit", "watchdog", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging initialized (level=%s, json=%s)", level, json_logs)
