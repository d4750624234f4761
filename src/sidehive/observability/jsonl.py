"""
SideHive Observability - JSONL event log.

One JSONL file per run (tail -f friendly) with smart truncation of large
values. Enabled via SIDEHIVE_LOG_EVENTS=1.

Log format:
    {"ts": "2026-01-01T17:30:00", "event": "operation", "step": "generate-identity", ...}
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from sidehive.observability.events import OperationEvent

LOG_DIR = Path("event_logs")

MAX_STRING_LEN = 200
MAX_LIST_ITEMS = 5
MAX_DICT_KEYS = 10
MAX_DEPTH = 3


def _truncate_value(value: Any, depth: int = 0) -> Any:
    """
    Truncate values for logging.

    - Strings > MAX_STRING_LEN get cut with a length note
    - Lists > MAX_LIST_ITEMS show first N + count
    - Dicts > MAX_DICT_KEYS show first N keys + count
    """
    if depth > MAX_DEPTH:
        return "<nested>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, list):
        items = [_truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        if len(value) > MAX_LIST_ITEMS:
            items.append(f"... +{len(value) - MAX_LIST_ITEMS} more")
        return items

    if isinstance(value, dict):
        result = {k: _truncate_value(value[k], depth + 1) for k in list(value)[:MAX_DICT_KEYS]}
        if len(value) > MAX_DICT_KEYS:
            result["_truncated"] = f"+{len(value) - MAX_DICT_KEYS} keys"
        return result

    if hasattr(value, "model_dump"):
        return _truncate_value(value.model_dump(), depth)

    return str(value)[:MAX_STRING_LEN]


class JsonlEventSink:
    """Appends operation events to event_logs/events_<run>.jsonl."""

    def __init__(self, run_id: str | None = None, log_dir: Path = LOG_DIR):
        log_dir.mkdir(parents=True, exist_ok=True)
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_path = log_dir / f"events_{self.run_id}.jsonl"
        self._file = open(self.log_path, "a", encoding="utf-8")

    def _write(self, data: dict) -> None:
        if self._file is None:
            return
        entry = {"ts": datetime.now().isoformat(), **data}
        self._file.write(json.dumps(entry, default=str) + "\n")
        self._file.flush()

    def log(self, event: OperationEvent) -> None:
        row = {key: _truncate_value(value, 1) for key, value in event.model_dump().items()}
        self._write({"event": "operation", **row})

    def close(self) -> str | None:
        if self._file is None:
            return None
        self._file.close()
        self._file = None
        return str(self.log_path)
