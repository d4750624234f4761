"""
SideHive Telemetry - Durable client storage.

A small string key/value store persisted as one JSON file. It plays the
role local storage plays in a browser: written synchronously, survives
restarts, and is the fallback of record when server sync fails.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Storage keys
SESSION_ID_KEY = "sidehive_session_id"
FORM_STATE_KEY = "sidehive_form_state"
STEP_STATE_KEY = "sidehive_step_state"
DRAFT_BUSINESS_KEY = "sidehive_draft_business_id"
CONTEXT_KEY = "sidehive_context"
SELECTED_GENERATIONS_KEY = "sidehive_selected_generation_ids"
PENDING_CLAIM_KEY = "pending_claim_session"
FLAG_OVERRIDES_KEY = "feature_flags_override"


class DurableStorage:
    """
    String key/value storage.

    With `path=None` the store lives in memory only (tests, previews).
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else None
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._data = {str(k): str(v) for k, v in raw.items()}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            self._data = {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed JSON under storage key '{key}'")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))

    def clear(self) -> None:
        self._data.clear()
        self._flush()
