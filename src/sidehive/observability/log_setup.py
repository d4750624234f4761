"""
SideHive Observability - process logging and event sink setup.
"""

import logging

from sidehive.config import CoreSettings, core_settings
from sidehive.db.client import get_client
from sidehive.observability.events import (
    CompositeEventSink,
    EventSink,
    MemoryEventSink,
    SupabaseEventSink,
)
from sidehive.observability.jsonl import JsonlEventSink

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the app or CLI."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_event_sink(
    settings: CoreSettings | None = None,
    *,
    memory: MemoryEventSink | None = None,
) -> EventSink:
    """
    The client's event sink: the `events` table, an in-memory ring for
    the debug panel, and a JSONL file when SIDEHIVE_LOG_EVENTS is set.
    """
    settings = settings or core_settings
    sinks: list[EventSink] = [SupabaseEventSink(get_client), memory or MemoryEventSink()]
    if settings.sidehive_log_events:
        sinks.append(JsonlEventSink())
    return CompositeEventSink(*sinks)
