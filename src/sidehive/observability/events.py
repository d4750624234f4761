"""
SideHive Observability - Operation events.

One OperationEvent is emitted per logical remote call (not per attempt).
Sinks are best effort: a failing sink logs and moves on, it never fails
the operation it is describing.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from pydantic import BaseModel, Field
from supabase import Client

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LEN = 500


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OperationEvent(BaseModel):
    """Structured record of one logical call."""
    session_id: str
    trace_id: str
    step: str  # operation name
    action: str
    ok: bool
    duration_ms: int
    attempts: int = 1
    provider: str | None = None
    payload_keys: list[str] = Field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None
    created_at: str = Field(default_factory=_utc_now_iso)


class EventSink(Protocol):
    def log(self, event: OperationEvent) -> None: ...


class SupabaseEventSink:
    """Inserts events into the `events` table."""

    def __init__(self, client_factory: Callable[[], Client]):
        self._client_factory = client_factory

    def log(self, event: OperationEvent) -> None:
        try:
            row = event.model_dump(exclude={"created_at"})
            self._client_factory().table("events").insert(row).execute()
        except Exception as e:
            logger.error(f"Failed to log event {event.step}/{event.trace_id}: {e}")


class MemoryEventSink:
    """Keeps events in memory (debug panel, tests)."""

    def __init__(self, max_events: int = 200):
        self.events: list[OperationEvent] = []
        self._max_events = max_events

    def log(self, event: OperationEvent) -> None:
        self.events.append(event)
        if len(self.events) > self._max_events:
            del self.events[: len(self.events) - self._max_events]

    @property
    def last(self) -> OperationEvent | None:
        return self.events[-1] if self.events else None

    def clear(self) -> None:
        self.events.clear()


class CompositeEventSink:
    """Fans one event out to several sinks."""

    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def log(self, event: OperationEvent) -> None:
        for sink in self.sinks:
            try:
                sink.log(event)
            except Exception as e:
                logger.error(f"Event sink {type(sink).__name__} failed: {e}")


def truncate_error_message(message: str | None) -> str | None:
    if message is None:
        return None
    return message[:MAX_ERROR_MESSAGE_LEN]
