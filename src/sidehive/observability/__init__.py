"""
SideHive Observability - operation events and log setup.
"""

from sidehive.observability.events import (
    CompositeEventSink,
    EventSink,
    MemoryEventSink,
    OperationEvent,
    SupabaseEventSink,
)
from sidehive.observability.jsonl import JsonlEventSink
from sidehive.observability.log_setup import configure_logging, create_event_sink

__all__ = [
    "CompositeEventSink",
    "EventSink",
    "JsonlEventSink",
    "MemoryEventSink",
    "OperationEvent",
    "SupabaseEventSink",
    "configure_logging",
    "create_event_sink",
]
