"""
SideHive Telemetry - session identity, trace ids and durable client storage.
"""

from sidehive.telemetry.identity import TelemetryIdentity, SessionDivergence, generate_trace_id
from sidehive.telemetry.location import Location
from sidehive.telemetry.storage import DurableStorage

__all__ = [
    "TelemetryIdentity",
    "SessionDivergence",
    "generate_trace_id",
    "Location",
    "DurableStorage",
]
