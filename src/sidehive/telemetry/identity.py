"""
SideHive Telemetry - Session and trace identity.

The session id is resolved URL first, then durable storage. When both
exist and disagree the URL wins, storage is synced to it, and the
divergence is recorded so callers can react instead of silently mixing
two sessions.
"""

import logging
import secrets
import string
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sidehive.telemetry.location import Location
from sidehive.telemetry.storage import SESSION_ID_KEY, DurableStorage

logger = logging.getLogger(__name__)

SESSION_PARAM = "sid"

TRACE_ID_LENGTH = 10
TRACE_ALPHABET = string.ascii_letters + string.digits


def generate_trace_id() -> str:
    """10 chars over [A-Za-z0-9], about 59 bits of entropy."""
    return "".join(secrets.choice(TRACE_ALPHABET) for _ in range(TRACE_ID_LENGTH))


@dataclass
class SessionDivergence:
    """URL and storage named different sessions."""
    url_session_id: str
    stored_session_id: str
    detected_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class TelemetryIdentity:
    """Owns the authoritative session id for one client context."""

    def __init__(self, storage: DurableStorage, location: Location, env: str = "development"):
        self.storage = storage
        self.location = location
        self.env = env
        self.divergences: list[SessionDivergence] = []

    def get_session_id(self) -> str:
        """
        Return the current session id, creating one if none exists.

        Creation writes storage and rewrites the URL with `?sid=` in one step.
        """
        url_sid = self.location.get_param(SESSION_PARAM)
        stored_sid = self.storage.get(SESSION_ID_KEY)

        if url_sid:
            if stored_sid and stored_sid != url_sid:
                divergence = SessionDivergence(url_session_id=url_sid, stored_session_id=stored_sid)
                self.divergences.append(divergence)
                logger.warning(
                    f"Session id divergence: url={url_sid} storage={stored_sid}; using url"
                )
            if stored_sid != url_sid:
                self.storage.set(SESSION_ID_KEY, url_sid)
            return url_sid

        if stored_sid:
            return stored_sid

        session_id = str(uuid.uuid4())
        self.storage.set(SESSION_ID_KEY, session_id)
        self.location.set_param(SESSION_PARAM, session_id)
        logger.info(f"Created session {session_id}")
        return session_id

    def set_session_id(self, session_id: str) -> None:
        """Explicitly switch the active session (restore, collision resolution)."""
        previous = self.storage.get(SESSION_ID_KEY)
        self.storage.set(SESSION_ID_KEY, session_id)
        self.location.set_param(SESSION_PARAM, session_id)
        logger.info(f"Switched session {previous} -> {session_id}")

    def get_telemetry_headers(self) -> dict[str, str]:
        """Headers for one outbound operation (fresh trace id each call)."""
        return {
            "X-Session-Id": self.get_session_id(),
            "X-Trace-Id": generate_trace_id(),
            "X-Env": self.env,
        }
