"""
SideHive Functions - Idempotency store.

Time-windowed response cache in the `idempotent_responses` table, keyed by
(session_id, idempotency_key, fn). Records are insert-only; freshness is
decided on read, never by deleting rows.

Lookups also compare the stored request hash when the caller supplies one:
the same key reused with a different body is a miss (and a warning), not a
stale hit.
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from supabase import Client

logger = logging.getLogger(__name__)

TABLE = "idempotent_responses"

DEFAULT_WINDOW = timedelta(minutes=15)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hash_request(body: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of `body`."""
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class IdempotencyStore:
    """Server-side dedup of AI-backed operations."""

    def __init__(
        self,
        client_factory: Callable[[], Client],
        *,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._client_factory = client_factory
        self.window = window
        self._clock = clock

    def check(
        self,
        session_id: str,
        key: str,
        operation: str,
        request_hash: str | None = None,
    ) -> dict | None:
        """
        Cached response for the triple, or None.

        A record is fresh only while `now - created_at < window`.
        """
        now = self._clock()
        cutoff = now - self.window
        try:
            response = (
                self._client_factory()
                .table(TABLE)
                .select("response, request_hash, created_at")
                .eq("session_id", session_id)
                .eq("idempotency_key", key)
                .eq("fn", operation)
                .gt("created_at", cutoff.isoformat())
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Idempotency lookup failed for {operation}/{key}: {e}")
            return None

        for row in response.data or []:
            created_at = _parse_iso(row.get("created_at"))
            if created_at is None or now - created_at >= self.window:
                continue
            stored_hash = row.get("request_hash")
            if request_hash and stored_hash and stored_hash != request_hash:
                logger.warning(
                    f"Idempotency key {key} reused for a different {operation} request; treating as miss"
                )
                return None
            logger.info(f"Idempotency hit for {operation}/{key}")
            return row.get("response")
        return None

    def store(
        self,
        session_id: str,
        key: str,
        operation: str,
        request_hash: str,
        response: dict,
    ) -> bool:
        """Insert a record. Returns False (and logs) on failure."""
        try:
            self._client_factory().table(TABLE).insert({
                "session_id": session_id,
                "idempotency_key": key,
                "fn": operation,
                "request_hash": request_hash,
                "response": response,
                "created_at": self._clock().isoformat(),
            }).execute()
            return True
        except Exception as e:
            logger.error(f"Failed to store idempotent response for {operation}/{key}: {e}")
            return False
