"""
SideHive Functions - Rolling-window rate limits.

Counts `ai_usage` rows per (identity, kind) over the last window. The
identity is the authenticated user id when there is one, otherwise the
session id.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from supabase import Client

from sidehive.core.errors import RateLimitedError

logger = logging.getLogger(__name__)

TABLE = "ai_usage"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Fixed count of operations per identity per rolling window."""

    def __init__(
        self,
        client_factory: Callable[[], Client],
        limits: dict[str, int],
        *,
        window_seconds: int = 60,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._client_factory = client_factory
        self.limits = dict(limits)
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock

    def usage(self, identity: str, kind: str) -> int:
        """Operations recorded in the current window."""
        since = self._clock() - self.window
        response = (
            self._client_factory()
            .table(TABLE)
            .select("id", count="exact")
            .eq("identity", identity)
            .eq("kind", kind)
            .gte("created_at", since.isoformat())
            .execute()
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def check(self, identity: str, kind: str) -> None:
        """Raise RateLimitedError if the identity is at its limit for `kind`."""
        limit = self.limits.get(kind)
        if not limit:
            return
        try:
            used = self.usage(identity, kind)
        except Exception as e:
            # Fail open
            logger.error(f"Rate limit lookup failed for {kind}: {e}")
            return
        if used >= limit:
            logger.info(f"Rate limited {identity} on {kind} ({used}/{limit})")
            raise RateLimitedError(retry_after=self.window.total_seconds())

    def record(self, identity: str, kind: str) -> None:
        try:
            self._client_factory().table(TABLE).insert({
                "identity": identity,
                "kind": kind,
                "created_at": self._clock().isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Failed to record usage for {kind}: {e}")
