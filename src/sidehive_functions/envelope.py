"""
SideHive Functions - Request metadata and the response envelope.

Every function response carries trace_id, session_id, idempotency_key,
duration_ms, ok and deduped, whether it succeeded or not.
"""

import logging
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable

from fastapi import Request
from pydantic import BaseModel, Field

from sidehive.telemetry.identity import generate_trace_id
from sidehive_functions.config import settings
from sidehive_functions.db import get_service_client
from sidehive_functions.idempotency import IdempotencyStore, hash_request
from sidehive_functions.rate_limit import RateLimiter
from sidehive_functions.request_context import set_request_context

logger = logging.getLogger(__name__)

UNKNOWN_SESSION = "unknown"


class RequestMeta(BaseModel):
    """Correlation headers of one function request."""
    session_id: str
    trace_id: str
    idempotency_key: str
    env: str = "development"
    feature_flags: list[str] = Field(default_factory=list)
    context_hash: str | None = None
    started_at: float = Field(default_factory=time.perf_counter, exclude=True)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)


def parse_feature_flags(header: str | None) -> list[str]:
    """Split the comma-joined X-Feature-Flags header."""
    if not header:
        return []
    return [flag.strip() for flag in header.split(",") if flag.strip()]


def meta_from_request(request: Request) -> RequestMeta:
    """Build (once) and cache the RequestMeta on request.state."""
    existing = getattr(request.state, "meta", None)
    if existing is not None:
        return existing

    headers = request.headers
    trace_id = headers.get("x-trace-id") or generate_trace_id()
    meta = RequestMeta(
        session_id=headers.get("x-session-id") or UNKNOWN_SESSION,
        trace_id=trace_id,
        idempotency_key=headers.get("x-idempotency-key") or trace_id,
        env=headers.get("x-env") or "development",
        feature_flags=parse_feature_flags(headers.get("x-feature-flags")),
        context_hash=headers.get("x-context-hash"),
    )
    request.state.meta = meta
    set_request_context(session_id=meta.session_id, trace_id=meta.trace_id)
    return meta


async def get_request_meta(request: Request) -> RequestMeta:
    """FastAPI dependency."""
    return meta_from_request(request)


def envelope(meta: RequestMeta, *, ok: bool = True, deduped: bool = False, **payload: Any) -> dict:
    """Wrap a payload in the standard envelope."""
    return {
        "trace_id": meta.trace_id,
        "session_id": meta.session_id,
        "idempotency_key": meta.idempotency_key,
        "duration_ms": meta.elapsed_ms(),
        "ok": ok,
        "deduped": deduped,
        **payload,
    }


# =============================================================================
# Shared services (overridable in tests via app.dependency_overrides)
# =============================================================================

_idempotency_store: IdempotencyStore | None = None
_rate_limiter: RateLimiter | None = None


def get_idempotency_store() -> IdempotencyStore:
    global _idempotency_store
    if _idempotency_store is None:
        _idempotency_store = IdempotencyStore(
            get_service_client,
            window=timedelta(minutes=settings.idempotency_window_minutes),
        )
    return _idempotency_store


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(
            get_service_client,
            settings.rate_limits,
            window_seconds=settings.rate_limit_window_seconds,
        )
    return _rate_limiter


async def run_idempotent(
    meta: RequestMeta,
    *,
    operation: str,
    kind: str,
    identity: str,
    body: BaseModel,
    work: Callable[[], Awaitable[dict]],
    store: IdempotencyStore,
    limiter: RateLimiter,
) -> dict:
    """
    Dedupe, rate-limit, run and cache one AI-backed operation.

    Order: cached response (free, not rate limited) -> rate limit check
    (raises before any write) -> work -> usage record -> cache write.
    """
    request_hash = hash_request(body.model_dump(mode="json"))

    cached = store.check(meta.session_id, meta.idempotency_key, operation, request_hash)
    if cached is not None:
        return envelope(meta, deduped=True, **cached)

    limiter.check(identity, kind)

    result = await work()
    limiter.record(identity, kind)
    store.store(meta.session_id, meta.idempotency_key, operation, request_hash, result)

    logger.info(f"{operation} completed in {meta.elapsed_ms()}ms (trace {meta.trace_id})")
    return envelope(meta, deduped=False, **result)
