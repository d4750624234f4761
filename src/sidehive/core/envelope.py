"""
SideHive Core - Retrying call envelope.

Wraps any remote operation with:
- a per-attempt timeout (the attempt's signal is aborted on expiry)
- bounded exponential backoff: base * multiplier ** attempt
- immediate stop on user cancellation (never retried)
- exactly one OperationEvent per logical call, emitted at the end

The operation receives `(signal, attempt)` and should pass the signal to
whatever it awaits. An operation and all its retries share one trace id.

Usage:
    caller = RetryingCaller(identity, sink)
    result = await caller.call(
        lambda signal, attempt: transport.invoke("generate-bio", body, headers, signal),
        RetryPolicy(operation_name="generate-bio", action="generate"),
    )
    result.data, result.trace_id, result.duration_ms
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

from sidehive.core.abort import AbortController, AbortSignal
from sidehive.core.errors import (
    AttemptTimeoutError,
    ErrorKind,
    OperationCancelledError,
    classify,
    is_retryable,
)
from sidehive.observability.events import EventSink, OperationEvent, truncate_error_message
from sidehive.telemetry.identity import TelemetryIdentity

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[AbortSignal, int], Awaitable[T]]


@dataclass
class RetryPolicy:
    """How one kind of operation is retried and reported."""
    operation_name: str
    action: str = "invoke"
    timeout_seconds: float = 25.0
    max_retries: int = 2
    base_delay_seconds: float = 0.5
    multiplier: float = 3.0
    jitter_ratio: float = 0.0
    provider: str | None = None
    payload_keys: list[str] = field(default_factory=list)
    # Classification tags, e.g. {"ai", "cacheable"}
    tags: frozenset[str] = frozenset()

    def backoff_delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Delay before retry number `attempt + 1` (attempt is 0-based)."""
        delay = self.base_delay_seconds * (self.multiplier ** attempt)
        if self.jitter_ratio:
            delay *= 1 + self.jitter_ratio * (2 * rand() - 1)
        return max(delay, 0.0)


@dataclass
class CallResult(Generic[T]):
    """Successful result plus correlation ids for the event log."""
    data: T
    trace_id: str
    session_id: str
    duration_ms: int
    attempts: int = 1


class RetryingCaller:
    """The unit of resilience for every remote call the client makes."""

    def __init__(
        self,
        identity: TelemetryIdentity,
        events: EventSink,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
        rand: Callable[[], float] = random.random,
    ):
        self.identity = identity
        self.events = events
        self._sleep = sleep
        self._clock = clock
        self._rand = rand

    async def call(
        self,
        fn: Operation,
        policy: RetryPolicy,
        *,
        signal: AbortSignal | None = None,
        headers: dict[str, str] | None = None,
    ) -> CallResult:
        """
        Run `fn` under `policy`.

        `headers` are the telemetry headers for this logical call; when
        omitted a fresh set (and trace id) is generated.
        """
        headers = headers or self.identity.get_telemetry_headers()
        trace_id = headers["X-Trace-Id"]
        session_id = headers["X-Session-Id"]
        started = self._clock()
        attempt = 0

        try:
            while True:
                if signal is not None and signal.aborted:
                    raise OperationCancelledError(signal.reason or "Operation cancelled")
                try:
                    data = await self._attempt(fn, attempt, policy.timeout_seconds, signal)
                    break
                except Exception as e:
                    if signal is not None and signal.aborted and not isinstance(e, OperationCancelledError):
                        raise OperationCancelledError(signal.reason or "Operation cancelled") from e
                    if not is_retryable(e) or attempt >= policy.max_retries:
                        raise
                    delay = policy.backoff_delay(attempt, self._rand)
                    logger.info(
                        f"{policy.operation_name} attempt {attempt + 1} failed "
                        f"({classify(e).value}): {e}; retrying in {delay:.2f}s"
                    )
                    await self._backoff(delay, signal)
                    attempt += 1
        except asyncio.CancelledError:
            self._emit(policy, trace_id, session_id, started, attempt, error=OperationCancelledError("task cancelled"))
            raise
        except Exception as e:
            self._emit(policy, trace_id, session_id, started, attempt, error=e)
            raise

        duration_ms = self._emit(policy, trace_id, session_id, started, attempt)
        return CallResult(
            data=data,
            trace_id=trace_id,
            session_id=session_id,
            duration_ms=duration_ms,
            attempts=attempt + 1,
        )

    async def _attempt(self, fn: Operation, attempt: int, timeout: float, external: AbortSignal | None):
        """One attempt raced against the timeout and the external signal."""
        controller = AbortController()
        detach = external.add_listener(controller.abort) if external is not None else None
        task = asyncio.ensure_future(fn(controller.signal, attempt))
        abort_waiter = asyncio.ensure_future(external.wait()) if external is not None else None
        waiters = {task} if abort_waiter is None else {task, abort_waiter}

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if task in done:
                return task.result()

            if external is not None and external.aborted:
                controller.abort(external.reason or "cancelled")
                await _discard(task)
                raise OperationCancelledError(external.reason or "Operation cancelled")

            controller.abort("timeout")
            await _discard(task)
            raise AttemptTimeoutError(f"Attempt {attempt + 1} timed out after {timeout}s")
        finally:
            if detach is not None:
                detach()
            if abort_waiter is not None and not abort_waiter.done():
                abort_waiter.cancel()
            if not task.done():
                task.cancel()

    async def _backoff(self, delay: float, signal: AbortSignal | None) -> None:
        """Sleep between attempts; an external abort cuts the sleep short."""
        if signal is None:
            await self._sleep(delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(delay))
        abort_waiter = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({sleeper, abort_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for pending in (sleeper, abort_waiter):
                if not pending.done():
                    pending.cancel()
        if signal.aborted:
            raise OperationCancelledError(signal.reason or "Operation cancelled")

    def _emit(
        self,
        policy: RetryPolicy,
        trace_id: str,
        session_id: str,
        started: float,
        attempt: int,
        error: BaseException | None = None,
    ) -> int:
        duration_ms = int((self._clock() - started) * 1000)
        error_code = classify(error).value if error is not None else None
        event = OperationEvent(
            session_id=session_id,
            trace_id=trace_id,
            step=policy.operation_name,
            action=policy.action,
            ok=error is None,
            duration_ms=duration_ms,
            attempts=attempt + 1,
            provider=policy.provider,
            payload_keys=list(policy.payload_keys),
            error_code=error_code,
            error_message=truncate_error_message(str(error)) if error is not None else None,
        )
        try:
            self.events.log(event)
        except Exception as e:
            logger.error(f"Failed to emit event for {policy.operation_name}: {e}")

        if error is None:
            logger.debug(f"{policy.operation_name} ok in {duration_ms}ms ({attempt + 1} attempts)")
        elif error_code == ErrorKind.CANCELLED.value:
            logger.info(f"{policy.operation_name} cancelled after {duration_ms}ms")
        else:
            logger.warning(f"{policy.operation_name} failed after {attempt + 1} attempts: {error}")
        return duration_ms


async def _discard(task: asyncio.Future) -> None:
    """Cancel an abandoned attempt and swallow whatever it ends with."""
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
