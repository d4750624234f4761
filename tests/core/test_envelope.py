"""
Tests for the retrying call envelope.

The sleep function is injected so backoff is recorded, not waited.
"""

import asyncio

import pytest

from sidehive.core.abort import AbortController
from sidehive.core.envelope import RetryingCaller, RetryPolicy
from sidehive.core.errors import (
    AttemptTimeoutError,
    OperationCancelledError,
    RateLimitedError,
    TransientError,
    ValidationFailedError,
)


class Recorder:
    """Fake sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _caller(identity, events, sleep=None):
    return RetryingCaller(identity, events, sleep=sleep or Recorder())


def _flaky(failures, result="ok", error_cls=TransientError):
    calls = []

    async def fn(signal, attempt):
        calls.append(attempt)
        if len(calls) <= failures:
            raise error_cls("boom")
        return result

    return fn, calls


class TestRetryPolicy:
    """Backoff math."""

    def test_exponential_delays(self):
        policy = RetryPolicy(operation_name="op", base_delay_seconds=0.5, multiplier=3.0)
        assert policy.backoff_delay(0) == pytest.approx(0.5)
        assert policy.backoff_delay(1) == pytest.approx(1.5)
        assert policy.backoff_delay(2) == pytest.approx(4.5)

    def test_jitter_bounds(self):
        policy = RetryPolicy(operation_name="op", base_delay_seconds=1.0, multiplier=2.0, jitter_ratio=0.2)
        assert policy.backoff_delay(0, rand=lambda: 0.0) == pytest.approx(0.8)
        assert policy.backoff_delay(0, rand=lambda: 1.0) == pytest.approx(1.2)


class TestRetryingCaller:
    """Retry, timeout, cancellation and event emission."""

    def test_success_emits_one_ok_event(self, identity, events):
        fn, calls = _flaky(0)
        result = asyncio.run(_caller(identity, events).call(fn, RetryPolicy(operation_name="generate-bio")))

        assert result.data == "ok"
        assert result.attempts == 1
        assert calls == [0]
        assert len(events.events) == 1
        event = events.last
        assert event.ok is True
        assert event.step == "generate-bio"
        assert event.trace_id == result.trace_id
        assert event.session_id == identity.get_session_id()

    def test_transient_failures_are_retried_with_backoff(self, identity, events):
        sleep = Recorder()
        fn, calls = _flaky(2)
        policy = RetryPolicy(operation_name="op", max_retries=2, base_delay_seconds=0.5, multiplier=3.0)

        result = asyncio.run(_caller(identity, events, sleep).call(fn, policy))

        assert result.data == "ok"
        assert result.attempts == 3
        assert calls == [0, 1, 2]
        assert sleep.delays == [pytest.approx(0.5), pytest.approx(1.5)]
        assert len(events.events) == 1
        assert events.last.ok and events.last.attempts == 3

    def test_retries_exhausted_emits_single_failure(self, identity, events):
        fn, calls = _flaky(10)
        policy = RetryPolicy(operation_name="op", max_retries=2)

        with pytest.raises(TransientError):
            asyncio.run(_caller(identity, events).call(fn, policy))

        assert len(calls) == 3
        assert len(events.events) == 1
        assert events.last.ok is False
        assert events.last.error_code == "transient"
        assert events.last.attempts == 3

    @pytest.mark.parametrize("error_cls", [ValidationFailedError, RateLimitedError])
    def test_non_retryable_errors_fail_fast(self, identity, events, error_cls):
        fn, calls = _flaky(5, error_cls=error_cls)
        with pytest.raises(error_cls):
            asyncio.run(_caller(identity, events).call(fn, RetryPolicy(operation_name="op")))
        assert calls == [0]
        assert len(events.events) == 1

    def test_attempts_share_trace_id(self, identity, events):
        fn, _ = _flaky(1)
        headers = identity.get_telemetry_headers()
        result = asyncio.run(
            _caller(identity, events).call(fn, RetryPolicy(operation_name="op"), headers=headers)
        )
        assert result.trace_id == headers["X-Trace-Id"]
        assert events.last.trace_id == headers["X-Trace-Id"]

    def test_attempt_timeout_aborts_and_retries(self, identity, events):
        seen_signals = []

        async def fn(signal, attempt):
            seen_signals.append(signal)
            if attempt == 0:
                await asyncio.sleep(5)
            return "late ok"

        policy = RetryPolicy(operation_name="op", timeout_seconds=0.05, max_retries=1)
        result = asyncio.run(_caller(identity, events).call(fn, policy))

        assert result.data == "late ok"
        assert result.attempts == 2
        assert seen_signals[0].aborted
        assert seen_signals[0].reason == "timeout"

    def test_timeout_exhausted_reports_timeout(self, identity, events):
        async def fn(signal, attempt):
            await asyncio.sleep(5)

        policy = RetryPolicy(operation_name="op", timeout_seconds=0.02, max_retries=0)
        with pytest.raises(AttemptTimeoutError):
            asyncio.run(_caller(identity, events).call(fn, policy))
        assert events.last.error_code == "timeout"

    def test_pre_aborted_signal_never_calls(self, identity, events):
        fn, calls = _flaky(0)
        controller = AbortController()
        controller.abort("user")

        with pytest.raises(OperationCancelledError):
            asyncio.run(_caller(identity, events).call(fn, RetryPolicy(operation_name="op"), signal=controller.signal))

        assert calls == []
        assert events.last.error_code == "cancelled"

    def test_abort_mid_attempt_is_not_retried(self, identity, events):
        calls = []

        async def scenario():
            controller = AbortController()

            async def fn(signal, attempt):
                calls.append(attempt)
                await asyncio.sleep(5)

            caller = _caller(identity, events)
            task = asyncio.ensure_future(
                caller.call(fn, RetryPolicy(operation_name="op", timeout_seconds=10), signal=controller.signal)
            )
            await asyncio.sleep(0.01)
            controller.abort("superseded:names")
            with pytest.raises(OperationCancelledError):
                await task

        asyncio.run(scenario())
        assert calls == [0]
        assert len(events.events) == 1
        assert events.last.error_code == "cancelled"
        assert events.last.ok is False

    def test_abort_during_backoff_stops(self, identity, events):
        controller = AbortController()

        async def slow_sleep(delay):
            controller.abort("user")
            await asyncio.sleep(5)

        fn, calls = _flaky(10)
        caller = RetryingCaller(identity, events, sleep=slow_sleep)

        with pytest.raises(OperationCancelledError):
            asyncio.run(caller.call(fn, RetryPolicy(operation_name="op"), signal=controller.signal))
        assert calls == [0]

    def test_failing_sink_does_not_fail_call(self, identity):
        class BrokenSink:
            def log(self, event):
                raise RuntimeError("sink down")

        fn, _ = _flaky(0)
        result = asyncio.run(_caller(identity, BrokenSink()).call(fn, RetryPolicy(operation_name="op")))
        assert result.data == "ok"

    def test_error_message_is_truncated(self, identity, events):
        async def fn(signal, attempt):
            raise ValidationFailedError("x" * 2000)

        with pytest.raises(ValidationFailedError):
            asyncio.run(_caller(identity, events).call(fn, RetryPolicy(operation_name="op")))
        assert len(events.last.error_message) == 500
