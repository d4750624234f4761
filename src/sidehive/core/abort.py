"""
SideHive Core - Cooperative cancellation.

AbortController/AbortSignal flag cancellation intent; they never force-stop
work. AbortRegistry keeps at most one live operation per logical key:
creating a new one aborts the predecessor.

Usage:
    registry = AbortRegistry()
    signal = registry.create("names")
    try:
        result = await envelope.call(fn, policy, signal=signal)
        if signal.aborted:
            return  # superseded - ignore the late result
    finally:
        registry.cleanup("names", signal)
"""

import asyncio
import logging
from typing import Callable

from sidehive.core.errors import OperationCancelledError

logger = logging.getLogger(__name__)

AbortListener = Callable[[str], None]


class AbortSignal:
    """Read side of a cancellation flag."""

    def __init__(self):
        self.aborted = False
        self.reason: str | None = None
        self._listeners: list[AbortListener] = []
        self._event: asyncio.Event | None = None

    def add_listener(self, listener: AbortListener) -> Callable[[], None]:
        """
        Call `listener(reason)` once when the signal aborts.

        Fires immediately if already aborted. Returns a function that
        detaches the listener.
        """
        if self.aborted:
            listener(self.reason or "aborted")
            return lambda: None

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def throw_if_aborted(self) -> None:
        if self.aborted:
            raise OperationCancelledError(self.reason or "Operation aborted")

    async def wait(self) -> None:
        """Suspend until the signal aborts."""
        if self.aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _abort(self, reason: str) -> None:
        if self.aborted:
            return
        self.aborted = True
        self.reason = reason
        if self._event is not None:
            self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception("Abort listener failed")


class AbortController:
    """Write side: owns a signal and can abort it."""

    def __init__(self):
        self.signal = AbortSignal()

    def abort(self, reason: str = "aborted") -> None:
        self.signal._abort(reason)


class AbortRegistry:
    """
    One cancellable in-flight operation per key.

    Constructed once per client runtime and injected where needed.
    """

    def __init__(self):
        self._controllers: dict[str, AbortController] = {}

    def create(self, key: str) -> AbortSignal:
        """Abort any live operation under `key` and register a new one."""
        previous = self._controllers.pop(key, None)
        if previous is not None:
            logger.debug(f"Superseding in-flight operation '{key}'")
            previous.abort(f"superseded:{key}")

        controller = AbortController()
        self._controllers[key] = controller
        return controller.signal

    def cleanup(self, key: str, signal: AbortSignal | None = None) -> None:
        """
        Drop the registration without aborting.

        When `signal` is given, only drop it if it is still the live one,
        so a superseded operation finishing late cannot unregister its
        successor.
        """
        controller = self._controllers.get(key)
        if controller is None:
            return
        if signal is not None and controller.signal is not signal:
            return
        del self._controllers[key]

    def abort(self, key: str, reason: str = "cancelled") -> bool:
        """Abort and drop a single key. Returns True if something was live."""
        controller = self._controllers.pop(key, None)
        if controller is None:
            return False
        controller.abort(reason)
        return True

    def abort_all(self, reason: str = "teardown") -> int:
        """Abort and clear every registered operation."""
        controllers = list(self._controllers.values())
        self._controllers.clear()
        for controller in controllers:
            controller.abort(reason)
        return len(controllers)

    def is_live(self, key: str) -> bool:
        return key in self._controllers

    @property
    def live_keys(self) -> list[str]:
        return list(self._controllers)
