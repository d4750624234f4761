"""
SideHive Core - Feature flag cache.

Read-through cache over the `feature_flags` table with a fixed TTL.
In development, local overrides stored under `feature_flags_override`
take precedence over server values.
"""

import logging
import time
from typing import Awaitable, Callable

from sidehive.telemetry.storage import FLAG_OVERRIDES_KEY, DurableStorage

logger = logging.getLogger(__name__)

FlagFetcher = Callable[[], Awaitable[dict[str, bool]]]


class FeatureFlagCache:
    """
    Time-windowed flag cache.

    Constructed once per client runtime and injected where needed.
    """

    def __init__(
        self,
        fetcher: FlagFetcher,
        storage: DurableStorage,
        *,
        ttl_seconds: float = 60.0,
        allow_overrides: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self._storage = storage
        self._ttl = ttl_seconds
        self._allow_overrides = allow_overrides
        self._clock = clock
        self._cache: dict[str, bool] | None = None
        self._fetched_at: float = 0.0

    def _is_fresh(self) -> bool:
        return self._cache is not None and (self._clock() - self._fetched_at) < self._ttl

    async def get_all(self) -> dict[str, bool]:
        """All known flags, overrides applied."""
        if not self._is_fresh():
            try:
                self._cache = dict(await self._fetcher())
                self._fetched_at = self._clock()
            except Exception as e:
                logger.error(f"Failed to fetch feature flags: {e}")
                if self._cache is None:
                    self._cache = {}
                    self._fetched_at = self._clock()

        flags = dict(self._cache or {})
        if self._allow_overrides:
            flags.update(self.get_local_overrides())
        return flags

    async def get(self, key: str) -> bool:
        """A single flag; unknown flags are off."""
        flags = await self.get_all()
        return bool(flags.get(key, False))

    async def enabled_keys(self) -> list[str]:
        flags = await self.get_all()
        return sorted(key for key, enabled in flags.items() if enabled)

    async def header_value(self) -> str:
        """Value for the X-Feature-Flags header."""
        return ",".join(await self.enabled_keys())

    def get_local_overrides(self) -> dict[str, bool]:
        overrides = self._storage.get_json(FLAG_OVERRIDES_KEY, {})
        if not isinstance(overrides, dict):
            return {}
        return {str(k): bool(v) for k, v in overrides.items()}

    def set_local_override(self, key: str, enabled: bool) -> None:
        if not self._allow_overrides:
            logger.warning(f"Ignoring flag override '{key}' outside development")
            return
        overrides = self.get_local_overrides()
        overrides[key] = enabled
        self._storage.set_json(FLAG_OVERRIDES_KEY, overrides)
        self.invalidate()

    def clear_local_override(self, key: str | None = None) -> None:
        if key is None:
            self._storage.remove(FLAG_OVERRIDES_KEY)
        else:
            overrides = self.get_local_overrides()
            overrides.pop(key, None)
            self._storage.set_json(FLAG_OVERRIDES_KEY, overrides)
        self.invalidate()

    def invalidate(self) -> None:
        self._cache = None
        self._fetched_at = 0.0
