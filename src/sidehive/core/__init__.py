"""
SideHive Core - cancellation, version counters, feature flags,
the retrying call envelope and the ensure-N combinator.
"""

from sidehive.core.abort import AbortController, AbortRegistry, AbortSignal
from sidehive.core.envelope import CallResult, RetryingCaller, RetryPolicy
from sidehive.core.feature_flags import FeatureFlagCache
from sidehive.core.versions import VersionCounter

__all__ = [
    "AbortController",
    "AbortRegistry",
    "AbortSignal",
    "CallResult",
    "RetryingCaller",
    "RetryPolicy",
    "FeatureFlagCache",
    "VersionCounter",
]
