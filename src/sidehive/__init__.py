"""
SideHive - onboarding runtime for the SideHive business wizard.

Packages:
- sidehive: client-side reliability layer (telemetry identity, abort registry,
  version counters, feature flags, retrying call envelope)
- sidehive_functions: server-side functions (idempotency, rate limits, generation)
- onboarding: the wizard flow, name/logo negotiation and session recovery
"""

__version__ = "1.0.0"
