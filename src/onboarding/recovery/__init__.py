"""Session recovery: progress detection, email capture, restore and claim."""

from onboarding.recovery.claim import HubClaimer
from onboarding.recovery.detector import ProgressDetector, ProgressInfo, RecoveryTier
from onboarding.recovery.email_capture import (
    CollisionChoice,
    EmailCapture,
    EmailCollision,
    SessionCandidate,
)
from onboarding.recovery.restore import SessionRestorer

__all__ = [
    "CollisionChoice",
    "EmailCapture",
    "EmailCollision",
    "HubClaimer",
    "ProgressDetector",
    "ProgressInfo",
    "RecoveryTier",
    "SessionCandidate",
    "SessionRestorer",
]
