"""
Onboarding - Progress detection.

Tiers, strongest first:
- email: the session is bound to an email (resumable from any device),
  either the one the caller knows or the server-side binding for the id
- session: progress exists locally or on the server for this session id
- none: nothing to resume

Detection is monotonic per session id: once a session has been seen at a
tier, later detections never report a weaker one.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sidehive.telemetry.storage import FORM_STATE_KEY, STEP_STATE_KEY, DurableStorage
from sidehive.payload import form_from_payload, idea_summary
from onboarding.client import FunctionsClient
from onboarding.state import OnboardingFormState

logger = logging.getLogger(__name__)


class RecoveryTier(str, Enum):
    NONE = "none"
    SESSION = "session"
    EMAIL = "email"


_RANK = {RecoveryTier.NONE: 0, RecoveryTier.SESSION: 1, RecoveryTier.EMAIL: 2}


@dataclass
class ProgressInfo:
    tier: RecoveryTier
    session_id: str
    last_step: str | None = None
    email: str | None = None
    idea_summary: str | None = None
    has_products: bool = False


class ProgressDetector:
    def __init__(self, client: FunctionsClient, storage: DurableStorage):
        self.client = client
        self.storage = storage
        self._best: dict[str, ProgressInfo] = {}

    async def detect(self, session_id: str, email: str | None = None) -> ProgressInfo:
        """Strongest evidence of progress for `session_id`."""
        info = await self._gather(session_id, email)

        best = self._best.get(session_id)
        if best is not None and _RANK[best.tier] > _RANK[info.tier]:
            logger.debug(f"Keeping tier {best.tier.value} for {session_id} over {info.tier.value}")
            return best
        self._best[session_id] = info
        return info

    async def _gather(self, session_id: str, email: str | None) -> ProgressInfo:
        local = self._local_progress(session_id)
        email = email or (local.email if local else None)

        if email:
            try:
                binding = await self.client.lookup_email(email)
            except Exception as e:
                logger.warning(f"Email lookup failed during detection: {e}")
                binding = {}
            if binding.get("found") and binding.get("session_id") == session_id:
                return self._email_tier(
                    session_id, local,
                    email=binding.get("email", email),
                    step=binding.get("step"),
                    summary=binding.get("idea_summary"),
                )

        # The session id may be bound to an email this device never saw
        try:
            data = await self.client.get_state(session_id)
        except Exception as e:
            logger.warning(f"State lookup failed during detection: {e}")
            data = {}
        payload = data.get("payload") or {}
        bound = data.get("email_binding")
        if bound and bound.get("email"):
            return self._email_tier(
                session_id, local,
                email=bound["email"],
                step=payload.get("step"),
                summary=idea_summary(payload) if payload else None,
                has_products=bool(data.get("products")),
            )

        if local is not None:
            return local

        if payload:
            form = form_from_payload(payload)
            return ProgressInfo(
                tier=RecoveryTier.SESSION,
                session_id=session_id,
                last_step=payload.get("step"),
                email=payload.get("email"),
                idea_summary=idea_summary(payload),
                has_products=bool(form.get("products") or data.get("products")),
            )

        return ProgressInfo(tier=RecoveryTier.NONE, session_id=session_id)

    @staticmethod
    def _email_tier(
        session_id: str,
        local: ProgressInfo | None,
        *,
        email: str,
        step: str | None,
        summary: str | None,
        has_products: bool = False,
    ) -> ProgressInfo:
        return ProgressInfo(
            tier=RecoveryTier.EMAIL,
            session_id=session_id,
            last_step=step or (local.last_step if local else None),
            email=email,
            idea_summary=summary or (local.idea_summary if local else None),
            has_products=has_products or (local.has_products if local else False),
        )

    def _local_progress(self, session_id: str) -> ProgressInfo | None:
        form_data = self.storage.get_json(FORM_STATE_KEY)
        if not form_data:
            return None
        form = OnboardingFormState.from_dict(form_data)
        if form.is_empty:
            return None
        return ProgressInfo(
            tier=RecoveryTier.SESSION,
            session_id=session_id,
            last_step=self.storage.get(STEP_STATE_KEY),
            email=form.email or None,
            idea_summary=idea_summary({"context": {"form": {"idea": form.idea}}}),
            has_products=bool(form.products),
        )
