"""
Onboarding - Email capture and collision handling.

Binding an email makes a session resumable from anywhere. If the email is
already bound to a different session, the user chooses which one to keep;
the choice is applied as one action.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sidehive.payload import idea_summary
from sidehive.telemetry.identity import TelemetryIdentity
from onboarding.client import FunctionsClient
from onboarding.flow import FlowController
from onboarding.recovery.restore import SessionRestorer

logger = logging.getLogger(__name__)


class CollisionChoice(str, Enum):
    KEEP_NEW = "keep_new"
    RESTORE_PREVIOUS = "restore_previous"


@dataclass
class SessionCandidate:
    session_id: str
    idea_summary: str | None = None
    step: str | None = None
    last_seen_at: str | None = None


@dataclass
class EmailCollision:
    """The same email points at two different sessions."""
    email: str
    current: SessionCandidate
    previous: SessionCandidate


class EmailCapture:
    def __init__(
        self,
        client: FunctionsClient,
        identity: TelemetryIdentity,
        flow: FlowController,
        restorer: SessionRestorer,
    ):
        self.client = client
        self.identity = identity
        self.flow = flow
        self.restorer = restorer

    async def capture(self, email: str) -> EmailCollision | None:
        """
        Bind `email` to the current session.

        Returns an EmailCollision instead of binding when the email already
        belongs to another session.
        """
        email = email.strip().lower()
        current_id = self.identity.get_session_id()

        existing = await self.client.lookup_email(email)
        if existing.get("found") and existing.get("session_id") != current_id:
            logger.info(f"Email already bound to session {existing['session_id']}; asking user")
            return EmailCollision(
                email=email,
                current=SessionCandidate(
                    session_id=current_id,
                    idea_summary=idea_summary({"context": self.flow.context()}),
                    step=self.flow.step.value,
                ),
                previous=SessionCandidate(
                    session_id=existing["session_id"],
                    idea_summary=existing.get("idea_summary"),
                    step=existing.get("step"),
                    last_seen_at=existing.get("last_seen_at"),
                ),
            )

        await self._bind(email, current_id)
        return None

    async def resolve(self, collision: EmailCollision, choice: CollisionChoice) -> str:
        """Apply the user's choice. Returns the session id now active."""
        if choice == CollisionChoice.RESTORE_PREVIOUS:
            restored = await self.restorer.restore(collision.previous.session_id)
            if restored:
                await self._bind(collision.email, collision.previous.session_id)
                return collision.previous.session_id
            logger.warning(
                f"Previous session {collision.previous.session_id} has no stored state; keeping current"
            )

        await self._bind(collision.email, collision.current.session_id)
        return collision.current.session_id

    async def _bind(self, email: str, session_id: str) -> None:
        await self.client.bind_email(email, session_id)
        if self.flow.form.email != email:
            self.flow.advance({"email": email}, to_step=self.flow.step)
