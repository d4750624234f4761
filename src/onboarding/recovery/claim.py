"""
Onboarding - Claim on first hub visit.

Before sign-in the client stores a `pending_claim_session` marker. On the
first authenticated visit to the hub the anonymous session's records are
claimed for the user, unless they already have a business. The marker is
cleared whatever happens, so a failing claim is never retried on every
visit, and a failure never blocks the hub.
"""

import logging
from typing import Awaitable, Callable

from sidehive.db.client import user_has_business
from sidehive.telemetry.location import Location
from sidehive.telemetry.storage import PENDING_CLAIM_KEY, DurableStorage
from onboarding.client import FunctionsClient

logger = logging.getLogger(__name__)

BusinessCheck = Callable[[str, str], Awaitable[bool]]


class HubClaimer:
    def __init__(
        self,
        client: FunctionsClient,
        storage: DurableStorage,
        location: Location,
        has_business: BusinessCheck = user_has_business,
    ):
        self.client = client
        self.storage = storage
        self.location = location
        self.has_business = has_business

    def mark_pending(self, session_id: str) -> None:
        """Remember which session to claim once the user signs in."""
        self.storage.set(PENDING_CLAIM_KEY, session_id)

    def pending_session(self) -> str | None:
        return self.location.get_param(PENDING_CLAIM_KEY) or self.storage.get(PENDING_CLAIM_KEY)

    async def on_hub_visit(self, user_id: str, access_token: str) -> dict | None:
        """Claim the pending session, if any. Never raises."""
        session_id = self.pending_session()
        if not session_id:
            return None

        try:
            if await self.has_business(user_id, access_token):
                logger.info(f"User {user_id} already has a business; skipping claim of {session_id}")
                return None
            result = await self.client.claim(session_id, access_token)
            logger.info(f"Claimed session {session_id}: {result.get('claimed')}")
            return result
        except Exception as e:
            logger.error(f"Claim of session {session_id} failed: {e}")
            return None
        finally:
            self.storage.remove(PENDING_CLAIM_KEY)
            self.location.remove_param(PENDING_CLAIM_KEY)
