"""
Onboarding - Restoring a stored session.
"""

import logging

from sidehive.telemetry.identity import TelemetryIdentity
from onboarding.client import FunctionsClient
from onboarding.flow import FlowController

logger = logging.getLogger(__name__)


def payload_from_state(data: dict) -> dict | None:
    """
    The restorable payload from a get-onboarding-state response.

    Prefers the full session snapshot; falls back to the state row.
    """
    payload = data.get("payload")
    if payload:
        return payload
    state = data.get("state")
    if state:
        return {
            "step": state.get("step"),
            "context": state.get("context") or {},
            "business_draft_id": state.get("business_draft_id"),
        }
    return None


class SessionRestorer:
    def __init__(self, client: FunctionsClient, identity: TelemetryIdentity, flow: FlowController):
        self.client = client
        self.identity = identity
        self.flow = flow

    async def restore(self, session_id: str) -> bool:
        """
        Make `session_id` the active session and hydrate the flow from it.

        Returns False (and changes nothing) if nothing is stored for it.
        """
        data = await self.client.get_state(session_id)
        payload = payload_from_state(data)
        if not payload:
            logger.info(f"Nothing stored for session {session_id}; not restoring")
            return False

        self.identity.set_session_id(session_id)
        self.flow.hydrate(payload)
        logger.info(f"Restored session {session_id} at step {self.flow.step.value}")
        return True
