"""
Onboarding - Bio composer.

At most three generation attempts. The third result is locked in and the
user is told they can refine it later from the hub.
"""

import logging

from sidehive.core.errors import OperationCancelledError
from onboarding.client import FunctionsClient

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

REFINE_LATER_NOTICE = "That's your bio for now. You can refine it any time from your hub."


class BioComposer:
    def __init__(self, client: FunctionsClient, brief: dict, business_name: str):
        self.client = client
        self.brief = dict(brief)
        self.business_name = business_name
        self.attempts = 0
        self.bio: str | None = None
        self.locked = False
        self.notice: str | None = None

    @property
    def can_generate(self) -> bool:
        return not self.locked and self.attempts < MAX_ATTEMPTS

    async def generate(self) -> str | None:
        """
        Generate (or regenerate) the bio.

        Once locked this returns the current bio without issuing a request.
        A cancelled request does not use up an attempt.
        """
        if not self.can_generate:
            logger.info(f"Bio locked after {self.attempts} attempts; not regenerating")
            return self.bio

        attempt = self.attempts + 1
        try:
            data = await self.client.generate_bio(self.brief, self.business_name, attempt=attempt)
        except OperationCancelledError:
            raise
        except Exception:
            self._count(attempt)
            raise

        self.bio = data.get("bio") or self.bio
        self._count(attempt)
        return self.bio

    def _count(self, attempt: int) -> None:
        self.attempts = attempt
        if self.attempts >= MAX_ATTEMPTS:
            self.locked = True
            self.notice = REFINE_LATER_NOTICE
