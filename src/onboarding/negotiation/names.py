"""
Onboarding - Name negotiation.

Generate six names, let the user like or reject them one at a time, and
regenerate rejected slots in place without ever repeating a rejected name
or a name that is visible in another slot.
"""

import logging

from sidehive.core.errors import DuplicateCandidateError, OperationCancelledError
from onboarding.client import NAMES_KEY, FunctionsClient, name_slot_key
from onboarding.negotiation.candidates import Candidate, CandidateSet

logger = logging.getLogger(__name__)

BATCH_SIZE = 6
# Requests per rejected slot, the first one included
MAX_COLLISION_ATTEMPTS = 3

COLLISION_NOTICE = "We couldn't find a fresh name for that slot. Try again in a moment."


class NameNegotiator:
    """
    Name negotiation over one brief.

    `brief` is the shared request body (idea, audiences, vibes, naming
    mode, about you); banned words and rejected names come from the
    negotiation state and are merged into every request.
    """

    def __init__(self, client: FunctionsClient, brief: dict, *, batch_size: int = BATCH_SIZE):
        self.client = client
        self.brief = dict(brief)
        self.batch_size = batch_size
        self.state = CandidateSet(
            rejected=list(brief.get("rejected_names") or []),
            banned_words=list(brief.get("banned_words") or []),
        )
        # Bumped by every batch; slot results from an older batch are dropped
        self.generation = 0

    def request_body(self) -> dict:
        return {
            **self.brief,
            "banned_words": list(self.state.banned_words),
            "rejected_names": list(self.state.rejected),
            "count": self.batch_size,
        }

    @staticmethod
    def _as_slot(option: dict) -> tuple[str, dict]:
        meta = {k: v for k, v in option.items() if k != "name"}
        return option["name"], meta

    async def generate_batch(self) -> list[Candidate]:
        """
        Fill every slot with a fresh batch. Likes are discarded.

        Single-slot regenerations still in flight are aborted.
        """
        for index in range(max(len(self.state.slots), self.batch_size)):
            self.client.registry.abort(name_slot_key(index), "superseded:batch")
        data = await self.client.generate_names(self.request_body(), mode="batch", abort_key=NAMES_KEY)
        self.generation += 1
        self.state.replace_all([self._as_slot(option) for option in data.get("name_options", [])])
        return self.state.slots

    async def regenerate_all(self) -> list[Candidate]:
        return await self.generate_batch()

    def toggle_like(self, index: int) -> bool:
        """Local only; no request."""
        return self.state.toggle_like(index)

    async def reject(self, index: int) -> Candidate | None:
        """
        Reject slot `index` and regenerate it in place.

        Returns the new candidate, or None if the slot was busy, no fresh
        name could be found (the slot then keeps its old value) or a new
        batch replaced the slots while the request was in flight.
        """
        if index in self.state.busy:
            logger.debug(f"Slot {index} already regenerating")
            return None

        generation = self.generation
        self.state.reject(index)
        self.state.busy.add(index)
        try:
            for attempt in range(MAX_COLLISION_ATTEMPTS):
                try:
                    return await self._regenerate_slot(index, generation)
                except DuplicateCandidateError as e:
                    logger.info(f"Slot {index} collision on attempt {attempt + 1}: {e.name}")
            self._settle(index, generation)
            self.state.notify(COLLISION_NOTICE)
            return None
        except OperationCancelledError:
            self._settle(index, generation)
            raise
        except Exception as e:
            logger.warning(f"Regenerating name slot {index} failed: {e}")
            self._settle(index, generation)
            raise
        finally:
            if generation == self.generation:
                self.state.busy.discard(index)

    def _settle(self, index: int, generation: int) -> None:
        if generation == self.generation:
            self.state.settle(index)

    async def _regenerate_slot(self, index: int, generation: int) -> Candidate | None:
        data = await self.client.generate_names(
            self.request_body(),
            mode="single",
            exclude_names=self.state.visible(exclude_index=index),
            abort_key=name_slot_key(index),
        )
        if generation != self.generation:
            logger.info(f"Dropping late result for name slot {index} from an earlier batch")
            return None
        name, meta = self._as_slot(data["name_option"])
        if self.state.is_collision(name, index):
            raise DuplicateCandidateError(name)
        return self.state.fill(index, name, meta)

    def confirm(self, index: int) -> Candidate:
        """Terminal: the chosen name."""
        chosen = self.state.slots[index]
        self.state.confirmed = chosen
        logger.info(f"Confirmed name '{chosen.value}'")
        return chosen
