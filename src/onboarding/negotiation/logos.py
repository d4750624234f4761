"""
Onboarding - Logo negotiation.

Four logos per style. A rejected logo is regenerated in place with a new
variation number; the slot's version counter is bumped so any cached
rendering of the old image is bypassed.
"""

import logging

from sidehive.core.errors import OperationCancelledError
from sidehive.core.versions import VersionCounter
from onboarding.client import LOGOS_KEY, FunctionsClient, logo_slot_key
from onboarding.negotiation.candidates import Candidate, CandidateSet

logger = logging.getLogger(__name__)

BATCH_SIZE = 4


def version_key(index: int) -> str:
    return f"logo-{index}"


class LogoNegotiator:
    def __init__(
        self,
        client: FunctionsClient,
        business_name: str,
        style: str,
        *,
        versions: VersionCounter | None = None,
        batch_size: int = BATCH_SIZE,
    ):
        self.client = client
        self.business_name = business_name
        self.style = style
        self.versions = versions or VersionCounter()
        self.batch_size = batch_size
        self.state = CandidateSet()
        self._next_variation = 1
        # Bumped by every batch; slot results from an older batch are dropped
        self.generation = 0

    def _take_variations(self, count: int) -> int:
        first = self._next_variation
        self._next_variation += count
        return first

    async def generate_batch(self, style: str | None = None) -> list[Candidate]:
        """
        New batch (optionally in a new style). Likes are discarded.

        Single-slot regenerations still in flight are aborted.
        """
        if style is not None:
            self.style = style
        for index in range(max(len(self.state.slots), self.batch_size)):
            self.client.registry.abort(logo_slot_key(index), "superseded:batch")
        logos = await self.client.generate_logos(
            self.business_name,
            self.style,
            count=self.batch_size,
            first_variation=self._take_variations(self.batch_size),
            abort_key=LOGOS_KEY,
        )
        self.generation += 1
        self.state.replace_all([(url, {"style": self.style}) for url in logos])
        for index in range(len(self.state.slots)):
            self.versions.bump(version_key(index))
        return self.state.slots

    def toggle_like(self, index: int) -> bool:
        return self.state.toggle_like(index)

    async def reject(self, index: int) -> Candidate | None:
        """
        Regenerate slot `index` with the next variation.

        Returns None if the slot was busy or a new batch replaced the
        slots while the request was in flight.
        """
        if index in self.state.busy:
            return None

        generation = self.generation
        self.state.reject(index, ban_words=False)
        self.state.busy.add(index)
        try:
            logos = await self.client.generate_logos(
                self.business_name,
                self.style,
                count=1,
                first_variation=self._take_variations(1),
                abort_key=logo_slot_key(index),
            )
            if generation != self.generation:
                logger.info(f"Dropping late result for logo slot {index} from an earlier batch")
                return None
            candidate = self.state.fill(index, logos[0], {"style": self.style})
            self.versions.bump(version_key(index))
            return candidate
        except OperationCancelledError:
            self._settle(index, generation)
            raise
        except Exception as e:
            logger.warning(f"Regenerating logo slot {index} failed: {e}")
            self._settle(index, generation)
            raise
        finally:
            if generation == self.generation:
                self.state.busy.discard(index)

    def _settle(self, index: int, generation: int) -> None:
        if generation == self.generation:
            self.state.settle(index)

    def display_url(self, index: int) -> str:
        """
        The slot's URL with its version appended for cache busting.

        Generated logos arrive as data URLs, which carry their content and
        are returned unchanged; a regenerated slot is told apart by its
        candidate's `version` (and the `logo-<i>` counter) instead.
        Hosted http(s) URLs get `?v=<version>`.
        """
        return self.versions.append(self.state.slots[index].value, version_key(index))

    def slot_key(self, index: int) -> str:
        """Stable render key for slot `index`; changes whenever the slot is regenerated."""
        return f"{version_key(index)}-v{self.versions.get(version_key(index))}"

    def confirm(self, index: int) -> Candidate:
        chosen = self.state.slots[index]
        self.state.confirmed = chosen
        return chosen
