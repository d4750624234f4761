"""
Onboarding - Candidate slots for name and logo negotiation.

A batch fills N slots. Each slot can be liked (local only), rejected
(regenerated in place) or confirmed. Rejections accumulate: the rejected
value and its words are never offered again in this session.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class Disposition(str, Enum):
    NEUTRAL = "neutral"
    LIKED = "liked"
    REGENERATING = "regenerating"


@dataclass
class Candidate:
    value: str
    meta: dict = field(default_factory=dict)
    disposition: Disposition = Disposition.NEUTRAL
    version: int = 0

    @property
    def liked(self) -> bool:
        return self.disposition == Disposition.LIKED


def _merge_unique(existing: list[str], additions: list[str]) -> list[str]:
    """Set union that keeps first-seen order (case-insensitive)."""
    merged = list(existing)
    seen = {item.lower() for item in existing}
    for item in additions:
        if item and item.lower() not in seen:
            seen.add(item.lower())
            merged.append(item)
    return merged


@dataclass
class CandidateSet:
    """The visible slots plus everything the user has turned down."""
    slots: list[Candidate] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    banned_words: list[str] = field(default_factory=list)
    busy: set[int] = field(default_factory=set)
    confirmed: Candidate | None = None
    notices: list[str] = field(default_factory=list)

    def replace_all(self, values: list[tuple[str, dict]]) -> None:
        """New batch; likes are discarded."""
        self.slots = [Candidate(value=value, meta=meta) for value, meta in values]
        self.busy.clear()

    def visible(self, exclude_index: int | None = None) -> list[str]:
        return [c.value for i, c in enumerate(self.slots) if i != exclude_index]

    def toggle_like(self, index: int) -> bool:
        candidate = self.slots[index]
        candidate.disposition = Disposition.NEUTRAL if candidate.liked else Disposition.LIKED
        return candidate.liked

    def reject(self, index: int, *, ban_words: bool = True) -> Candidate:
        """Record a rejection; the slot keeps its value until replaced."""
        candidate = self.slots[index]
        self.rejected = _merge_unique(self.rejected, [candidate.value])
        if ban_words:
            self.banned_words = _merge_unique(self.banned_words, re.split(r"\s+", candidate.value.strip()))
        candidate.disposition = Disposition.REGENERATING
        return candidate

    def is_collision(self, value: str, index: int) -> bool:
        """True if `value` is rejected or already visible in another slot."""
        key = value.strip().lower()
        if key in {r.lower() for r in self.rejected}:
            return True
        return key in {v.strip().lower() for v in self.visible(exclude_index=index)}

    def fill(self, index: int, value: str, meta: dict | None = None) -> Candidate:
        previous = self.slots[index]
        candidate = Candidate(value=value, meta=meta or {}, version=previous.version + 1)
        self.slots[index] = candidate
        return candidate

    def settle(self, index: int) -> None:
        """Slot regeneration gave up: keep the old value, not liked."""
        self.slots[index].disposition = Disposition.NEUTRAL

    def notify(self, message: str) -> None:
        self.notices.append(message)
