"""
SideHive Core - Ensure-N-valid-items combinator.

generate -> filter -> top up -> bounded rounds -> substitute a safe default.
Used for name batches and logo batches so neither call site re-derives
the loop.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class EnsureResult(Generic[T]):
    items: list[T]
    rounds: int
    fallbacks_used: int = 0
    rejected: list[tuple[T, str]] = field(default_factory=list)


async def ensure_n_valid(
    generate: Callable[[int, list[T]], Awaitable[list[T]]],
    *,
    count: int,
    check: Callable[[T, list[T]], str | None],
    fallback: Callable[[int, list[T]], T],
    key: Callable[[T], str] = str,
    rank: Callable[[list[T]], list[T]] | None = None,
    max_extra_rounds: int = 2,
) -> EnsureResult[T]:
    """
    Collect `count` valid items.

    Args:
        generate: called with (how many are still needed, items accepted so far)
        check: returns a rejection reason, or None if the item is acceptable
        fallback: builds a placeholder for slot i (given the items so far)
            when rounds run out
        key: identity for de-duplication (compared case-insensitively)
        rank: optional ordering applied to survivors before truncation
        max_extra_rounds: top-up rounds after the first

    The first round's errors propagate. A failing top-up round stops
    topping up and falls through to placeholders.
    """
    accepted: list[T] = []
    rejected: list[tuple[T, str]] = []
    seen: set[str] = set()
    rounds = 0

    while len(accepted) < count and rounds <= max_extra_rounds:
        needed = count - len(accepted)
        try:
            batch = await generate(needed, list(accepted))
        except Exception as e:
            if rounds == 0:
                raise
            logger.warning(f"Top-up round {rounds} failed, using placeholders: {e}")
            break
        rounds += 1

        for item in batch:
            item_key = key(item).strip().lower()
            if item_key in seen:
                rejected.append((item, "duplicate"))
                continue
            reason = check(item, accepted)
            if reason:
                rejected.append((item, reason))
                continue
            seen.add(item_key)
            accepted.append(item)

        if len(accepted) < count:
            logger.info(f"Round {rounds}: {len(accepted)}/{count} valid items")

    if rank is not None:
        accepted = rank(accepted)
    items = accepted[:count]

    fallbacks_used = 0
    while len(items) < count:
        items.append(fallback(len(items), list(items)))
        fallbacks_used += 1
    if fallbacks_used:
        logger.warning(f"Substituted {fallbacks_used} placeholder(s) after {rounds} rounds")

    return EnsureResult(items=items, rounds=rounds, fallbacks_used=fallbacks_used, rejected=rejected)
