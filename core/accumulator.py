"""
LeakProbe - Identifier Accumulator

Monotonic set of identifiers collected during one detection session.
Merges only ever add; the "changed" flag lets observers skip no-op
updates.
"""

import logging
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


def merge_identifiers(
    current: FrozenSet[str],
    incoming: Optional[Iterable[str]],
) -> Tuple[FrozenSet[str], bool]:
    """
    Union ``incoming`` into ``current``.

    Args:
        current: Identifiers collected so far
        incoming: Newly found identifiers (may be empty or None)

    Returns:
        Tuple of (next identifiers, changed). When nothing new arrived
        ``current`` itself is returned with changed=False.
    """
    if not incoming:
        return current, False

    updated = current.union(incoming)
    if len(updated) == len(current):
        # Same size after a union means same membership
        return current, False
    return frozenset(updated), True


class IdentifierAccumulator:
    """Grow-only identifier set for a single session"""

    def __init__(self):
        self._identifiers: FrozenSet[str] = frozenset()

    @property
    def identifiers(self) -> FrozenSet[str]:
        return self._identifiers

    def merge(self, incoming: Optional[Iterable[str]]) -> bool:
        """Merge identifiers in; returns True if the set grew"""
        self._identifiers, changed = merge_identifiers(self._identifiers, incoming)
        if changed:
            logger.debug(f"Identifier set grew to {len(self._identifiers)}")
        return changed

    def __len__(self) -> int:
        return len(self._identifiers)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._identifiers))

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._identifiers
