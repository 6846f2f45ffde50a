"""The bowl: shuffled pool of name-entry ids awaiting resolution this round."""
from __future__ import annotations

import random
from typing import Iterable, List, Optional


class Bowl:
    """A shuffled multiset of name-entry ids, drawn from the end like a stack.

    Shuffling uses ``random.shuffle`` (Fisher-Yates) on a ``SystemRandom``
    source unless a seeded ``random.Random`` is supplied.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()
        self._ids: List[str] = []

    def refill(self, entry_ids: Iterable[str]) -> None:
        """Replace the contents with a fresh permutation of *entry_ids*."""
        self._ids = list(entry_ids)
        self._rng.shuffle(self._ids)

    def draw(self) -> Optional[str]:
        """Remove and return one id, or ``None`` when the bowl is empty."""
        if not self._ids:
            return None
        return self._ids.pop()

    def return_and_reshuffle(self, entry_id: str) -> None:
        """Put a skipped entry back and reshuffle everything that remains."""
        self.put_back(entry_id)
        self._rng.shuffle(self._ids)

    def put_back(self, entry_id: str) -> None:
        assert entry_id not in self._ids, f"entry {entry_id} already in bowl"
        self._ids.append(entry_id)

    def ids(self) -> List[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._ids


__all__ = ["Bowl"]
