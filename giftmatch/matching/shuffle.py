from __future__ import annotations

from typing import Any, List, Protocol


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def fisher_yates(items: List[Any], rng: RandomSource) -> None:
    """Shuffle ``items`` in place, uniformly over all orderings."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]
