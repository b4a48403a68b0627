from __future__ import annotations

from typing import List, Sequence

from giftmatch.matching.errors import InvalidIndexError
from giftmatch.matching.shuffle import RandomSource, fisher_yates


def _in_range(index: object, upper: int) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < upper


class EdgeRegistry:
    """Permitted (giver, receiver) edges of one assignment request.

    Givers occupy vertices ``0..G-1`` and receivers ``G..G+R-1``. Only legal
    edges may be registered: the registry does not filter self-pairs,
    duplicates or exclusions.
    """

    def __init__(self, giver_count: int, receiver_count: int) -> None:
        if giver_count < 0 or receiver_count < 0:
            raise ValueError("Vertex counts must be non-negative.")
        self.giver_count = giver_count
        self.receiver_count = receiver_count
        self._adjacency: List[List[int]] = [[] for _ in range(giver_count)]

    @property
    def vertex_count(self) -> int:
        return self.giver_count + self.receiver_count

    def register_edge(self, giver_index: int, receiver_index: int) -> None:
        if not _in_range(giver_index, self.giver_count) or not _in_range(
            receiver_index, self.receiver_count
        ):
            raise InvalidIndexError(
                f"Participant indices are out of bounds: giver={giver_index!r}, receiver={receiver_index!r}"
            )
        self._adjacency[giver_index].append(self.giver_count + receiver_index)

    def neighbours(self, giver_index: int) -> Sequence[int]:
        return self._adjacency[giver_index]

    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency)

    def shuffle(self, rng: RandomSource) -> None:
        for edges in self._adjacency:
            fisher_yates(edges, rng)
