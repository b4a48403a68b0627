"""
Hopcroft-Karp maximum bipartite matching over an :class:`EdgeRegistry`.

Each phase layers the graph with a breadth-first search from the unmatched
givers, then augments along vertex-disjoint shortest paths with a
depth-first search that only steps to the next layer. The terminal vertex
stands for "any unmatched receiver" and has its own distance slot.
"""
from __future__ import annotations

from collections import deque
from typing import Iterator, List, Optional, Tuple

from loguru import logger

from giftmatch.matching.registry import EdgeRegistry


class HopcroftKarp:
    def __init__(self, registry: EdgeRegistry) -> None:
        self.registry = registry
        self.giver_count = registry.giver_count
        # partner of every vertex, None while unmatched
        self.partners: List[Optional[int]] = [None] * registry.vertex_count
        # layer of every giver, None while unreached
        self._distance: List[Optional[int]] = [None] * registry.giver_count
        self._terminal_distance: Optional[int] = None
        self.phases = 0

    @property
    def max_phases(self) -> int:
        return self.giver_count + 1

    def matching_size(self) -> int:
        return sum(1 for giver in range(self.giver_count) if self.partners[giver] is not None)

    def _layer(self) -> bool:
        queue: deque[int] = deque()
        for giver in range(self.giver_count):
            if self.partners[giver] is None:
                self._distance[giver] = 0
                queue.append(giver)
            else:
                self._distance[giver] = None
        self._terminal_distance = None

        while queue:
            giver = queue.popleft()
            next_distance = self._distance[giver] + 1
            for receiver in self.registry.neighbours(giver):
                partner = self.partners[receiver]
                if partner is None:
                    if self._terminal_distance is None:
                        self._terminal_distance = next_distance
                elif self._distance[partner] is None:
                    self._distance[partner] = next_distance
                    queue.append(partner)

        return self._terminal_distance is not None

    def _augment(self, root: int) -> bool:
        stack: List[Tuple[int, Iterator[int]]] = [(root, iter(self.registry.neighbours(root)))]
        path: List[Tuple[int, int]] = []

        while stack:
            giver, edges = stack[-1]
            next_distance = self._distance[giver] + 1
            descended = False
            for receiver in edges:
                partner = self.partners[receiver]
                if partner is None:
                    if self._terminal_distance == next_distance:
                        path.append((giver, receiver))
                        self._apply(path)
                        return True
                elif self._distance[partner] == next_distance:
                    path.append((giver, receiver))
                    stack.append((partner, iter(self.registry.neighbours(partner))))
                    descended = True
                    break

            if not descended:
                # dead end for the rest of this phase
                self._distance[giver] = None
                stack.pop()
                if path:
                    path.pop()

        return False

    def _apply(self, path: List[Tuple[int, int]]) -> None:
        for giver, receiver in path:
            self.partners[giver] = receiver
            self.partners[receiver] = giver

    def run(self) -> List[Optional[int]]:
        while self._layer():
            self.phases += 1
            if self.phases > self.max_phases:
                logger.bind(phases=self.phases, givers=self.giver_count).error(
                    "Matching phase limit exceeded, stopping with the current matching"
                )
                break
            for giver in range(self.giver_count):
                if self.partners[giver] is None and self._distance[giver] == 0:
                    self._augment(giver)

        logger.bind(phases=self.phases, givers=self.giver_count).debug(
            "Matching finished with {size} pairs", size=self.matching_size()
        )
        return self.partners
