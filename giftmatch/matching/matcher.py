from __future__ import annotations

import random
from typing import Hashable, Optional, Sequence

from loguru import logger

from giftmatch.matching.engine import HopcroftKarp
from giftmatch.matching.registry import EdgeRegistry
from giftmatch.matching.result import MatchResult, extract
from giftmatch.matching.shuffle import RandomSource


class SecretSantaMatcher:
    """One assignment request: register legal pairings, then draw once."""

    def __init__(
        self,
        givers: Sequence[Hashable],
        receivers: Sequence[Hashable],
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.givers = list(givers)
        self.receivers = list(receivers)
        self.rng = rng if rng is not None else random.SystemRandom()
        self.registry = EdgeRegistry(len(self.givers), len(self.receivers))
        self._used = False

    def add_pairing(self, giver_index: int, receiver_index: int) -> None:
        self.registry.register_edge(giver_index, receiver_index)

    def generate_pairs(self) -> MatchResult:
        if self._used:
            raise RuntimeError("A matcher draws only once; create a new one per request.")
        self._used = True

        self.registry.shuffle(self.rng)
        engine = HopcroftKarp(self.registry)
        partners = engine.run()
        result = extract(partners, self.givers, self.receivers)

        logger.bind(
            givers=len(self.givers),
            edges=self.registry.edge_count(),
            phases=engine.phases,
        ).debug("Drew {matched}/{total} pairs", matched=result.matched, total=result.total)
        return result
