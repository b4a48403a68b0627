from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Sequence

from giftmatch.matching.errors import IncompleteMatchingError


@dataclass(frozen=True)
class MatchResult:
    pairs: Dict[Hashable, Hashable]
    total: int

    @property
    def matched(self) -> int:
        return len(self.pairs)

    @property
    def is_complete(self) -> bool:
        return self.matched == self.total

    def raise_for_incomplete(self) -> None:
        if not self.is_complete:
            raise IncompleteMatchingError(self.matched, self.total)


def extract(
    partners: Sequence[Optional[int]],
    givers: Sequence[Hashable],
    receivers: Sequence[Hashable],
) -> MatchResult:
    """Translate engine vertices back to the caller's identifiers.

    Unmatched givers are left out, so ``matched < total`` signals that no
    perfect matching exists.
    """
    giver_count = len(givers)
    pairs: Dict[Hashable, Hashable] = {}
    for giver_index, giver_id in enumerate(givers):
        partner = partners[giver_index]
        if partner is None:
            continue
        pairs[giver_id] = receivers[partner - giver_count]
    return MatchResult(pairs=pairs, total=giver_count)
