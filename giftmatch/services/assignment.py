from __future__ import annotations

import random
from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from giftmatch.matching import IncompleteMatchingError, SecretSantaMatcher
from giftmatch.matching.shuffle import RandomSource


class AssignmentError(RuntimeError):
    pass


class ConstraintsTooStrictError(AssignmentError):
    def __init__(self, matched: int, total: int) -> None:
        self.matched = matched
        self.total = total
        super().__init__(
            f"Exclusions are too strict: only {matched} of {total} participants could be matched. "
            "Remove some exclusions and try again."
        )


def symmetric_exclusions(pairs: Iterable[Tuple[int, int]]) -> Set[Tuple[int, int]]:
    closed: Set[Tuple[int, int]] = set()
    for first, second in pairs:
        closed.add((first, second))
        closed.add((second, first))
    return closed


def generate_assignments(
    participant_ids: Sequence[int],
    exclusions: Optional[Iterable[Tuple[int, int]]] = None,
    no_repeat_map: Optional[Dict[int, int]] = None,
    seed: Optional[int] = None,
    rng: Optional[RandomSource] = None,
) -> Dict[int, int]:
    if len(participant_ids) < 2:
        raise AssignmentError("At least 2 participants are required.")

    participants = list(participant_ids)
    if len(set(participants)) != len(participants):
        raise AssignmentError("Participants must be unique.")

    forbidden = set(exclusions or [])
    for giver, receiver in (no_repeat_map or {}).items():
        forbidden.add((giver, receiver))

    if rng is None and seed is not None:
        rng = random.Random(seed)

    matcher = SecretSantaMatcher(participants, participants, rng=rng)
    for giver_index, giver in enumerate(participants):
        for receiver_index, receiver in enumerate(participants):
            if giver == receiver or (giver, receiver) in forbidden:
                continue
            matcher.add_pairing(giver_index, receiver_index)

    result = matcher.generate_pairs()
    try:
        result.raise_for_incomplete()
    except IncompleteMatchingError as exc:
        raise ConstraintsTooStrictError(exc.matched, exc.total) from exc
    return dict(result.pairs)
