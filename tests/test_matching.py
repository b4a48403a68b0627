import itertools
import random
from collections import Counter

import pytest
from loguru import logger

from giftmatch.matching import (
    EdgeRegistry,
    HopcroftKarp,
    IncompleteMatchingError,
    InvalidIndexError,
    SecretSantaMatcher,
    extract,
    fisher_yates,
)


class RecordingRandom:
    def __init__(self):
        self.calls = []

    def randrange(self, stop):
        self.calls.append(stop)
        return 0


def build_matcher(participants, exclusions=(), seed=None):
    matcher = SecretSantaMatcher(participants, participants, rng=random.Random(seed))
    for giver_index, giver in enumerate(participants):
        for receiver_index, receiver in enumerate(participants):
            if giver != receiver and (giver, receiver) not in exclusions:
                matcher.add_pairing(giver_index, receiver_index)
    return matcher


def brute_force_matching_size(giver_count, edges):
    best = 0
    for permutation in itertools.permutations(range(giver_count)):
        best = max(best, sum(1 for giver, receiver in enumerate(permutation) if (giver, receiver) in edges))
    return best


def test_register_edge_offsets_receivers():
    registry = EdgeRegistry(3, 3)
    registry.register_edge(0, 2)
    registry.register_edge(0, 1)
    assert list(registry.neighbours(0)) == [5, 4]
    assert list(registry.neighbours(1)) == []
    assert registry.edge_count() == 2


@pytest.mark.parametrize("giver, receiver", [(-1, 0), (0, -1), (3, 0), (0, 3), (10, 10), (True, 0), (0.0, 1)])
def test_register_edge_rejects_out_of_range(giver, receiver):
    registry = EdgeRegistry(3, 3)
    registry.register_edge(1, 2)
    with pytest.raises(InvalidIndexError):
        registry.register_edge(giver, receiver)
    assert registry.edge_count() == 1


def test_invalid_index_is_an_index_error():
    with pytest.raises(IndexError):
        EdgeRegistry(0, 0).register_edge(0, 0)


def test_fisher_yates_scans_from_last_to_second():
    rng = RecordingRandom()
    items = [1, 2, 3, 4, 5]
    fisher_yates(items, rng)
    assert rng.calls == [5, 4, 3, 2]


def test_fisher_yates_keeps_elements():
    items = list(range(20))
    fisher_yates(items, random.Random(3))
    assert sorted(items) == list(range(20))


def test_fisher_yates_is_uniform():
    rng = random.Random(2024)
    counts = Counter()
    for _ in range(6000):
        items = ["a", "b", "c"]
        fisher_yates(items, rng)
        counts[tuple(items)] += 1
    assert len(counts) == 6
    assert all(800 < count < 1200 for count in counts.values())


def test_registry_shuffle_permutes_each_list_independently():
    registry = EdgeRegistry(2, 6)
    for receiver in range(6):
        registry.register_edge(0, receiver)
    registry.register_edge(1, 0)
    registry.shuffle(random.Random(11))
    assert sorted(registry.neighbours(0)) == [2, 3, 4, 5, 6, 7]
    assert list(registry.neighbours(1)) == [2]


def test_engine_augments_through_matched_giver():
    registry = EdgeRegistry(2, 2)
    registry.register_edge(0, 0)
    registry.register_edge(0, 1)
    registry.register_edge(1, 0)

    engine = HopcroftKarp(registry)
    partners = engine.run()

    assert partners == [3, 2, 1, 0]
    assert engine.phases == 2


def test_engine_match_state_is_symmetric():
    registry = EdgeRegistry(4, 4)
    rng = random.Random(5)
    for giver in range(4):
        for receiver in range(4):
            if rng.random() < 0.5:
                registry.register_edge(giver, receiver)

    partners = HopcroftKarp(registry).run()

    for vertex, partner in enumerate(partners):
        if partner is not None:
            assert partners[partner] == vertex
            assert (vertex < 4) != (partner < 4)


def test_engine_finds_maximum_matching_on_random_graphs():
    rng = random.Random(99)
    for _ in range(60):
        size = rng.randint(1, 6)
        edges = {
            (giver, receiver)
            for giver in range(size)
            for receiver in range(size)
            if rng.random() < 0.35
        }
        registry = EdgeRegistry(size, size)
        for giver, receiver in sorted(edges):
            registry.register_edge(giver, receiver)
        registry.shuffle(rng)

        engine = HopcroftKarp(registry)
        engine.run()

        assert engine.matching_size() == brute_force_matching_size(size, edges)
        assert engine.phases <= engine.max_phases


def test_engine_reports_hall_violation():
    registry = EdgeRegistry(3, 3)
    registry.register_edge(0, 0)
    registry.register_edge(1, 0)
    registry.register_edge(2, 0)
    registry.register_edge(2, 1)

    engine = HopcroftKarp(registry)
    engine.run()

    assert engine.matching_size() == 2


def test_engine_without_edges_terminates():
    engine = HopcroftKarp(EdgeRegistry(3, 3))
    assert engine.run() == [None] * 6
    assert engine.phases == 0


class EndlessLayering(HopcroftKarp):
    def _layer(self):
        super()._layer()
        return True


def test_engine_stops_at_phase_limit_and_keeps_matching():
    registry = EdgeRegistry(2, 2)
    registry.register_edge(0, 0)
    engine = EndlessLayering(registry)

    messages = []
    handler_id = logger.add(messages.append, level="ERROR", format="{message}")
    try:
        partners = engine.run()
    finally:
        logger.remove(handler_id)

    assert engine.phases == engine.max_phases + 1
    assert partners == [2, None, 0, None]
    assert engine.matching_size() == 1
    assert len(messages) == 1
    assert "phase limit" in messages[0]


def test_extract_maps_indices_to_identifiers():
    result = extract([3, None, None, 0], ["ann", "bob"], ["cat", "dan"])
    assert result.pairs == {"ann": "dan"}
    assert result.matched == 1
    assert result.total == 2
    assert not result.is_complete
    with pytest.raises(IncompleteMatchingError) as excinfo:
        result.raise_for_incomplete()
    assert excinfo.value.matched == 1
    assert excinfo.value.total == 2


def test_three_participants_form_a_three_cycle():
    result = build_matcher([1, 2, 3], seed=4).generate_pairs()
    assert result.is_complete
    assert result.pairs in ({1: 2, 2: 3, 3: 1}, {1: 3, 2: 1, 3: 2})


def test_mutually_excluded_pair_cannot_be_matched():
    result = build_matcher([1, 2], exclusions={(1, 2), (2, 1)}, seed=1).generate_pairs()
    assert result.matched == 0
    assert not result.is_complete


def test_single_exclusion_in_ten_always_completes():
    participants = list("ABCDEFGHIJ")
    exclusions = {("A", "B"), ("B", "A")}
    for seed in range(50):
        result = build_matcher(participants, exclusions=exclusions, seed=seed).generate_pairs()
        assert result.is_complete
        assert sorted(result.pairs.values()) == participants
        assert result.pairs["A"] != "B"
        assert result.pairs["B"] != "A"
        assert all(giver != receiver for giver, receiver in result.pairs.items())


def test_two_participants_swap():
    result = build_matcher([10, 20], seed=8).generate_pairs()
    assert result.pairs == {10: 20, 20: 10}


def test_same_seed_same_pairs():
    participants = [1, 2, 3, 4, 5, 6]
    first = build_matcher(participants, seed=123).generate_pairs()
    second = build_matcher(participants, seed=123).generate_pairs()
    assert first.pairs == second.pairs


def test_independent_draws_differ():
    participants = [1, 2, 3, 4, 5, 6]
    outcomes = {
        tuple(sorted(build_matcher(participants, seed=seed).generate_pairs().pairs.items()))
        for seed in range(40)
    }
    assert len(outcomes) > 1


def test_matcher_draws_once():
    matcher = build_matcher([1, 2, 3], seed=2)
    matcher.generate_pairs()
    with pytest.raises(RuntimeError):
        matcher.generate_pairs()


def test_matcher_defaults_to_system_random():
    matcher = SecretSantaMatcher([1, 2], [1, 2])
    matcher.add_pairing(0, 1)
    matcher.add_pairing(1, 0)
    assert matcher.generate_pairs().pairs == {1: 2, 2: 1}
