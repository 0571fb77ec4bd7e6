"""
Tests for Auto-Arrange

Verifies deterministic first-run placement, lock handling and reshuffles.
"""

import random

import pytest

from matchprogram.models.player import Category, Gender
from matchprogram.services.court_model import CourtSlots, SlotEntry, get_assigned_ids
from matchprogram.services.pool_partitioner import sort_participants
from matchprogram.utils.auto_assign import (
    AutoAssignValidationError,
    auto_arrange,
    resolve_excluded_courts,
    shuffle_within_groups,
)
from matchprogram.utils.manual_assignment import assert_single_occupancy
from tests.conftest import make_participant


def bench_of(n, prefix="p"):
    return [make_participant(f"{prefix}{i}") for i in range(n)]


def test_fills_courts_in_order():
    bench = bench_of(6)

    result = auto_arrange(1, bench, set(), False, [], 2)

    assert result.filled_courts == 2
    assert result.placed_count == 6
    assert result.benched_count == 0
    assert result.courts[0].participant_ids() == ["p0", "p1", "p2", "p3"]
    assert result.courts[1].participant_ids() == ["p4", "p5"]


def test_leftover_players_stay_on_bench():
    bench = bench_of(10)

    result = auto_arrange(1, bench, set(), False, [], 2)

    assert result.placed_count == 8
    assert result.benched_ids == ["p8", "p9"]


def test_deterministic_for_identical_inputs():
    bench = bench_of(7)
    first = auto_arrange(1, bench, set(), False, [], 3)
    second = auto_arrange(1, bench, set(), False, [], 3)
    assert [c.participant_ids() for c in first.courts] == [c.participant_ids() for c in second.courts]


def test_similar_players_grouped_together():
    roster = (
        [make_participant(f"h{i}", Gender.male, Category.single) for i in range(4)]
        + [make_participant(f"d{i}", Gender.female, Category.double) for i in range(4)]
    )
    bench = sort_participants(roster)

    result = auto_arrange(1, bench, set(), False, [], 2)

    assert result.courts[0].participant_ids() == ["d0", "d1", "d2", "d3"]
    assert result.courts[1].participant_ids() == ["h0", "h1", "h2", "h3"]


def test_first_run_keeps_and_auto_locks_occupied_courts():
    keeper = make_participant("keeper")
    current = [CourtSlots(court_idx=1, slots=[SlotEntry(0, keeper)])]

    result = auto_arrange(1, bench_of(4), set(), False, current, 2)

    assert result.courts[0].participant_ids() == ["keeper"]
    assert result.courts[1].participant_ids() == ["p0", "p1", "p2", "p3"]
    assert result.auto_locked_courts == {1}
    assert result.excluded_courts == {1}


def test_reshuffle_only_excludes_locked_courts():
    current = [
        CourtSlots(court_idx=1, slots=[SlotEntry(i, p) for i, p in enumerate(bench_of(4, "a"))]),
        CourtSlots(court_idx=2, slots=[SlotEntry(i, p) for i, p in enumerate(bench_of(4, "b"))]),
    ]
    bench = bench_of(4, "b") + bench_of(2, "c")

    result = auto_arrange(1, bench, {1}, True, current, 3, rng=random.Random(7))

    assert result.excluded_courts == {1}
    assert result.auto_locked_courts == set()
    assert result.courts[0].participant_ids() == ["a0", "a1", "a2", "a3"]
    assert get_assigned_ids(result.courts) == {f"a{i}" for i in range(4)} | {f"b{i}" for i in range(4)} | {"c0", "c1"}
    assert_single_occupancy(result.courts)


def test_locked_court_players_never_placed_twice():
    kept = bench_of(2, "k")
    current = [CourtSlots(court_idx=1, slots=[SlotEntry(i, p) for i, p in enumerate(kept)])]

    # A stale bench that still lists the kept players
    result = auto_arrange(1, kept + bench_of(2), {1}, True, current, 2)

    assert result.courts[1].participant_ids() == ["p0", "p1"]
    assert_single_occupancy(result.courts)


def test_capacity_override_used():
    result = auto_arrange(1, bench_of(6), set(), False, [], 2, capacities={1: 5})
    assert len(result.courts[0].slots) == 5
    assert len(result.courts[1].slots) == 1


def test_resolve_excluded_courts():
    current = [CourtSlots(court_idx=2, slots=[SlotEntry(0, make_participant("x"))])]

    assert resolve_excluded_courts(current, {3}, False) == ({2, 3}, {2})
    assert resolve_excluded_courts(current, {3}, True) == ({3}, set())


def test_shuffle_keeps_group_order():
    roster = sort_participants(
        [make_participant(f"d{i}", Gender.female, Category.double) for i in range(5)]
        + [make_participant(f"h{i}", Gender.male, Category.double) for i in range(5)]
    )

    shuffled = shuffle_within_groups(roster, random.Random(3))

    assert {p.id for p in shuffled[:5]} == {f"d{i}" for i in range(5)}
    assert {p.id for p in shuffled[5:]} == {f"h{i}" for i in range(5)}


def test_validation_rejects_bad_input():
    with pytest.raises(AutoAssignValidationError):
        auto_arrange(0, [], set(), False, [], 2)

    p = make_participant("dup")
    with pytest.raises(AutoAssignValidationError):
        auto_arrange(1, [p, p], set(), False, [], 2)


def test_to_dict_summary():
    result = auto_arrange(2, bench_of(3), set(), False, [], 2)
    summary = result.to_dict()
    assert summary["round"] == 2
    assert summary["filled_courts"] == 1
    assert summary["placed_count"] == 3
    assert summary["is_reshuffle"] is False
