"""
Auto-Arrange: deterministic first-fit placement of bench players on courts

Fills the empty slots of every court that is not excluded, court by court in
index order, taking bench players in partition order (gender group, then
category group), so similar players end up on the same court.

Exclusion rules:
- First run for a round: locked courts plus every court that already holds a
  player. Those occupied courts are reported back as auto-locked.
- Reshuffle: only locked courts. All other courts are cleared and refilled.

Non-goals:
- Skill balancing beyond the partition order
- Avoiding repeated groupings (the duplicate detector only flags them)
- Placing everybody (leftover players simply stay on the bench)
"""

import logging
import random
from datetime import datetime
from itertools import groupby
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Set, Tuple

from matchprogram.config import DEFAULT_COURT_CAPACITY
from matchprogram.services.court_model import CourtSlots, Participant, SlotEntry, get_occupied_courts
from matchprogram.services.pool_partitioner import category_rank, gender_rank
from matchprogram.utils.courts import court_capacity, ensure_all_courts
from matchprogram.utils.manual_assignment import assert_single_occupancy

logger = logging.getLogger(__name__)


class AutoAssignError(Exception):
    """Base exception for auto-arrange errors"""

    pass


class AutoAssignValidationError(AutoAssignError):
    """Validation failed before arranging"""

    pass


class AutoArrangeResult:
    """Structured result from an auto-arrange pass"""

    def __init__(self, round_number: int, is_reshuffle: bool):
        self.round_number = round_number
        self.is_reshuffle = is_reshuffle
        self.courts: List[CourtSlots] = []
        self.filled_courts = 0
        self.placed_count = 0
        self.benched_ids: List[str] = []
        self.excluded_courts: Set[int] = set()
        self.auto_locked_courts: Set[int] = set()
        self.duration_ms: Optional[int] = None

    @property
    def benched_count(self) -> int:
        return len(self.benched_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round_number,
            "is_reshuffle": self.is_reshuffle,
            "filled_courts": self.filled_courts,
            "placed_count": self.placed_count,
            "benched_count": self.benched_count,
            "excluded_courts": sorted(self.excluded_courts),
            "auto_locked_courts": sorted(self.auto_locked_courts),
            "duration_ms": self.duration_ms,
        }


def validate_inputs(round_number: int, bench: List[Participant], max_courts: int) -> None:
    """
    Sanity checks before arranging.

    Raises AutoAssignValidationError if validation fails.
    """
    if round_number < 1:
        raise AutoAssignValidationError(f"Round must be >= 1, got {round_number}")

    if max_courts < 1:
        raise AutoAssignValidationError(f"At least one court is required, got {max_courts}")

    bench_ids = [p.id for p in bench]
    if len(bench_ids) != len(set(bench_ids)):
        raise AutoAssignValidationError("Duplicate participant ids on the bench")


def resolve_excluded_courts(
    current_courts: Iterable[CourtSlots],
    locked_courts: AbstractSet[int],
    is_reshuffle: bool,
) -> Tuple[Set[int], Set[int]]:
    """
    Work out which courts the pass must leave alone.

    Returns:
        (excluded_courts, newly_auto_locked_courts)
    """
    if is_reshuffle:
        return set(locked_courts), set()

    occupied = get_occupied_courts(current_courts)
    auto_locked = occupied - set(locked_courts)
    return set(locked_courts) | occupied, auto_locked


def shuffle_within_groups(bench: List[Participant], rng: random.Random) -> List[Participant]:
    """
    Shuffle players inside each (gender, category) group.

    The order between groups is kept, so a reshuffle still keeps similar
    players together but produces new groupings.
    """
    shuffled: List[Participant] = []
    for _, group in groupby(bench, key=lambda p: (gender_rank(p), category_rank(p))):
        members = list(group)
        rng.shuffle(members)
        shuffled.extend(members)
    return shuffled


def auto_arrange(
    round_number: int,
    bench: List[Participant],
    locked_courts: AbstractSet[int],
    is_reshuffle: bool,
    current_courts: Iterable[CourtSlots],
    max_courts: int,
    capacities: Optional[Dict[int, int]] = None,
    default_capacity: int = DEFAULT_COURT_CAPACITY,
    rng: Optional[random.Random] = None,
) -> AutoArrangeResult:
    """
    Fill the unlocked courts of a round from the bench.

    Args:
        round_number: Round being arranged (1-based)
        bench: Eligible players in partition order
        locked_courts: Courts the user locked for this round
        is_reshuffle: False on the first pass for the round, True afterwards
        current_courts: The round's current snapshot
        max_courts: Number of configured courts
        capacities: Per-court capacity overrides for this round
        default_capacity: Slots per court without an override
        rng: When given, players are shuffled inside their group first

    Returns:
        AutoArrangeResult with the new snapshot and placement counts

    Raises:
        AutoAssignValidationError: If input validation fails
    """
    start_time = datetime.utcnow()
    result = AutoArrangeResult(round_number, is_reshuffle)

    validate_inputs(round_number, bench, max_courts)

    courts = ensure_all_courts(current_courts, max_courts)
    excluded, auto_locked = resolve_excluded_courts(courts, locked_courts, is_reshuffle)
    result.excluded_courts = excluded
    result.auto_locked_courts = auto_locked

    working = [court for court in courts if court.court_idx not in excluded]

    # Working courts are refilled from scratch
    for court in working:
        court.slots = []

    # Players kept on excluded courts cannot be placed twice
    kept_ids = {entry.participant.id for court in courts for entry in court.slots}
    queue = [p for p in bench if p.id not in kept_ids]
    if rng is not None:
        queue = shuffle_within_groups(queue, rng)

    position = 0
    for court in working:
        capacity = court_capacity(capacities, court.court_idx, default_capacity)
        placed_here = 0
        for slot in range(capacity):
            if position >= len(queue):
                break
            court.slots.append(SlotEntry(slot=slot, participant=queue[position]))
            position += 1
            placed_here += 1
        if placed_here:
            result.filled_courts += 1
        if position >= len(queue):
            break

    result.placed_count = position
    result.benched_ids = [p.id for p in queue[position:]]
    result.courts = ensure_all_courts(courts, max_courts)
    assert_single_occupancy(result.courts)

    end_time = datetime.utcnow()
    result.duration_ms = int((end_time - start_time).total_seconds() * 1000)

    logger.info(
        "Auto-arrange round %d (%s): %d players on %d courts, %d benched, excluded courts %s",
        round_number,
        "reshuffle" if is_reshuffle else "first run",
        result.placed_count,
        result.filled_courts,
        result.benched_count,
        sorted(excluded),
    )
    return result
