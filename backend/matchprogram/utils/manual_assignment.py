"""
Assignment mutator: the only code that changes court occupancy.

Every operation takes the round's current court list and returns a new,
normalized one (courts 1..max_courts). Inputs are never mutated in place.
Hard invariants enforced after every mutation:

1. **One slot per participant**: a participant occupies at most one
   (court, slot) pair in the round
2. **One participant per slot**: no (court, slot) pair holds two entries
3. **Capacity**: slot indices stay within the court's capacity for the round

A move onto an occupied slot swaps the two participants: the occupant takes
the mover's previous (court, slot), or goes back to the bench when the mover
came from the bench. Nobody is ever dropped.
"""

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Tuple

from matchprogram.config import DEFAULT_COURT_CAPACITY
from matchprogram.services.court_model import (
    CourtSlots,
    Participant,
    SlotEntry,
    find_participant,
    get_first_free_slot,
)
from matchprogram.utils.courts import court_capacity, ensure_all_courts


class ManualAssignmentError(Exception):
    """Base exception for manual assignment errors"""
    pass


class CourtCapacityError(ManualAssignmentError):
    """Target slot or court lies outside the configured capacity"""
    pass


class CourtFullError(ManualAssignmentError):
    """Every slot of the target court is taken"""
    pass


class CourtLockedError(ManualAssignmentError):
    """Move would change a court that is locked for the round"""
    pass


class UnknownParticipantError(ManualAssignmentError):
    """Participant is not checked in to the session"""
    pass


class AssignmentInvariantError(AssertionError):
    """
    Occupancy invariant broken (duplicated participant or double-occupied slot).

    This is a bug in the engine, never a user error, and must not be caught
    and corrected silently.
    """
    pass


@dataclass
class MoveResult:
    courts: List[CourtSlots]
    swapped_with: Optional[str] = None  # occupant moved to the mover's old slot
    displaced: Optional[str] = None  # occupant sent to the bench

    @property
    def changed_ids(self) -> Set[str]:
        return {pid for pid in (self.swapped_with, self.displaced) if pid}


def assert_single_occupancy(courts: Iterable[CourtSlots]) -> None:
    """
    Verify the occupancy invariants for a round.

    Raises:
        AssignmentInvariantError on any duplicate participant or slot
    """
    seen_participants: Dict[str, Tuple[int, int]] = {}
    for court in courts:
        seen_slots: Set[int] = set()
        for entry in court.slots:
            if entry.slot in seen_slots:
                raise AssignmentInvariantError(
                    f"Slot {entry.slot} on court {court.court_idx} is occupied twice"
                )
            seen_slots.add(entry.slot)

            previous = seen_participants.get(entry.participant.id)
            if previous is not None:
                raise AssignmentInvariantError(
                    f"Participant {entry.participant.id} occupies both court {previous[0]} slot {previous[1]} "
                    f"and court {court.court_idx} slot {entry.slot}"
                )
            seen_participants[entry.participant.id] = (court.court_idx, entry.slot)


def validate_slot_target(
    court_idx: int,
    slot: int,
    max_courts: int,
    capacity: int,
) -> Tuple[bool, Optional[str]]:
    """
    Check that (court_idx, slot) exists in the round.

    Returns:
        (is_valid, reason_if_not)
    """
    if not 1 <= court_idx <= max_courts:
        return False, f"Court {court_idx} does not exist (courts 1-{max_courts})"
    if not 0 <= slot < capacity:
        return False, f"Slot {slot} is outside court {court_idx} capacity ({capacity} slots)"
    return True, None


def _remove_everywhere(courts: List[CourtSlots], participant_id: str) -> None:
    for court in courts:
        court.slots = [entry for entry in court.slots if entry.participant.id != participant_id]


def _finalize(courts: List[CourtSlots], max_courts: int) -> List[CourtSlots]:
    result = ensure_all_courts(courts, max_courts)
    assert_single_occupancy(result)
    return result


def move_to_slot(
    courts: Iterable[CourtSlots],
    participant: Participant,
    court_idx: int,
    slot: int,
    max_courts: int,
    capacities: Optional[Dict[int, int]] = None,
    default_capacity: int = DEFAULT_COURT_CAPACITY,
    locked_courts: AbstractSet[int] = frozenset(),
) -> MoveResult:
    """
    Place a participant in (court_idx, slot), swapping with any occupant.

    - Same participant already there: no-op
    - Empty target: participant moves there (leaving any previous slot)
    - Occupied target: occupant takes the mover's previous slot, or is sent
      to the bench if the mover had none

    Raises:
        CourtCapacityError if the target slot does not exist this round
        CourtLockedError if the target court, or the court the occupant would
            be swapped to, is locked
    """
    capacity = court_capacity(capacities, court_idx, default_capacity)
    valid, reason = validate_slot_target(court_idx, slot, max_courts, capacity)
    if not valid:
        raise CourtCapacityError(reason)

    current = ensure_all_courts(courts, max_courts)
    by_idx = {court.court_idx: court for court in current}
    target = by_idx[court_idx]

    occupant = target.occupant(slot)
    if occupant is not None and occupant.id == participant.id:
        return MoveResult(courts=current)

    if court_idx in locked_courts:
        raise CourtLockedError(f"Court {court_idx} is locked; unlock it before moving players onto it")

    source = find_participant(current, participant.id)
    if occupant is not None and source is not None and source[0] in locked_courts:
        raise CourtLockedError(
            f"Court {source[0]} is locked; {occupant.display_name} cannot be swapped onto it"
        )
    _remove_everywhere(current, participant.id)

    result = MoveResult(courts=current)
    if occupant is not None:
        target.slots = [entry for entry in target.slots if entry.slot != slot]
        if source is not None:
            source_court, source_slot = source
            by_idx[source_court].slots.append(SlotEntry(slot=source_slot, participant=occupant))
            result.swapped_with = occupant.id
        else:
            result.displaced = occupant.id

    target.slots.append(SlotEntry(slot=slot, participant=participant))
    result.courts = _finalize(current, max_courts)
    return result


def move_to_court(
    courts: Iterable[CourtSlots],
    participant: Participant,
    court_idx: int,
    max_courts: int,
    capacities: Optional[Dict[int, int]] = None,
    default_capacity: int = DEFAULT_COURT_CAPACITY,
    locked_courts: AbstractSet[int] = frozenset(),
) -> MoveResult:
    """
    Place a participant in the first free slot of a court.

    Raises:
        CourtCapacityError if the court does not exist
        CourtLockedError if the court is locked
        CourtFullError if every slot is taken
    """
    if not 1 <= court_idx <= max_courts:
        raise CourtCapacityError(f"Court {court_idx} does not exist (courts 1-{max_courts})")
    if court_idx in locked_courts:
        raise CourtLockedError(f"Court {court_idx} is locked; unlock it before moving players onto it")

    current = ensure_all_courts(courts, max_courts)
    source = find_participant(current, participant.id)
    if source is not None and source[0] == court_idx:
        return MoveResult(courts=current)

    capacity = court_capacity(capacities, court_idx, default_capacity)
    free_slot = get_first_free_slot(current[court_idx - 1], capacity)
    if free_slot is None:
        raise CourtFullError(f"Court {court_idx} is full ({capacity} slots)")

    return move_to_slot(
        current, participant, court_idx, free_slot, max_courts, capacities, default_capacity, locked_courts
    )


def move_to_bench(courts: Iterable[CourtSlots], participant_id: str, max_courts: int) -> List[CourtSlots]:
    """Remove a participant from any slot. Availability sets are untouched."""
    current = ensure_all_courts(courts, max_courts)
    _remove_everywhere(current, participant_id)
    return _finalize(current, max_courts)


def move_to_inactive(
    courts: Iterable[CourtSlots],
    participant_id: str,
    unavailable: AbstractSet[str],
    max_courts: int,
) -> Tuple[List[CourtSlots], Set[str]]:
    """Bench the participant and add them to the round's unavailable set."""
    updated = move_to_bench(courts, participant_id, max_courts)
    return updated, set(unavailable) | {participant_id}


def clear_courts(courts: Iterable[CourtSlots], court_idxs: AbstractSet[int], max_courts: int) -> List[CourtSlots]:
    """Empty the given courts; everyone on them returns to the bench."""
    current = ensure_all_courts(courts, max_courts)
    for court in current:
        if court.court_idx in court_idxs:
            court.slots = []
    return _finalize(current, max_courts)
