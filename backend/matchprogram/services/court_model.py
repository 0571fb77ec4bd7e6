"""
Court/Slot model for one round of a training session.

A round's snapshot is a list of CourtSlots, one per configured court.
Each court holds SlotEntry items (0-based slot index + participant);
slots without an entry are empty. Objects here are plain data: every
change goes through the assignment mutator, which builds new lists
rather than editing these in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from matchprogram.models.player import Category, Gender


@dataclass(frozen=True)
class Participant:
    """A checked-in player as seen by the scheduling core (read-only)."""
    id: str
    name: str
    gender: Optional[Gender] = None
    primary_category: Optional[Category] = None
    max_rounds: Optional[int] = None  # None = unlimited, 1 = one round only
    alias: Optional[str] = None
    notes: Optional[str] = None
    check_in_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class SlotEntry:
    slot: int
    participant: Participant


@dataclass
class CourtSlots:
    court_idx: int
    slots: List[SlotEntry] = field(default_factory=list)

    def participant_ids(self) -> List[str]:
        return [entry.participant.id for entry in sorted(self.slots, key=lambda e: e.slot)]

    def occupant(self, slot: int) -> Optional[Participant]:
        for entry in self.slots:
            if entry.slot == slot:
                return entry.participant
        return None

    def is_empty(self) -> bool:
        return not self.slots

    def copy(self) -> "CourtSlots":
        return replace(self, slots=list(self.slots))


def copy_courts(courts: Iterable[CourtSlots]) -> List[CourtSlots]:
    return [court.copy() for court in courts]


def get_assigned_ids(courts: Iterable[CourtSlots]) -> Set[str]:
    """Ids of every participant occupying a slot in the round."""
    return {entry.participant.id for court in courts for entry in court.slots}


def get_occupied_courts(courts: Iterable[CourtSlots]) -> Set[int]:
    """Courts with at least one participant."""
    return {court.court_idx for court in courts if court.slots}


def find_participant(courts: Iterable[CourtSlots], participant_id: str) -> Optional[Tuple[int, int]]:
    """Return (court_idx, slot) currently held by the participant, if any."""
    for court in courts:
        for entry in court.slots:
            if entry.participant.id == participant_id:
                return court.court_idx, entry.slot
    return None


def get_first_free_slot(court: CourtSlots, capacity: int) -> Optional[int]:
    occupied = {entry.slot for entry in court.slots}
    for idx in range(capacity):
        if idx not in occupied:
            return idx
    return None


def get_team_players(court: CourtSlots) -> Tuple[List[Participant], List[Participant]]:
    """Split a doubles court: slots 0-1 are team 1, slots 2-3 are team 2."""
    team1: List[Participant] = []
    team2: List[Participant] = []
    for entry in sorted(court.slots, key=lambda e: e.slot):
        if entry.slot in (0, 1):
            team1.append(entry.participant)
        elif entry.slot in (2, 3):
            team2.append(entry.participant)
    return team1, team2


def calculate_gender_breakdown(participants: Iterable[Participant]) -> Dict[str, int]:
    participants = list(participants)
    return {
        "men": sum(1 for p in participants if p.gender == Gender.male),
        "women": sum(1 for p in participants if p.gender == Gender.female),
        "total": len(participants),
    }
