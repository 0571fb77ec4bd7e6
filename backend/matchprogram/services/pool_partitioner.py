"""
Participant pool partitioning for a round.

Splits the checked-in roster into:
- bench: eligible for a court this round, not yet on one
- inactive: excluded this round (marked unavailable, or one-round players
  past round 1 who were not re-activated)

Assigned participants appear in neither list. Pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Callable, Dict, Iterable, List, Optional

from matchprogram.models.player import Category, Gender
from matchprogram.services.court_model import Participant

SORT_GENDER_CATEGORY = "gender-category"
SORT_GENDER_ALPHABETICAL = "gender-alphabetical"
SORT_ALPHABETICAL = "alphabetical"

VALID_SORT_TYPES = {SORT_GENDER_CATEGORY, SORT_GENDER_ALPHABETICAL, SORT_ALPHABETICAL}

GENDER_ORDER: Dict[Optional[Gender], int] = {Gender.female: 1, Gender.male: 2}
CATEGORY_ORDER: Dict[Optional[Category], int] = {Category.double: 1, Category.both: 2, Category.single: 3}


@dataclass
class PartitionResult:
    bench: List[Participant]
    inactive: List[Participant]


def gender_rank(participant: Participant) -> int:
    return GENDER_ORDER.get(participant.gender, 3)


def category_rank(participant: Participant) -> int:
    return CATEGORY_ORDER.get(participant.primary_category, 4)


def _name_key(participant: Participant):
    # Empty names sort last; comparison is case-insensitive
    name = (participant.name or "").strip()
    return (0 if name else 1, name.casefold())


def sort_participants(participants: Iterable[Participant], sort_type: str = SORT_GENDER_CATEGORY) -> List[Participant]:
    """
    Stable sort for bench/inactive display and auto-arrange priority.

    gender-category: gender group, then category group, ties keep input order
    gender-alphabetical: gender group, then name
    alphabetical: name only
    """
    if sort_type not in VALID_SORT_TYPES:
        raise ValueError(f"Unknown sort type: {sort_type}")

    key: Callable[[Participant], tuple]
    if sort_type == SORT_ALPHABETICAL:
        key = _name_key
    elif sort_type == SORT_GENDER_ALPHABETICAL:
        key = lambda p: (gender_rank(p), _name_key(p))  # noqa: E731
    else:
        key = lambda p: (gender_rank(p), category_rank(p))  # noqa: E731

    return sorted(participants, key=key)


def is_round_limited(participant: Participant, round_number: int, activations: AbstractSet[str]) -> bool:
    """One-round players sit out rounds 2+ unless activated for the round."""
    return round_number > 1 and participant.max_rounds == 1 and participant.id not in activations


def partition(
    checked_in: Iterable[Participant],
    assigned_ids: AbstractSet[str],
    round_number: int,
    unavailable: AbstractSet[str],
    activations: AbstractSet[str],
    sort_type: str = SORT_GENDER_CATEGORY,
) -> PartitionResult:
    bench: List[Participant] = []
    inactive: List[Participant] = []

    for participant in checked_in:
        if participant.id in assigned_ids:
            continue
        if participant.id in unavailable or is_round_limited(participant, round_number, activations):
            inactive.append(participant)
        else:
            bench.append(participant)

    return PartitionResult(
        bench=sort_participants(bench, sort_type),
        inactive=sort_participants(inactive, sort_type),
    )
