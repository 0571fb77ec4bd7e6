"""
Canonical court-list normalization and capacity rules.

Every round snapshot handed out by the engine passes through
ensure_all_courts, so consumers always see courts 1..max_courts with no
gaps. A missing court record never means "no court".
"""
from typing import Dict, Iterable, List, Optional, Tuple

from matchprogram.config import (
    DEFAULT_COURT_CAPACITY,
    MAX_EXTENDED_CAPACITY,
    MIN_EXTENDED_CAPACITY,
)
from matchprogram.services.court_model import CourtSlots


def ensure_all_courts(courts: Optional[Iterable[CourtSlots]], max_courts: int) -> List[CourtSlots]:
    """
    Return exactly max_courts courts, indices 1..max_courts.

    - Existing courts are copied (slots sorted by slot index)
    - Missing courts are filled in empty
    - Courts outside 1..max_courts are dropped
    """
    by_idx: Dict[int, CourtSlots] = {}
    for court in courts or []:
        by_idx[court.court_idx] = court

    result: List[CourtSlots] = []
    for idx in range(1, max_courts + 1):
        existing = by_idx.get(idx)
        if existing is None:
            result.append(CourtSlots(court_idx=idx))
        else:
            result.append(CourtSlots(court_idx=idx, slots=sorted(existing.slots, key=lambda e: e.slot)))
    return result


def non_empty_courts(courts: Iterable[CourtSlots]) -> List[CourtSlots]:
    """Courts holding at least one participant (what gets persisted)."""
    return [court for court in courts if court.slots]


def court_capacity(
    overrides: Optional[Dict[int, int]],
    court_idx: int,
    default: int = DEFAULT_COURT_CAPACITY,
) -> int:
    """Slot capacity for a court: the round's override if set, else the default."""
    if overrides and court_idx in overrides:
        return overrides[court_idx]
    return default


def validate_capacity_override(capacity: Optional[int]) -> Tuple[bool, Optional[str]]:
    """
    Check a per-court capacity override.

    None (or the default capacity) means "back to default"; anything else
    must lie in the extended range.

    Returns:
        (is_valid, reason_if_not)
    """
    if capacity is None or capacity == DEFAULT_COURT_CAPACITY:
        return True, None
    if MIN_EXTENDED_CAPACITY <= capacity <= MAX_EXTENDED_CAPACITY:
        return True, None
    return False, (
        f"Court capacity must be {DEFAULT_COURT_CAPACITY} or between "
        f"{MIN_EXTENDED_CAPACITY} and {MAX_EXTENDED_CAPACITY}, got {capacity}"
    )
