"""
Duplicate-matchup detection across the rounds of one training session.

A court in the current round is flagged when 3 or more of its players
already shared a court in any earlier round. Pairs meeting again are normal
and never flagged. Purely advisory: nothing here blocks a placement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Set

from matchprogram.config import DUPLICATE_MATCHUP_THRESHOLD
from matchprogram.services.court_model import CourtSlots


@dataclass
class DuplicateReport:
    courts_flagged: Set[int] = field(default_factory=set)
    flagged_participants_by_court: Dict[int, Set[str]] = field(default_factory=dict)

    def is_flagged(self, court_idx: int) -> bool:
        return court_idx in self.courts_flagged

    def to_dict(self) -> Dict[str, object]:
        return {
            "courts_flagged": sorted(self.courts_flagged),
            "flagged_participants_by_court": {
                str(court_idx): sorted(ids) for court_idx, ids in sorted(self.flagged_participants_by_court.items())
            },
        }


def _occupant_ids(court: CourtSlots) -> Set[str]:
    return {entry.participant.id for entry in court.slots}


def find_duplicate_matchups(
    current_courts: Iterable[CourtSlots],
    prior_courts_by_round: Mapping[int, List[CourtSlots]],
    current_round: int,
) -> DuplicateReport:
    """
    Compare every current court against every court of rounds 1..current-1.

    Rounds missing from prior_courts_by_round are skipped.
    """
    report = DuplicateReport()
    if current_round <= 1:
        return report

    for court in current_courts:
        current_ids = _occupant_ids(court)
        if len(current_ids) < DUPLICATE_MATCHUP_THRESHOLD:
            continue

        flagged: Set[str] = set()
        for round_number in range(1, current_round):
            for prior_court in prior_courts_by_round.get(round_number) or []:
                overlap = current_ids & _occupant_ids(prior_court)
                if len(overlap) >= DUPLICATE_MATCHUP_THRESHOLD:
                    flagged |= overlap

        if flagged:
            report.courts_flagged.add(court.court_idx)
            report.flagged_participants_by_court[court.court_idx] = flagged

    return report
