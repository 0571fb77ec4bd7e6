"""
Badminton result validation.

Accepts set scores as {"team1": int|None, "team2": int|None} dicts, e.g.
  [{"team1": 21, "team2": 19}, {"team1": 30, "team2": 29}]

Rules:
  - 1 to 3 sets; sets with both scores empty (None or 0) are ignored
  - scores are 0..30
  - the set winner has at least 21 points and leads by 2, except 30-29
  - one team must have won 2 sets
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

MAX_SETS = 3
MAX_SCORE = 30
MIN_WINNING_SCORE = 21
MIN_SCORE_DIFFERENCE = 2
CAPPED_SET_SCORE = (30, 29)
SETS_TO_WIN = 2


@dataclass
class ValidatedResult:
    sets: List[Tuple[int, int]]  # played sets only, (team1, team2)
    team1_sets_won: int
    team2_sets_won: int

    @property
    def winner_team(self) -> int:
        return 1 if self.team1_sets_won > self.team2_sets_won else 2

    def to_score_json(self) -> Dict[str, Any]:
        return {
            "sets": [{"team1": a, "team2": b} for a, b in self.sets],
            "winner": self.winner_team,
        }


def _is_empty(score: Optional[int]) -> bool:
    return score is None or score == 0


def _set_winner(team1: int, team2: int) -> Tuple[Optional[int], Optional[str]]:
    """Returns (1 | 2, None) or (None, reason)."""
    if team1 == team2:
        return None, "A set must have a winner"

    winner_score, loser_score = max(team1, team2), min(team1, team2)
    if winner_score < MIN_WINNING_SCORE:
        return None, f"The set winner needs at least {MIN_WINNING_SCORE} points"
    if (winner_score, loser_score) != CAPPED_SET_SCORE and winner_score - loser_score < MIN_SCORE_DIFFERENCE:
        return None, "The set winner must lead by at least 2 points (except 30-29)"
    return (1 if team1 > team2 else 2), None


def validate_badminton_sets(sets: List[Dict[str, Optional[int]]]) -> Tuple[bool, Optional[str]]:
    """
    Check a badminton result.

    Returns:
        (is_valid, reason_if_not)
    """
    result, reason = parse_badminton_sets(sets)
    return result is not None, reason


def parse_badminton_sets(
    sets: List[Dict[str, Optional[int]]],
) -> Tuple[Optional[ValidatedResult], Optional[str]]:
    if not sets:
        return None, "At least one set must be entered"
    if len(sets) > MAX_SETS:
        return None, f"At most {MAX_SETS} sets are allowed"

    played: List[Tuple[int, int]] = []
    wins = {1: 0, 2: 0}
    for s in sets:
        team1 = s.get("team1")
        team2 = s.get("team2")
        if _is_empty(team1) and _is_empty(team2):
            continue

        for score in (team1, team2):
            if score is not None and score < 0:
                return None, "Scores cannot be negative"
            if score is not None and score > MAX_SCORE:
                return None, f"Maximum score is {MAX_SCORE} points"
        if team1 is None or team2 is None:
            return None, "Both teams must have a score"

        winner, reason = _set_winner(team1, team2)
        if winner is None:
            return None, reason
        wins[winner] += 1
        played.append((team1, team2))

    if wins[1] < SETS_TO_WIN and wins[2] < SETS_TO_WIN:
        return None, f"A team must have won at least {SETS_TO_WIN} sets"

    return ValidatedResult(sets=played, team1_sets_won=wins[1], team2_sets_won=wins[2]), None
