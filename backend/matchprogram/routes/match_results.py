from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from matchprogram.routes.deps import get_store, http_errors
from matchprogram.services.match_store import MatchStore

router = APIRouter()


class SetScore(BaseModel):
    team1: Optional[int] = None
    team2: Optional[int] = None


class MatchResultRequest(BaseModel):
    sets: List[SetScore]


class MatchResultResponse(BaseModel):
    id: int
    session_id: int
    round: int
    score_json: Optional[Dict[str, Any]] = None
    winner_team: Optional[int] = None
    ended_at: Optional[datetime] = None


@router.post("/matches/{match_id}/result", response_model=MatchResultResponse)
def record_match_result(
    match_id: int,
    payload: MatchResultRequest,
    store: MatchStore = Depends(get_store),
):
    """Store a badminton result (1-3 sets) for a saved match."""
    with http_errors():
        match = store.record_match_result(match_id, [s.model_dump() for s in payload.sets])
    return MatchResultResponse(
        id=match.id,
        session_id=match.session_id,
        round=match.round,
        score_json=match.score_json,
        winner_team=match.winner_team,
        ended_at=match.ended_at,
    )
