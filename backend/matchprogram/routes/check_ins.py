from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from matchprogram.routes.deps import get_store, http_errors
from matchprogram.services.court_model import Participant, calculate_gender_breakdown
from matchprogram.services.match_program import MatchProgramRegistry, get_registry
from matchprogram.services.match_store import MatchStore

router = APIRouter()


class CheckInCreate(BaseModel):
    player_id: str
    max_rounds: Optional[int] = None  # 1 = one round only


class CheckedInPlayer(BaseModel):
    id: str
    name: str
    alias: Optional[str] = None
    display_name: str
    gender: Optional[str] = None
    primary_category: Optional[str] = None
    max_rounds: Optional[int] = None
    checked_in_at: Optional[datetime] = None


class CheckInListResponse(BaseModel):
    session_id: int
    players: List[CheckedInPlayer]
    gender_breakdown: Dict[str, int]


def participant_response(p: Participant) -> CheckedInPlayer:
    return CheckedInPlayer(
        id=p.id,
        name=p.name,
        alias=p.alias,
        display_name=p.display_name,
        gender=p.gender.value if p.gender else None,
        primary_category=p.primary_category.value if p.primary_category else None,
        max_rounds=p.max_rounds,
        checked_in_at=p.check_in_at,
    )


@router.get("/check-ins", response_model=CheckInListResponse)
def list_check_ins(
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
    participants = store.list_checked_in(program.session_id)
    return CheckInListResponse(
        session_id=program.session_id,
        players=[participant_response(p) for p in participants],
        gender_breakdown=calculate_gender_breakdown(participants),
    )


@router.post("/check-ins", response_model=CheckedInPlayer, status_code=201)
def check_in_player(
    payload: CheckInCreate,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        store.check_in(program.session_id, payload.player_id, payload.max_rounds)

    for p in store.list_checked_in(program.session_id):
        if p.id == payload.player_id:
            return participant_response(p)
    raise HTTPException(status_code=500, detail="Check-in was not stored")


@router.delete("/check-ins/{player_id}")
def check_out_player(
    player_id: str,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """Check a player out. Their place in already arranged rounds is kept."""
    with http_errors():
        program = registry.active(store)
        store.check_out(program.session_id, player_id)
    return {"ok": True}
