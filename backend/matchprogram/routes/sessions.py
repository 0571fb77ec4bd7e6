"""
Training session lifecycle: start, look up, end.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from matchprogram.routes.deps import get_store, http_errors
from matchprogram.services.match_program import MatchProgramRegistry, get_registry
from matchprogram.services.match_store import MatchStore

router = APIRouter()


class TrainingSessionResponse(BaseModel):
    id: int
    status: str
    created_at: datetime
    ended_at: Optional[datetime] = None
    selected_round: Optional[int] = None


class StartSessionResponse(BaseModel):
    session: TrainingSessionResponse
    created: bool


class EndSessionResponse(BaseModel):
    session_id: int
    saved_courts_by_round: Dict[int, int]


@router.post("/sessions/start", response_model=StartSessionResponse)
def start_session(
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """Start training. If one is already running, it is returned instead."""
    with http_errors():
        program, created = registry.start(store)
        training = store.get_active_session()
    return StartSessionResponse(
        session=TrainingSessionResponse(
            id=training.id,
            status=training.status,
            created_at=training.created_at,
            ended_at=training.ended_at,
            selected_round=program.selected_round,
        ),
        created=created,
    )


@router.get("/sessions/active", response_model=TrainingSessionResponse)
def get_active_session(
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    training = store.get_active_session()
    if not training:
        raise HTTPException(status_code=404, detail="No active training session")
    with http_errors():
        program = registry.active(store)
    return TrainingSessionResponse(
        id=training.id,
        status=training.status,
        created_at=training.created_at,
        ended_at=training.ended_at,
        selected_round=program.selected_round,
    )


@router.post("/sessions/end", response_model=EndSessionResponse)
def end_session(
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """
    End training and persist every round that has players on a court.

    On a storage failure nothing is lost: the session stays active and the
    call can be retried (503).
    """
    with http_errors():
        session_id, saved = registry.end(store)
    return EndSessionResponse(session_id=session_id, saved_courts_by_round=saved)
