"""
Match program endpoints: view a round and apply assignment commands.

Every command returns the round's fresh view so the client never has to
patch its own copy of the courts.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from matchprogram.routes.check_ins import CheckedInPlayer, participant_response
from matchprogram.routes.deps import get_store, http_errors
from matchprogram.services.court_model import CourtSlots, calculate_gender_breakdown, get_team_players
from matchprogram.services.match_program import MatchProgram, MatchProgramRegistry, RoundView, get_registry
from matchprogram.services.match_store import MatchStore
from matchprogram.services.pool_partitioner import SORT_GENDER_CATEGORY, VALID_SORT_TYPES
from matchprogram.utils.courts import court_capacity

router = APIRouter()


# ── Request models ──────────────────────────────────────────────────────


class MoveRequest(BaseModel):
    player_id: str
    court_idx: int
    slot: int


class MoveToCourtRequest(BaseModel):
    player_id: str
    court_idx: int


class PlayerRequest(BaseModel):
    player_id: str


class CapacityRequest(BaseModel):
    capacity: Optional[int] = None  # None resets to the default


# ── Response models ─────────────────────────────────────────────────────


class SlotResponse(BaseModel):
    slot: int
    player: CheckedInPlayer


class CourtResponse(BaseModel):
    court_idx: int
    capacity: int
    locked: bool
    duplicate: bool
    duplicate_player_ids: List[str]
    slots: List[SlotResponse]
    team1_ids: List[str]
    team2_ids: List[str]


class RoundResponse(BaseModel):
    session_id: int
    round: int
    selected_round: int
    has_run_auto_arrange: bool
    courts: List[CourtResponse]
    bench: List[CheckedInPlayer]
    inactive: List[CheckedInPlayer]
    bench_gender_breakdown: Dict[str, int]
    duplicates: Dict[str, Any]


class CommandResponse(BaseModel):
    round: RoundResponse
    swapped_with: Optional[str] = None
    displaced: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None


class PreviousRoundsResponse(BaseModel):
    round: int
    previous: Dict[int, List[CourtResponse]]


# ── Helpers ─────────────────────────────────────────────────────────────


def _court_response(
    program: MatchProgram,
    court: CourtSlots,
    round_number: int,
    view: Optional[RoundView] = None,
) -> CourtResponse:
    state = program.round_state(round_number)
    team1, team2 = get_team_players(court)
    flagged = view.duplicates.flagged_participants_by_court.get(court.court_idx, set()) if view else set()
    return CourtResponse(
        court_idx=court.court_idx,
        capacity=court_capacity(state.capacities, court.court_idx, program.default_capacity),
        locked=court.court_idx in state.locked_courts,
        duplicate=bool(flagged),
        duplicate_player_ids=sorted(flagged),
        slots=[
            SlotResponse(slot=entry.slot, player=participant_response(entry.participant))
            for entry in sorted(court.slots, key=lambda e: e.slot)
        ],
        team1_ids=[p.id for p in team1],
        team2_ids=[p.id for p in team2],
    )


def _round_response(program: MatchProgram, view: RoundView) -> RoundResponse:
    return RoundResponse(
        session_id=program.session_id,
        round=view.round_number,
        selected_round=program.selected_round,
        has_run_auto_arrange=view.has_run_auto_arrange,
        courts=[_court_response(program, court, view.round_number, view) for court in view.courts],
        bench=[participant_response(p) for p in view.bench],
        inactive=[participant_response(p) for p in view.inactive],
        bench_gender_breakdown=calculate_gender_breakdown(view.bench),
        duplicates=view.duplicates.to_dict(),
    )


def _respond(program: MatchProgram, store: MatchStore, round_number: int, **extra) -> CommandResponse:
    view = program.view(store, round_number)
    return CommandResponse(round=_round_response(program, view), **extra)


# ── Views ───────────────────────────────────────────────────────────────


@router.get("/match-program/rounds/{round_number}", response_model=RoundResponse)
def get_round(
    round_number: int,
    sort: str = Query(SORT_GENDER_CATEGORY, description=f"One of {sorted(VALID_SORT_TYPES)}"),
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """Select a round and return its courts, bench, inactive list and duplicate flags."""
    if sort not in VALID_SORT_TYPES:
        raise HTTPException(status_code=422, detail=f"Unknown sort type: {sort}")
    with http_errors():
        program = registry.active(store)
        view = program.select_round(store, round_number, sort)
        return _round_response(program, view)


@router.get("/match-program/rounds/{round_number}/previous", response_model=PreviousRoundsResponse)
def get_previous_rounds(
    round_number: int,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        previous = program.prior_rounds(store, round_number)
        return PreviousRoundsResponse(
            round=round_number,
            previous={
                r: [_court_response(program, court, r) for court in courts if court.slots]
                for r, courts in previous.items()
            },
        )


# ── Commands ────────────────────────────────────────────────────────────


@router.post("/match-program/rounds/{round_number}/move", response_model=CommandResponse)
def move_player(
    round_number: int,
    payload: MoveRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """Place a player in a slot, swapping with whoever is there."""
    with http_errors():
        program = registry.active(store)
        result = program.move_to_slot(store, payload.player_id, payload.court_idx, payload.slot, round_number)
        return _respond(
            program, store, round_number, swapped_with=result.swapped_with, displaced=result.displaced
        )


@router.post("/match-program/rounds/{round_number}/move-to-court", response_model=CommandResponse)
def move_player_to_court(
    round_number: int,
    payload: MoveToCourtRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        result = program.move_to_court(store, payload.player_id, payload.court_idx, round_number)
        return _respond(
            program, store, round_number, swapped_with=result.swapped_with, displaced=result.displaced
        )


@router.post("/match-program/rounds/{round_number}/bench", response_model=CommandResponse)
def move_player_to_bench(
    round_number: int,
    payload: PlayerRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """Back to the bench; a player dropped on the bench is available again."""
    with http_errors():
        program = registry.active(store)
        program.move_to_bench(store, payload.player_id, round_number)
        program.mark_available(store, payload.player_id, round_number)
        return _respond(program, store, round_number)


@router.post("/match-program/rounds/{round_number}/inactive", response_model=CommandResponse)
def move_player_to_inactive(
    round_number: int,
    payload: PlayerRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        program.move_to_inactive(store, payload.player_id, round_number)
        return _respond(program, store, round_number)


@router.post("/match-program/rounds/{round_number}/available", response_model=CommandResponse)
def mark_player_available(
    round_number: int,
    payload: PlayerRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        program.mark_available(store, payload.player_id, round_number)
        return _respond(program, store, round_number)


@router.post("/match-program/rounds/{round_number}/activate-one-round", response_model=CommandResponse)
def activate_one_round_player(
    round_number: int,
    payload: PlayerRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        program.activate_one_round(store, payload.player_id, round_number)
        return _respond(program, store, round_number)


@router.post("/match-program/rounds/{round_number}/auto-arrange", response_model=CommandResponse)
def auto_arrange_round(
    round_number: int,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    """First call fills empty courts and locks occupied ones; later calls reshuffle."""
    with http_errors():
        program = registry.active(store)
        result = program.auto_arrange(store, round_number)
        return _respond(program, store, round_number, summary=result.to_dict())


@router.post("/match-program/rounds/{round_number}/reset", response_model=CommandResponse)
def reset_round(
    round_number: int,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        program.reset_round(store, round_number)
        return _respond(program, store, round_number)


@router.post("/match-program/rounds/{round_number}/courts/{court_idx}/lock", response_model=CommandResponse)
def toggle_court_lock(
    round_number: int,
    court_idx: int,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        locked = program.toggle_court_lock(store, court_idx, round_number)
        return _respond(program, store, round_number, summary={"court_idx": court_idx, "locked": locked})


@router.post("/match-program/rounds/{round_number}/courts/{court_idx}/capacity", response_model=CommandResponse)
def set_court_capacity(
    round_number: int,
    court_idx: int,
    payload: CapacityRequest,
    store: MatchStore = Depends(get_store),
    registry: MatchProgramRegistry = Depends(get_registry),
):
    with http_errors():
        program = registry.active(store)
        capacity = program.set_court_capacity(store, court_idx, payload.capacity, round_number)
        return _respond(program, store, round_number, summary={"court_idx": court_idx, "capacity": capacity})
