"""
Match program: round/session lifecycle for one training evening.

Owns the in-memory state of an active training session:
- one court snapshot per round (the source of truth until training ends)
- per-round locked courts, capacity overrides, unavailable players and
  one-round activations (none of these carry over between rounds)

Every command is applied synchronously to the snapshot and fully completed
(swap partner included) before anything reads it again. Durable storage is
touched to hydrate rounds that are not in memory, to save the session's
draft after every command (so a restart can reattach without losing work)
and, once, to write the final matches when the session ends.

Lifecycle: inactive -> active -> ended. Ending is terminal; a new session
must be started afterwards.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from matchprogram.config import DEFAULT_COURT_CAPACITY, MAX_COURTS, MAX_ROUNDS
from matchprogram.services.court_model import (
    CourtSlots,
    Participant,
    SlotEntry,
    copy_courts,
    get_assigned_ids,
)
from matchprogram.services.duplicate_detector import DuplicateReport, find_duplicate_matchups
from matchprogram.services.match_store import MatchStore, MatchStoreError
from matchprogram.services.pool_partitioner import SORT_GENDER_CATEGORY, partition
from matchprogram.utils.auto_assign import AutoArrangeResult, auto_arrange, resolve_excluded_courts
from matchprogram.utils.courts import (
    court_capacity,
    ensure_all_courts,
    non_empty_courts,
    validate_capacity_override,
)
from matchprogram.utils.manual_assignment import (
    CourtCapacityError,
    MoveResult,
    UnknownParticipantError,
    clear_courts,
    move_to_bench,
    move_to_court,
    move_to_inactive,
    move_to_slot,
)

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_ENDED = "ended"


class MatchProgramError(Exception):
    """Base exception for match program lifecycle errors"""
    pass


class NoActiveSessionError(MatchProgramError):
    pass


class SessionEndedError(MatchProgramError):
    pass


class InvalidRoundError(MatchProgramError):
    pass


class SessionEndError(MatchProgramError):
    """Final commit failed; the in-memory session is kept so it can be retried"""
    pass


@dataclass
class RoundState:
    courts: Optional[List[CourtSlots]] = None  # None until loaded this session
    locked_courts: Set[int] = field(default_factory=set)
    capacities: Dict[int, int] = field(default_factory=dict)
    unavailable: Set[str] = field(default_factory=set)
    activations: Set[str] = field(default_factory=set)
    has_run_auto_arrange: bool = False


def draft_participant_ids(draft: Dict[str, Any]) -> Set[str]:
    """Every player placed on a court somewhere in a saved draft."""
    return {
        row["participant_id"]
        for saved in (draft.get("rounds") or {}).values()
        for row in saved.get("slots") or []
    }


@dataclass
class RoundView:
    """Everything the presentation layer needs to draw one round."""
    round_number: int
    courts: List[CourtSlots]
    bench: List[Participant]
    inactive: List[Participant]
    duplicates: DuplicateReport
    locked_courts: Set[int]
    capacities: Dict[int, int]
    has_run_auto_arrange: bool


class MatchProgram:
    def __init__(
        self,
        session_id: int,
        max_courts: int = MAX_COURTS,
        max_rounds: int = MAX_ROUNDS,
        default_capacity: int = DEFAULT_COURT_CAPACITY,
        fresh: bool = False,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            session_id: TrainingSession id
            fresh: True for a newly created session (every round starts empty);
                False when attaching to an existing one (rounds hydrate lazily)
            rng: Source of randomness for reshuffles
        """
        self.session_id = session_id
        self.max_courts = max_courts
        self.max_rounds = max_rounds
        self.default_capacity = default_capacity
        self.status = STATUS_ACTIVE
        self.selected_round = 1
        self._rng = rng or random.Random()
        self._rounds: Dict[int, RoundState] = {n: RoundState() for n in range(1, max_rounds + 1)}
        if fresh:
            for state in self._rounds.values():
                state.courts = ensure_all_courts([], max_courts)

    # ── Round access ────────────────────────────────────────────────────

    def _require_active(self) -> None:
        if self.status != STATUS_ACTIVE:
            raise SessionEndedError(f"Training session {self.session_id} has ended")

    def _round(self, round_number: Optional[int]) -> Tuple[int, RoundState]:
        n = self.selected_round if round_number is None else round_number
        if n not in self._rounds:
            raise InvalidRoundError(f"Round must be between 1 and {self.max_rounds}, got {n}")
        return n, self._rounds[n]

    def _courts(self, store: MatchStore, round_number: int) -> List[CourtSlots]:
        """Round snapshot from memory, hydrated from storage the first time."""
        state = self._rounds[round_number]
        if state.courts is None:
            state.courts = store.load_round_matches(self.session_id, round_number, self.max_courts)
            logger.debug("Hydrated round %d of session %d from storage", round_number, self.session_id)
        return state.courts

    def _set_courts(self, round_number: int, courts: List[CourtSlots]) -> None:
        self._rounds[round_number].courts = ensure_all_courts(courts, self.max_courts)

    def _participant(self, store: MatchStore, participant_id: str) -> Participant:
        for participant in store.list_checked_in(self.session_id):
            if participant.id == participant_id:
                return participant
        raise UnknownParticipantError(f"Player {participant_id} is not checked in")

    def is_loaded(self, round_number: int) -> bool:
        return self._rounds[round_number].courts is not None

    def round_state(self, round_number: int) -> RoundState:
        return self._round(round_number)[1]

    # ── Draft state ─────────────────────────────────────────────────────

    def to_draft(self) -> Dict[str, Any]:
        """JSON-safe copy of the in-memory rounds. Unloaded rounds keep slots None."""
        rounds: Dict[str, Any] = {}
        for n, state in self._rounds.items():
            slots = None
            if state.courts is not None:
                slots = [
                    {"court_idx": court.court_idx, "slot": entry.slot, "participant_id": entry.participant.id}
                    for court in state.courts
                    for entry in court.slots
                ]
            rounds[str(n)] = {
                "slots": slots,
                "locked_courts": sorted(state.locked_courts),
                "capacities": {str(idx): cap for idx, cap in state.capacities.items()},
                "unavailable": sorted(state.unavailable),
                "activations": sorted(state.activations),
                "has_run_auto_arrange": state.has_run_auto_arrange,
            }
        return {"selected_round": self.selected_round, "rounds": rounds}

    def restore_draft(self, draft: Dict[str, Any], participants: Dict[str, Participant]) -> None:
        """
        Load rounds saved by to_draft.

        Players that no longer exist are left off their court with a warning;
        rounds outside the configured range are ignored.
        """
        for key, saved in (draft.get("rounds") or {}).items():
            n = int(key)
            if n not in self._rounds:
                logger.warning("Ignoring saved round %d for session %d", n, self.session_id)
                continue

            state = RoundState(
                locked_courts={idx for idx in saved.get("locked_courts", []) if 1 <= idx <= self.max_courts},
                capacities={int(idx): cap for idx, cap in (saved.get("capacities") or {}).items()},
                unavailable=set(saved.get("unavailable", [])),
                activations=set(saved.get("activations", [])),
                has_run_auto_arrange=bool(saved.get("has_run_auto_arrange", False)),
            )
            if saved.get("slots") is not None:
                by_idx: Dict[int, CourtSlots] = {}
                for row in saved["slots"]:
                    participant = participants.get(row["participant_id"])
                    if participant is None:
                        logger.warning(
                            "Player %s from saved round %d no longer exists; left off court %d",
                            row["participant_id"],
                            n,
                            row["court_idx"],
                        )
                        continue
                    court = by_idx.setdefault(row["court_idx"], CourtSlots(court_idx=row["court_idx"], slots=[]))
                    court.slots.append(SlotEntry(slot=row["slot"], participant=participant))
                state.courts = ensure_all_courts(list(by_idx.values()), self.max_courts)
            self._rounds[n] = state

        selected = draft.get("selected_round")
        if selected in self._rounds:
            self.selected_round = selected
        logger.info("Restored draft rounds for training session %d", self.session_id)

    def _save_draft(self, store: MatchStore) -> None:
        try:
            store.save_draft(self.session_id, self.to_draft())
        except MatchStoreError as e:
            # Memory stays authoritative; the next command tries again
            logger.warning("Could not save draft for training session %d: %s", self.session_id, e)

    # ── Views ───────────────────────────────────────────────────────────

    def select_round(self, store: MatchStore, round_number: int, sort_type: str = SORT_GENDER_CATEGORY) -> RoundView:
        """Switch the visible round. Never mutates a snapshot."""
        self._require_active()
        n, _ = self._round(round_number)
        self.selected_round = n
        self._save_draft(store)
        return self.view(store, n, sort_type)

    def courts(self, store: MatchStore, round_number: Optional[int] = None) -> List[CourtSlots]:
        n, _ = self._round(round_number)
        return copy_courts(self._courts(store, n))

    def prior_rounds(self, store: MatchStore, round_number: Optional[int] = None) -> Dict[int, List[CourtSlots]]:
        """Court lists of every round before the given one."""
        n, _ = self._round(round_number)
        return {r: copy_courts(self._courts(store, r)) for r in range(1, n)}

    def detect_duplicates(self, store: MatchStore, round_number: Optional[int] = None) -> DuplicateReport:
        n, _ = self._round(round_number)
        report = find_duplicate_matchups(self._courts(store, n), self.prior_rounds(store, n), n)
        if report.courts_flagged:
            logger.info(
                "Round %d of session %d repeats groupings on courts %s",
                n,
                self.session_id,
                sorted(report.courts_flagged),
            )
        return report

    def view(
        self,
        store: MatchStore,
        round_number: Optional[int] = None,
        sort_type: str = SORT_GENDER_CATEGORY,
    ) -> RoundView:
        self._require_active()
        n, state = self._round(round_number)
        courts = self._courts(store, n)
        pools = partition(
            store.list_checked_in(self.session_id),
            get_assigned_ids(courts),
            n,
            state.unavailable,
            state.activations,
            sort_type,
        )
        return RoundView(
            round_number=n,
            courts=copy_courts(courts),
            bench=pools.bench,
            inactive=pools.inactive,
            duplicates=self.detect_duplicates(store, n),
            locked_courts=set(state.locked_courts),
            capacities=dict(state.capacities),
            has_run_auto_arrange=state.has_run_auto_arrange,
        )

    # ── Assignment commands ─────────────────────────────────────────────

    def move_to_slot(
        self,
        store: MatchStore,
        participant_id: str,
        court_idx: int,
        slot: int,
        round_number: Optional[int] = None,
    ) -> MoveResult:
        self._require_active()
        n, state = self._round(round_number)
        participant = self._participant(store, participant_id)
        result = move_to_slot(
            self._courts(store, n),
            participant,
            court_idx,
            slot,
            self.max_courts,
            state.capacities,
            self.default_capacity,
            state.locked_courts,
        )
        self._set_courts(n, result.courts)
        self._save_draft(store)
        return result

    def move_to_court(
        self,
        store: MatchStore,
        participant_id: str,
        court_idx: int,
        round_number: Optional[int] = None,
    ) -> MoveResult:
        self._require_active()
        n, state = self._round(round_number)
        participant = self._participant(store, participant_id)
        result = move_to_court(
            self._courts(store, n),
            participant,
            court_idx,
            self.max_courts,
            state.capacities,
            self.default_capacity,
            state.locked_courts,
        )
        self._set_courts(n, result.courts)
        self._save_draft(store)
        return result

    def move_to_bench(self, store: MatchStore, participant_id: str, round_number: Optional[int] = None) -> None:
        self._require_active()
        n, _ = self._round(round_number)
        self._set_courts(n, move_to_bench(self._courts(store, n), participant_id, self.max_courts))
        self._save_draft(store)

    def move_to_inactive(self, store: MatchStore, participant_id: str, round_number: Optional[int] = None) -> None:
        self._require_active()
        n, state = self._round(round_number)
        courts, state.unavailable = move_to_inactive(
            self._courts(store, n), participant_id, state.unavailable, self.max_courts
        )
        self._set_courts(n, courts)
        self._save_draft(store)

    def mark_available(self, store: MatchStore, participant_id: str, round_number: Optional[int] = None) -> None:
        self._require_active()
        _, state = self._round(round_number)
        state.unavailable.discard(participant_id)
        self._save_draft(store)

    def activate_one_round(self, store: MatchStore, participant_id: str, round_number: Optional[int] = None) -> None:
        """Let a one-round player onto the bench for this round."""
        self._require_active()
        n, state = self._round(round_number)
        self._participant(store, participant_id)
        self.move_to_bench(store, participant_id, n)
        state.unavailable.discard(participant_id)
        state.activations.add(participant_id)
        self._save_draft(store)

    def auto_arrange(self, store: MatchStore, round_number: Optional[int] = None) -> AutoArrangeResult:
        """
        Fill the round's free courts from the bench.

        The first pass keeps every occupied court and locks it; later passes
        (reshuffles) redistribute everything that is not locked.
        """
        self._require_active()
        n, state = self._round(round_number)
        courts = self._courts(store, n)
        is_reshuffle = state.has_run_auto_arrange

        # Players on courts about to be cleared count as bench for this pass
        excluded, _ = resolve_excluded_courts(courts, state.locked_courts, is_reshuffle)
        working = set(range(1, self.max_courts + 1)) - excluded
        base = clear_courts(courts, working, self.max_courts)
        pools = partition(
            store.list_checked_in(self.session_id),
            get_assigned_ids(base),
            n,
            state.unavailable,
            state.activations,
        )

        result = auto_arrange(
            n,
            pools.bench,
            state.locked_courts,
            is_reshuffle,
            courts,
            self.max_courts,
            state.capacities,
            self.default_capacity,
            rng=self._rng if is_reshuffle else None,
        )
        state.locked_courts |= result.auto_locked_courts
        state.has_run_auto_arrange = True
        self._set_courts(n, result.courts)
        self._save_draft(store)
        return result

    def reset_round(self, store: MatchStore, round_number: Optional[int] = None) -> None:
        """Clear every court of the round except the locked ones."""
        self._require_active()
        n, state = self._round(round_number)
        unlocked = set(range(1, self.max_courts + 1)) - state.locked_courts
        self._set_courts(n, clear_courts(self._courts(store, n), unlocked, self.max_courts))
        self._save_draft(store)

    def toggle_court_lock(self, store: MatchStore, court_idx: int, round_number: Optional[int] = None) -> bool:
        """Returns True if the court is now locked."""
        self._require_active()
        _, state = self._round(round_number)
        if not 1 <= court_idx <= self.max_courts:
            raise CourtCapacityError(f"Court {court_idx} does not exist (courts 1-{self.max_courts})")
        if court_idx in state.locked_courts:
            state.locked_courts.discard(court_idx)
        else:
            state.locked_courts.add(court_idx)
        self._save_draft(store)
        return court_idx in state.locked_courts

    def set_court_capacity(
        self,
        store: MatchStore,
        court_idx: int,
        capacity: Optional[int],
        round_number: Optional[int] = None,
    ) -> int:
        """
        Set (or clear with None) a court's capacity for one round.

        Returns the court's effective capacity.
        """
        self._require_active()
        n, state = self._round(round_number)
        if not 1 <= court_idx <= self.max_courts:
            raise CourtCapacityError(f"Court {court_idx} does not exist (courts 1-{self.max_courts})")

        valid, reason = validate_capacity_override(capacity)
        if not valid:
            raise CourtCapacityError(reason)

        new_capacity = self.default_capacity if capacity is None else capacity
        court = self._courts(store, n)[court_idx - 1]
        highest = max((entry.slot for entry in court.slots), default=-1)
        if highest >= new_capacity:
            raise CourtCapacityError(
                f"Court {court_idx} has a player in slot {highest}; move them before reducing capacity to {new_capacity}"
            )

        if new_capacity == self.default_capacity:
            state.capacities.pop(court_idx, None)
        else:
            state.capacities[court_idx] = new_capacity
        self._save_draft(store)
        return court_capacity(state.capacities, court_idx, self.default_capacity)

    # ── Lifecycle ───────────────────────────────────────────────────────

    def end(self, store: MatchStore) -> Dict[int, int]:
        """
        Persist every non-empty round and end the session.

        Returns {round: courts_saved}. On a storage failure nothing in memory
        is discarded and SessionEndError is raised so the user can retry.
        """
        self._require_active()
        saved: Dict[int, int] = {}
        try:
            for n, state in sorted(self._rounds.items()):
                if not state.courts or not non_empty_courts(state.courts):
                    continue
                saved[n] = store.save_final_matches(self.session_id, n, state.courts)
            store.end_session(self.session_id)
            store.commit()
        except MatchStoreError as e:
            store.rollback()
            logger.warning("Ending training session %d failed: %s", self.session_id, e)
            raise SessionEndError("Training not ended, try again") from e

        self._rounds = {}
        self.status = STATUS_ENDED
        logger.info("Training session %d ended; saved rounds %s", self.session_id, saved)
        return saved


class MatchProgramRegistry:
    """In-memory match programs keyed by training session id."""

    def __init__(
        self,
        max_courts: int = MAX_COURTS,
        max_rounds: int = MAX_ROUNDS,
        default_capacity: int = DEFAULT_COURT_CAPACITY,
    ):
        self.max_courts = max_courts
        self.max_rounds = max_rounds
        self.default_capacity = default_capacity
        self._programs: Dict[int, MatchProgram] = {}

    def _new_program(self, session_id: int, fresh: bool) -> MatchProgram:
        program = MatchProgram(
            session_id,
            max_courts=self.max_courts,
            max_rounds=self.max_rounds,
            default_capacity=self.default_capacity,
            fresh=fresh,
        )
        self._programs[session_id] = program
        return program

    def start(self, store: MatchStore) -> Tuple[MatchProgram, bool]:
        """
        Start training, or return the one already running.

        Returns (program, created).
        """
        active = store.get_active_session()
        if active:
            return self.active(store), False

        training = store.create_session()
        logger.info("Training session %d started", training.id)
        return self._new_program(training.id, fresh=True), True

    def active(self, store: MatchStore) -> MatchProgram:
        active = store.get_active_session()
        if not active:
            raise NoActiveSessionError("No active training session")
        program = self._programs.get(active.id)
        if program is None:
            # e.g. after a restart: reattach from the saved draft; rounds without
            # one hydrate from storage on demand
            program = self._new_program(active.id, fresh=False)
            draft = store.load_draft(active.id)
            if draft:
                participants = store.load_participants(active.id, draft_participant_ids(draft))
                program.restore_draft(draft, participants)
        return program

    def end(self, store: MatchStore) -> Tuple[int, Dict[int, int]]:
        """End the active training. Returns (session_id, {round: courts_saved})."""
        program = self.active(store)
        saved = program.end(store)
        self._programs.pop(program.session_id, None)
        return program.session_id, saved

    def clear(self) -> None:
        self._programs.clear()


registry = MatchProgramRegistry()


def get_registry() -> MatchProgramRegistry:
    return registry
