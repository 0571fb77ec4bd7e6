"""
Durable storage for training sessions, check-ins and final matches.

This is the roster + persistence side of the match program. The engine only
talks to it at I/O boundaries: loading who is checked in, hydrating a round
that is not in memory, and committing the final rounds when training ends.
While a session runs only its draft (the in-memory round state as JSON on
the session row) is rewritten, so a restart can pick up where it left off.
Match tables are written once, at the end.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from matchprogram.models.check_in import CheckIn
from matchprogram.models.court import Court
from matchprogram.models.match import Match
from matchprogram.models.match_player import MatchPlayer
from matchprogram.models.player import Category, Gender, Player
from matchprogram.models.training_session import SESSION_ACTIVE, SESSION_ENDED, TrainingSession
from matchprogram.services.court_model import CourtSlots, Participant, SlotEntry
from matchprogram.services.match_result_validation import parse_badminton_sets
from matchprogram.utils.courts import ensure_all_courts, non_empty_courts

logger = logging.getLogger(__name__)


class MatchStoreError(Exception):
    """A storage call failed; in-memory state stays authoritative"""
    pass


class MatchNotFoundError(MatchStoreError):
    pass


class MatchResultError(Exception):
    """Submitted score is not a valid badminton result"""
    pass


class CheckInError(Exception):
    """Check-in or check-out rejected"""
    pass


def participant_from_rows(player: Player, check_in: Optional[CheckIn] = None) -> Participant:
    return Participant(
        id=player.id,
        name=player.name,
        alias=player.alias,
        gender=Gender(player.gender) if player.gender else None,
        primary_category=Category(player.primary_category) if player.primary_category else None,
        notes=player.notes,
        max_rounds=check_in.max_rounds if check_in else None,
        check_in_at=check_in.created_at if check_in else None,
    )


class MatchStore:
    """SQLModel-backed roster and match persistence."""

    def __init__(self, session: Session):
        self.session = session

    # ── Sessions ────────────────────────────────────────────────────────

    def get_active_session(self) -> Optional[TrainingSession]:
        return self.session.exec(
            select(TrainingSession)
            .where(TrainingSession.status == SESSION_ACTIVE)
            .order_by(TrainingSession.id.desc())
        ).first()

    def create_session(self) -> TrainingSession:
        training = TrainingSession(status=SESSION_ACTIVE)
        self.session.add(training)
        self.commit()
        self.session.refresh(training)
        return training

    def end_session(self, session_id: int) -> TrainingSession:
        """Mark the session ended (caller commits)."""
        try:
            training = self.session.get(TrainingSession, session_id)
            if not training:
                raise MatchStoreError(f"Training session {session_id} not found")

            ended_at = datetime.utcnow()
            training.status = SESSION_ENDED
            training.ended_at = ended_at
            training.draft_json = None
            self.session.add(training)

            matches = self.session.exec(select(Match).where(Match.session_id == session_id)).all()
            for match in matches:
                match.ended_at = ended_at
                self.session.add(match)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.exception("Failed to end training session %d", session_id)
            raise MatchStoreError(f"Could not end training session {session_id}: {e}") from e
        return training

    # ── Draft state ─────────────────────────────────────────────────────

    def load_draft(self, session_id: int) -> Optional[Dict[str, Any]]:
        """In-progress round state saved while training runs, if any."""
        training = self.session.get(TrainingSession, session_id)
        return training.draft_json if training else None

    def save_draft(self, session_id: int, draft: Dict[str, Any]) -> None:
        """Replace the session's draft state. Final match tables are untouched."""
        training = self.session.get(TrainingSession, session_id)
        if not training:
            raise MatchStoreError(f"Training session {session_id} not found")
        training.draft_json = draft
        self.session.add(training)
        self.commit()

    def load_participants(self, session_id: int, player_ids: Iterable[str]) -> Dict[str, Participant]:
        """Participants by id, with check-in data where the player is still checked in."""
        ids = set(player_ids)
        if not ids:
            return {}
        players = self.session.exec(select(Player).where(Player.id.in_(ids))).all()
        check_ins = {
            c.player_id: c
            for c in self.session.exec(
                select(CheckIn).where(CheckIn.session_id == session_id, CheckIn.player_id.in_(ids))
            ).all()
        }
        return {p.id: participant_from_rows(p, check_ins.get(p.id)) for p in players}

    # ── Roster ──────────────────────────────────────────────────────────

    def list_checked_in(self, session_id: int) -> List[Participant]:
        """Checked-in participants in check-in order."""
        rows = self.session.exec(
            select(CheckIn, Player)
            .join(Player, CheckIn.player_id == Player.id)
            .where(CheckIn.session_id == session_id)
            .order_by(CheckIn.created_at, CheckIn.id)
        ).all()
        return [participant_from_rows(player, check_in) for check_in, player in rows]

    def check_in(self, session_id: int, player_id: str, max_rounds: Optional[int] = None) -> CheckIn:
        player = self.session.get(Player, player_id)
        if not player:
            raise CheckInError(f"Player {player_id} not found")
        if not player.active:
            raise CheckInError(f"Player {player_id} is inactive")
        if max_rounds is not None and max_rounds != 1:
            raise CheckInError("max_rounds must be 1 or omitted (unlimited)")

        existing = self.session.exec(
            select(CheckIn).where(CheckIn.session_id == session_id, CheckIn.player_id == player_id)
        ).first()
        if existing:
            raise CheckInError(f"Player {player_id} is already checked in")

        check_in = CheckIn(session_id=session_id, player_id=player_id, max_rounds=max_rounds)
        self.session.add(check_in)
        self.commit()
        self.session.refresh(check_in)
        return check_in

    def check_out(self, session_id: int, player_id: str) -> None:
        check_in = self.session.exec(
            select(CheckIn).where(CheckIn.session_id == session_id, CheckIn.player_id == player_id)
        ).first()
        if not check_in:
            raise CheckInError(f"Player {player_id} is not checked in")
        self.session.delete(check_in)
        self.commit()

    # ── Courts and matches ──────────────────────────────────────────────

    def ensure_courts(self, max_courts: int) -> Dict[int, Court]:
        """Court rows 1..max_courts, created on first use."""
        courts = {c.idx: c for c in self.session.exec(select(Court)).all()}
        created = False
        for idx in range(1, max_courts + 1):
            if idx not in courts:
                court = Court(idx=idx)
                self.session.add(court)
                courts[idx] = court
                created = True
        if created:
            self.session.flush()
        return courts

    def load_round_matches(self, session_id: int, round_number: int, max_courts: int) -> List[CourtSlots]:
        """Persisted courts for a round, normalized to all configured courts."""
        try:
            matches = self.session.exec(
                select(Match).where(Match.session_id == session_id, Match.round == round_number)
            ).all()
            if not matches:
                return ensure_all_courts([], max_courts)

            check_ins = {
                c.player_id: c
                for c in self.session.exec(select(CheckIn).where(CheckIn.session_id == session_id)).all()
            }

            courts: List[CourtSlots] = []
            for match in matches:
                court = self.session.get(Court, match.court_id)
                if not court:
                    continue
                rows = self.session.exec(
                    select(MatchPlayer, Player)
                    .join(Player, MatchPlayer.player_id == Player.id)
                    .where(MatchPlayer.match_id == match.id)
                    .order_by(MatchPlayer.slot)
                ).all()
                slots = [
                    SlotEntry(slot=mp.slot, participant=participant_from_rows(player, check_ins.get(player.id)))
                    for mp, player in rows
                ]
                courts.append(CourtSlots(court_idx=court.idx, slots=slots))
        except SQLAlchemyError as e:
            logger.exception("Failed to load round %d for session %d", round_number, session_id)
            raise MatchStoreError(f"Could not load round {round_number}: {e}") from e

        return ensure_all_courts(courts, max_courts)

    def save_final_matches(self, session_id: int, round_number: int, courts: List[CourtSlots]) -> int:
        """
        Overwrite a round's matches with the final court list (caller commits).

        Empty courts are never written. Returns the number of courts saved.
        """
        to_save = non_empty_courts(courts)
        if not to_save:
            return 0

        try:
            existing = self.session.exec(
                select(Match).where(Match.session_id == session_id, Match.round == round_number)
            ).all()
            for match in existing:
                for mp in self.session.exec(select(MatchPlayer).where(MatchPlayer.match_id == match.id)).all():
                    self.session.delete(mp)
            self.session.flush()
            for match in existing:
                self.session.delete(match)
            self.session.flush()

            court_rows = self.ensure_courts(max(c.court_idx for c in to_save))
            for court in to_save:
                match = Match(session_id=session_id, court_id=court_rows[court.court_idx].id, round=round_number)
                self.session.add(match)
                self.session.flush()
                for entry in court.slots:
                    self.session.add(MatchPlayer(match_id=match.id, player_id=entry.participant.id, slot=entry.slot))
            self.session.flush()
        except SQLAlchemyError as e:
            logger.exception("Failed to save round %d for session %d", round_number, session_id)
            raise MatchStoreError(f"Could not save round {round_number}: {e}") from e

        return len(to_save)

    def record_match_result(self, match_id: int, sets: List[Dict[str, Optional[int]]]) -> Match:
        """Validate a badminton result and store it on a persisted match."""
        match = self.session.get(Match, match_id)
        if not match:
            raise MatchNotFoundError(f"Match {match_id} not found")

        result, reason = parse_badminton_sets(sets)
        if result is None:
            raise MatchResultError(reason)

        match.score_json = result.to_score_json()
        match.winner_team = result.winner_team
        self.session.add(match)
        self.commit()
        self.session.refresh(match)
        return match

    def list_rounds_with_matches(self, session_id: int) -> List[int]:
        rounds = self.session.exec(select(Match.round).where(Match.session_id == session_id).distinct()).all()
        return sorted(rounds)

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Commit failed")
            raise MatchStoreError(f"Could not write to the database: {e}") from e

    def rollback(self) -> None:
        self.session.rollback()
