from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from matchprogram.models.court import Court
    from matchprogram.models.match_player import MatchPlayer
    from matchprogram.models.training_session import TrainingSession


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("session_id", "round", "court_id", name="uq_match_session_round_court"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="trainingsession.id", index=True)
    court_id: int = Field(foreign_key="court.id")
    round: int = Field(default=1)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    ended_at: Optional[datetime] = None

    # Result (badminton sets); only set after validation
    score_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    winner_team: Optional[int] = Field(default=None)  # 1 | 2

    # Relationships
    session: "TrainingSession" = Relationship(back_populates="matches")
    court: "Court" = Relationship()
    players: List["MatchPlayer"] = Relationship(back_populates="match")
