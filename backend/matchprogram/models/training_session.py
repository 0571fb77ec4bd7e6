from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from matchprogram.models.check_in import CheckIn
    from matchprogram.models.match import Match

SESSION_ACTIVE = "active"
SESSION_ENDED = "ended"


class TrainingSession(SQLModel, table=True):
    __tablename__ = "trainingsession"

    id: Optional[int] = Field(default=None, primary_key=True)
    status: str = Field(default=SESSION_ACTIVE, index=True)  # "active" | "ended"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    ended_at: Optional[datetime] = None

    # In-progress rounds (courts, locks, capacities, availability); cleared on end
    draft_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    # Relationships
    check_ins: List["CheckIn"] = Relationship(back_populates="session")
    matches: List["Match"] = Relationship(back_populates="session")
