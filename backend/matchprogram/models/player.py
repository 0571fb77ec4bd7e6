from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class Gender(str, Enum):
    # Declaration order is the bench/inactive display order
    female = "Dame"
    male = "Herre"


class Category(str, Enum):
    double = "Double"
    both = "Begge"
    single = "Single"


class Player(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    name: str
    alias: Optional[str] = None
    gender: Optional[Gender] = Field(default=None, sa_column=Column(String, nullable=True))
    primary_category: Optional[Category] = Field(default=None, sa_column=Column(String, nullable=True))
    notes: Optional[str] = None
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
