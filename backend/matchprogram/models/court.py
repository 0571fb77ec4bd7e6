from typing import Optional

from sqlmodel import Field, SQLModel


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    idx: int = Field(unique=True, index=True)  # 1-based court number in the hall
