"""add draft state to training session

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 12:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_session_draft"
down_revision: Union[str, None] = "001_match_program"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # In-progress rounds, rewritten after every command and cleared on end
    op.add_column("trainingsession", sa.Column("draft_json", sa.JSON(), nullable=True))


def downgrade() -> None:
    op.drop_column("trainingsession", "draft_json")
