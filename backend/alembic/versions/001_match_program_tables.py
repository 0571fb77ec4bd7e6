"""Initial migration: create player, training session, check-in, court and match tables

Revision ID: 001_match_program
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_match_program"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Club roster
    op.create_table(
        "player",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("alias", sa.String(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("primary_category", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "trainingsession",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_trainingsession_status"), "trainingsession", ["status"], unique=False)

    op.create_table(
        "checkin",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.String(), nullable=False),
        sa.Column("max_rounds", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["trainingsession.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "player_id", name="uq_checkin_session_player"),
    )
    op.create_index(op.f("ix_checkin_session_id"), "checkin", ["session_id"], unique=False)

    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("idx", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_court_idx"), "court", ["idx"], unique=True)

    # Final court assignments, written once when training ends
    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("score_json", sa.JSON(), nullable=True),
        sa.Column("winner_team", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["session_id"], ["trainingsession.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "round", "court_id", name="uq_match_session_round_court"),
    )
    op.create_index(op.f("ix_match_session_id"), "match", ["session_id"], unique=False)

    op.create_table(
        "matchplayer",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.String(), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "slot", name="uq_matchplayer_match_slot"),
        sa.UniqueConstraint("match_id", "player_id", name="uq_matchplayer_match_player"),
    )
    op.create_index(op.f("ix_matchplayer_match_id"), "matchplayer", ["match_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_matchplayer_match_id"), table_name="matchplayer")
    op.drop_table("matchplayer")
    op.drop_index(op.f("ix_match_session_id"), table_name="match")
    op.drop_table("match")
    op.drop_index(op.f("ix_court_idx"), table_name="court")
    op.drop_table("court")
    op.drop_index(op.f("ix_checkin_session_id"), table_name="checkin")
    op.drop_table("checkin")
    op.drop_index(op.f("ix_trainingsession_status"), table_name="trainingsession")
    op.drop_table("trainingsession")
    op.drop_table("player")
