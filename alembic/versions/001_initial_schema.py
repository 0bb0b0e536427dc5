"""Initial schema: player, tournament, match tables

Revision ID: 001_initial
Revises:
Create Date: 2024-06-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "player",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("profile_picture_url", sa.String(), nullable=False),
        sa.Column("preferred_cue", sa.String(length=100), nullable=True),
        sa.Column("ranking", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("ranking >= 0", name="ck_player_ranking_non_negative"),
    )

    op.create_table(
        "tournament",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "match",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("winner_id", sa.Uuid(), nullable=True),
        sa.Column("tournament_id", sa.Uuid(), nullable=True),
        sa.Column("player1_id", sa.Uuid(), nullable=False),
        sa.Column("player2_id", sa.Uuid(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("player1_score", sa.Integer(), nullable=True),
        sa.Column("player2_score", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["winner_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["player1_id"], ["player.id"]),
        sa.ForeignKeyConstraint(["player2_id"], ["player.id"]),
        sa.CheckConstraint("player1_id <> player2_id", name="ck_match_distinct_players"),
    )
    op.create_index("ix_match_scheduled_time", "match", ["scheduled_time"])
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_player1_id", "match", ["player1_id"])
    op.create_index("ix_match_player2_id", "match", ["player2_id"])


def downgrade() -> None:
    op.drop_index("ix_match_player2_id", table_name="match")
    op.drop_index("ix_match_player1_id", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_index("ix_match_scheduled_time", table_name="match")
    op.drop_table("match")
    op.drop_table("tournament")
    op.drop_table("player")
