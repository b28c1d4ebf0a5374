"""add streak_state, daily_stats, pet_profiles, unlocked_achievements

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

streak_state and pet_profiles hold a single row each.
unlocked_achievements is append-only; the unique achievement_id keeps
unlocking idempotent.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

pet_type_enum = sa.Enum("dog", "cat", "bunny", "hamster", "horse", name="pet_type_enum")


def upgrade() -> None:
    op.create_table(
        "streak_state",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_closed_date", sa.Date(), nullable=True),
        sa.Column("activity_history", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "daily_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day", sa.Date(), nullable=False, unique=True),
        sa.Column("screen_time_minutes", sa.Integer(), nullable=True),
        sa.Column("puzzles_solved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("health_score", sa.Integer(), nullable=True),
        sa.Column("mood", sa.String(16), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "pet_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pet_type", pet_type_enum, nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("health_state", sa.String(16), nullable=False, server_default="fullHealth"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "unlocked_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("achievement_id", sa.String(64), nullable=False, unique=True),
        sa.Column(
            "unlocked_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("unlocked_achievements")
    op.drop_table("pet_profiles")
    pet_type_enum.drop(op.get_bind(), checkfirst=True)
    op.drop_table("daily_stats")
    op.drop_table("streak_state")
