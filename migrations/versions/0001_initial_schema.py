"""initial schema: periods, goals, usage, overrides, transactions

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Core ledger tables. credit_transactions starts without kind/model_version;
those arrive in 0003 together with the flat-fee model.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "weekly_periods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("credits_remaining", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_failure_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_daily_reset_date", sa.Date(), nullable=True),
        sa.Column("accountability_fee_paid_date", sa.Date(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_weekly_periods_start_date", "weekly_periods", ["start_date"])
    op.create_index("ix_weekly_periods_is_current", "weekly_periods", ["is_current"])

    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("app_identifier", sa.String(256), nullable=False),
        sa.Column("display_name", sa.String(128), nullable=False),
        sa.Column("base_daily_limit_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pending_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_goals_app_identifier", "goals", ["app_identifier"])

    op.create_table(
        "usage_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("actual_usage_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("did_exceed_limit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("extended_limit_minutes", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("goal_id", "day", name="uq_usage_record_goal_day"),
    )
    op.create_index("ix_usage_records_goal_id", "usage_records", ["goal_id"])
    op.create_index("ix_usage_records_day", "usage_records", ["day"])

    op.create_table(
        "goal_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id"), nullable=False, unique=True),
        sa.Column("payload", sa.Text(), nullable=False, server_default="{}"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("weekly_periods.id"), nullable=True),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id"), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_credit_transactions_period_id", "credit_transactions", ["period_id"])
    op.create_index("ix_credit_transactions_goal_id", "credit_transactions", ["goal_id"])
    op.create_index("ix_credit_transactions_day", "credit_transactions", ["day"])


def downgrade() -> None:
    op.drop_index("ix_credit_transactions_day", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_goal_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_period_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")
    op.drop_table("goal_overrides")
    op.drop_index("ix_usage_records_day", table_name="usage_records")
    op.drop_index("ix_usage_records_goal_id", table_name="usage_records")
    op.drop_table("usage_records")
    op.drop_index("ix_goals_app_identifier", table_name="goals")
    op.drop_table("goals")
    op.drop_index("ix_weekly_periods_is_current", table_name="weekly_periods")
    op.drop_index("ix_weekly_periods_start_date", table_name="weekly_periods")
    op.drop_table("weekly_periods")
