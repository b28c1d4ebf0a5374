"""version the penalty model: transaction kind/model_version, period model

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-18

Existing transactions keep model_version NULL here; the ledger's startup
migration tags them as progressive-model history (version 1) instead of
deleting them. Existing periods are marked version 1 so the same step
can move the current one onto the flat-fee model.
"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("credit_transactions", sa.Column("kind", sa.String(32), nullable=True))
    op.add_column("credit_transactions", sa.Column("model_version", sa.Integer(), nullable=True))
    op.create_index("ix_credit_transactions_kind", "credit_transactions", ["kind"])

    op.add_column(
        "weekly_periods",
        sa.Column("penalty_model_version", sa.Integer(), nullable=False, server_default="1"),
    )
    # New rows default to the flat-fee model.
    op.alter_column("weekly_periods", "penalty_model_version", server_default="2")


def downgrade() -> None:
    op.drop_column("weekly_periods", "penalty_model_version")
    op.drop_index("ix_credit_transactions_kind", table_name="credit_transactions")
    op.drop_column("credit_transactions", "model_version")
    op.drop_column("credit_transactions", "kind")
