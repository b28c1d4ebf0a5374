"""
CreditTransaction — append-only audit trail of credit movements.

kind values:
  "breach_charged"  — first breach of the day, amount -7
  "breach_waived"   — later breach the same day (or after the fee), amount 0
  "fee_paid"        — accountability fee restored credits, amount +7
  "legacy_penalty"  — progressive-model deduction carried over by migration
  "legacy_credit"   — progressive-model top-up carried over by migration
"""
from datetime import datetime, date
import enum

from sqlalchemy import Integer, String, Text, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class TransactionKind(str, enum.Enum):
    breach_charged = "breach_charged"
    breach_waived = "breach_waived"
    fee_paid = "fee_paid"
    legacy_penalty = "legacy_penalty"
    legacy_credit = "legacy_credit"


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    period_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("weekly_periods.id"), nullable=True, index=True
    )
    goal_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("goals.id"), nullable=True, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    # NULL only on rows written before versioning existed.
    model_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
