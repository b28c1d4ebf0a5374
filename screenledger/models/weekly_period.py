"""
WeeklyPeriod — one Monday–Sunday accountability window.

Exactly one row has is_current = True. When a new week begins the old row
is flipped to is_current = False and kept for reporting; it is never
mutated again.

penalty_model_version:
  1 — legacy progressive penalty (n-th failure of the week costs n credits)
  2 — flat accountability fee (first breach of the day zeroes credits)
"""
from datetime import datetime, date
from sqlalchemy import Integer, Boolean, DateTime, Date, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base

PENALTY_MODEL_PROGRESSIVE = 1
PENALTY_MODEL_FLAT_FEE = 2


class WeeklyPeriod(Base):
    __tablename__ = "weekly_periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    credits_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failure_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_daily_reset_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    accountability_fee_paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    penalty_model_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=PENALTY_MODEL_FLAT_FEE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
