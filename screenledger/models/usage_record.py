from datetime import datetime, date
from sqlalchemy import Integer, Boolean, DateTime, Date, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class UsageRecord(Base):
    """At most one row per (goal, day); created on the first usage report."""

    __tablename__ = "usage_records"
    __table_args__ = (
        UniqueConstraint("goal_id", "day", name="uq_usage_record_goal_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    goal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("goals.id"), nullable=False, index=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    actual_usage_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    did_exceed_limit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # One-off per-day bonus written by the legacy "extend today" flow.
    extended_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
