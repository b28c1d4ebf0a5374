from datetime import datetime, date
from sqlalchemy import Integer, String, DateTime, Date, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class DailyStat(Base):
    """Per-day totals plus the health snapshot taken when the day closed."""

    __tablename__ = "daily_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False, unique=True, index=True)
    # NULL means the enforcement side has not reported yet, not zero usage.
    screen_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    puzzles_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    health_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mood: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
