"""
StreakState — single row holding the streak counters and the rolling
"had at least one actively-blocked app" history.

activity_history: JSON object {"YYYY-MM-DD": bool}, pruned to the last
ACTIVITY_HISTORY_DAYS days.
"""
from datetime import datetime, date
from sqlalchemy import Integer, Text, DateTime, Date, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class StreakState(Base):
    __tablename__ = "streak_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Last day folded into the counters; guards against closing a day twice.
    last_closed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    activity_history: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
