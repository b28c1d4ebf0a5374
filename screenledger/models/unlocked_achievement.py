from datetime import datetime
from sqlalchemy import Integer, String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class UnlockedAchievement(Base):
    """Append-only. Unique achievement_id makes unlocking idempotent."""

    __tablename__ = "unlocked_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    achievement_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
