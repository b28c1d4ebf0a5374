"""
GoalOverride — every limit override layered on one goal, stored as a single
JSON document (see screenledger.services.override_store.OverrideState).

One row per goal. Extensions, the restriction window, the block window and
the session mode are read and written together so they can never drift
apart the way independent keys do.

payload: JSON-encoded OverrideState stored as Text (no dialect-specific JSON type).
"""
from datetime import datetime
from sqlalchemy import Integer, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class GoalOverride(Base):
    __tablename__ = "goal_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    goal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("goals.id"), nullable=False, unique=True, index=True
    )
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
