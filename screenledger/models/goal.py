from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class Goal(Base):
    """A monitored app and its base daily budget. Soft-deleted via is_active."""

    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Opaque reference owned by the enforcement side (platform app token).
    app_identifier: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 0 is the "always blocked" sentinel, not an error.
    base_daily_limit_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Limit change requested mid-day; applied by the next daily reset.
    pending_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
