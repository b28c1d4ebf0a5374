"""
Override store — the typed override record layered on each goal.

One OverrideState per goal, persisted as a single JSON document in
`goal_overrides.payload`. Four independent parts:

  extensions    — stackable bonus minutes (puzzle-earned, or until a timestamp)
  restriction   — daily / weekly / one-time window that replaces base+legacy
  block_window  — time-of-day window during which the app stays shielded
  session       — at most one unlock mode: extra_time or one_session

Public API
----------
load_overrides(db, goal_id)              -> OverrideState
load_all_overrides(db)                   -> dict[int, OverrideState]
save_overrides(db, goal_id, state)       -> None   (flush only, no commit)
parse_payload(raw)                       -> OverrideState   (never raises)
"""
from __future__ import annotations

import enum
import logging
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from screenledger.models.goal_override import GoalOverride

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RestrictionPeriod(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    one_time = "one_time"


class ExtensionScope(str, enum.Enum):
    today = "today"   # counts for the calendar day it was granted
    until = "until"   # counts while now < expires_at


class SessionMode(str, enum.Enum):
    none = "none"
    extra_time = "extra_time"
    one_session = "one_session"


# ---------------------------------------------------------------------------
# Record parts
# ---------------------------------------------------------------------------

class Extension(BaseModel):
    granted_minutes: int = Field(ge=0)
    granted_at: datetime
    day: date
    scope: ExtensionScope = ExtensionScope.today
    expires_at: Optional[datetime] = None

    def is_active(self, now: datetime, today: date) -> bool:
        if self.scope == ExtensionScope.until:
            return self.expires_at is not None and now < self.expires_at
        return self.day == today


class RestrictionWindow(BaseModel):
    period: RestrictionPeriod
    limit_minutes: int
    start_date: date
    # None for daily restrictions: they stand until replaced.
    end_date: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        if self.period == RestrictionPeriod.daily:
            return False
        return self.end_date is not None and now >= self.end_date


class BlockWindow(BaseModel):
    start: time
    end: time

    def contains(self, moment: time) -> bool:
        current = moment.replace(tzinfo=None, second=0, microsecond=0)
        if self.start == self.end:
            return False
        if self.start > self.end:
            # Overnight, e.g. 21:00 → 09:00
            return current >= self.start or current < self.end
        return self.start <= current < self.end


class SessionState(BaseModel):
    mode: SessionMode = SessionMode.none
    activated_at: Optional[datetime] = None
    # extra_time only; one_session lasts until the app closes.
    expires_at: Optional[datetime] = None
    extension_minutes: int = 0

    def is_active(self, now: datetime) -> bool:
        if self.mode == SessionMode.none:
            return False
        if self.mode == SessionMode.extra_time:
            return self.expires_at is not None and now < self.expires_at
        return True


class OverrideState(BaseModel):
    extensions: list[Extension] = Field(default_factory=list)
    restriction: Optional[RestrictionWindow] = None
    block_window: Optional[BlockWindow] = None
    session: Optional[SessionState] = None

    # --- queries ------------------------------------------------------------

    def active_extensions(self, now: datetime, today: date) -> list[Extension]:
        return [e for e in self.extensions if e.is_active(now, today)]

    def extension_minutes(self, now: datetime, today: date) -> int:
        return sum(e.granted_minutes for e in self.active_extensions(now, today))

    def extensions_granted_on(self, day: date) -> int:
        return sum(1 for e in self.extensions if e.day == day)

    def active_session(self, now: datetime) -> Optional[SessionState]:
        if self.session is not None and self.session.is_active(now):
            return self.session
        return None

    # --- normalization ------------------------------------------------------

    def expire(self, now: datetime, today: date) -> list[str]:
        """
        Drop every part whose lifetime has ended. Returns labels of what went,
        for logging and the reset event list.
        """
        expired: list[str] = []

        kept = [e for e in self.extensions if e.is_active(now, today)]
        if len(kept) != len(self.extensions):
            expired.append("extensions")
            self.extensions = kept

        if self.restriction is not None and self.restriction.is_expired(now):
            expired.append(f"restriction:{self.restriction.period.value}")
            self.restriction = None

        if self.session is not None and not self.session.is_active(now) \
                and self.session.mode != SessionMode.one_session:
            expired.append("session")
            self.session = None

        return expired


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def parse_payload(raw: Optional[str]) -> OverrideState:
    """Decode a stored payload. A corrupt document is replaced by an empty one."""
    if not raw:
        return OverrideState()
    try:
        return OverrideState.model_validate_json(raw)
    except ValidationError:
        logger.warning("Discarding unreadable override payload: %r", raw[:200])
        return OverrideState()


def _row(db: Session, goal_id: int) -> Optional[GoalOverride]:
    return db.query(GoalOverride).filter(GoalOverride.goal_id == goal_id).first()


def load_overrides(db: Session, goal_id: int) -> OverrideState:
    row = _row(db, goal_id)
    return parse_payload(row.payload if row else None)


def load_all_overrides(db: Session) -> dict[int, OverrideState]:
    return {row.goal_id: parse_payload(row.payload) for row in db.query(GoalOverride).all()}


def save_overrides(db: Session, goal_id: int, state: OverrideState) -> None:
    """Upsert the whole record as one unit. Flush only; caller commits."""
    payload = state.model_dump_json()
    row = _row(db, goal_id)
    if row is None:
        db.add(GoalOverride(goal_id=goal_id, payload=payload))
    elif row.payload != payload:
        row.payload = payload
    db.flush()
