"""
Limit resolver — the effective daily budget of one goal at one instant.

Precedence (highest first)
--------------------------
  1. ONE_SESSION   active                → base limit exactly, every bonus suppressed
  2. EXTRA_TIME    unexpired             → base + session extension (default 15)
                                           + active extensions
  3. candidate                           = base + active extensions
                                           + max(0, usage.extended_limit_minutes)
  4. RESTRICTION   present
       one-time / weekly past end_date   → dropped from the record, use candidate
       otherwise                         → max(limit, 0) + active extensions
  5. otherwise                           → candidate

A base limit of 0 means "always blocked" unless a session mode or an
extension lifts it.

The block window never changes the minute value; it only flags the app as
blocked while the local time is inside it.

The resolver mutates nothing but `overrides.restriction` (step 4 purge); the
caller persists the record when `restriction_expired` is set.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from screenledger.models.goal import Goal
from screenledger.models.usage_record import UsageRecord
from screenledger.services.override_store import OverrideState, SessionMode

DEFAULT_EXTRA_TIME_MINUTES = 15


class LimitBasis:
    ONE_SESSION = "one_session"
    EXTRA_TIME  = "extra_time"
    RESTRICTION = "restriction"
    BASE        = "base"


@dataclass
class LimitDecision:
    goal_id: int
    app_identifier: str
    minutes: int
    basis: str
    base_minutes: int
    extension_minutes: int
    in_block_window: bool
    restriction_expired: bool = False

    @property
    def is_blocked(self) -> bool:
        return self.minutes <= 0 or self.in_block_window


def resolve_limit(
    goal: Goal,
    overrides: OverrideState,
    usage_record: Optional[UsageRecord],
    now: datetime,
    today: Optional[date] = None,
    default_extra_minutes: int = DEFAULT_EXTRA_TIME_MINUTES,
) -> LimitDecision:
    day = today or now.date()
    base = max(0, goal.base_daily_limit_minutes or 0)
    extension = overrides.extension_minutes(now, day)
    in_window = (
        overrides.block_window is not None
        and overrides.block_window.contains(now.timetz())
    )

    def decision(minutes: int, basis: str, expired: bool = False) -> LimitDecision:
        return LimitDecision(
            goal_id=goal.id,
            app_identifier=goal.app_identifier,
            minutes=max(0, minutes),
            basis=basis,
            base_minutes=base,
            extension_minutes=extension,
            in_block_window=in_window,
            restriction_expired=expired,
        )

    session = overrides.active_session(now)
    if session is not None and session.mode == SessionMode.one_session:
        # One session means exactly the original allowance.
        return LimitDecision(
            goal_id=goal.id,
            app_identifier=goal.app_identifier,
            minutes=base,
            basis=LimitBasis.ONE_SESSION,
            base_minutes=base,
            extension_minutes=0,
            in_block_window=False,
        )

    if session is not None and session.mode == SessionMode.extra_time:
        bonus = session.extension_minutes or default_extra_minutes
        return decision(base + bonus + extension, LimitBasis.EXTRA_TIME)

    legacy = 0
    if usage_record is not None and usage_record.extended_limit_minutes:
        legacy = max(0, usage_record.extended_limit_minutes)
    candidate = base + extension + legacy

    restriction = overrides.restriction
    if restriction is not None:
        if restriction.is_expired(now):
            overrides.restriction = None
            return decision(candidate, LimitBasis.BASE, expired=True)
        return decision(max(restriction.limit_minutes, 0) + extension, LimitBasis.RESTRICTION)

    return decision(candidate, LimitBasis.BASE)


def effective_limit(
    goal: Goal,
    overrides: OverrideState,
    usage_record: Optional[UsageRecord],
    now: datetime,
    today: Optional[date] = None,
) -> int:
    """Minutes only; see resolve_limit for the full decision."""
    return resolve_limit(goal, overrides, usage_record, now, today).minutes
