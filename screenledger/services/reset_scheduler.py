"""
Reset scheduler — day/week boundary normalization, run before every ledger
read or write.

Rules
-----
  WEEKLY crossing
    Trigger : today > period.end_date, or today's Monday != period.start_date
    Action  : flip the old period to is_current = False (kept, never touched
              again) and open a fresh Monday–Sunday period with
              failure_count = 0 and no failure timestamp.

  DAILY crossing
    Trigger : period.last_daily_reset_date is None or today > it
    Action  : credits back to full, failure timestamp and fee-paid marker
              cleared, elapsed overrides expired, pending base limits
              applied, streak days closed through yesterday,
              last_daily_reset_date = today.

Idempotency
-----------
Both triggers compare against fields the actions themselves set, so a
second call with the same `today` changes nothing and reports
changed = False.

Pure over in-memory objects: no session, no clock, no I/O. The caller
adds `outcome.period` to the session when it is new and persists the
override records listed in `outcome.overrides_changed`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from screenledger.models.goal import Goal
from screenledger.models.streak_state import StreakState
from screenledger.models.weekly_period import WeeklyPeriod, PENALTY_MODEL_FLAT_FEE
from screenledger.services import streak_tracker
from screenledger.services.override_store import OverrideState
from screenledger.services.penalty import FULL_CREDITS, clamp_credits

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event type constants
# ---------------------------------------------------------------------------

class ResetEvent:
    WEEKLY_RESET     = "weekly_reset"
    DAILY_RESET      = "daily_reset"
    OVERRIDE_EXPIRED = "override_expired"
    PENDING_APPLIED  = "pending_limit_applied"
    STREAK_CLOSED    = "streak_closed"


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class ResetOutcome:
    """What one normalize() call did."""
    period: WeeklyPeriod
    superseded: Optional[WeeklyPeriod] = None
    events: list[str] = field(default_factory=list)
    closed_days: list[date] = field(default_factory=list)
    overrides_changed: list[int] = field(default_factory=list)
    goals_changed: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.events)

    @property
    def daily_crossed(self) -> bool:
        return ResetEvent.DAILY_RESET in self.events


# ---------------------------------------------------------------------------
# Period construction
# ---------------------------------------------------------------------------

def week_bounds(day: date) -> tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def new_period(
    today: date,
    full_credits: int = FULL_CREDITS,
    last_daily_reset_date: Optional[date] = None,
) -> WeeklyPeriod:
    """A fresh current period for the week containing `today`."""
    start, end = week_bounds(today)
    return WeeklyPeriod(
        start_date=start,
        end_date=end,
        credits_remaining=full_credits,
        failure_count=0,
        last_failure_at=None,
        last_daily_reset_date=last_daily_reset_date,
        accountability_fee_paid_date=None,
        is_current=True,
        penalty_model_version=PENALTY_MODEL_FLAT_FEE,
    )


def is_new_week(period: WeeklyPeriod, today: date) -> bool:
    return today > period.end_date or week_bounds(today)[0] != period.start_date


def is_new_day(period: WeeklyPeriod, today: date) -> bool:
    return period.last_daily_reset_date is None or today > period.last_daily_reset_date


# ---------------------------------------------------------------------------
# Individual steps
# ---------------------------------------------------------------------------

def _roll_week(period: WeeklyPeriod, today: date, full_credits: int, outcome: ResetOutcome) -> WeeklyPeriod:
    period.is_current = False
    fresh = new_period(today, full_credits, last_daily_reset_date=period.last_daily_reset_date)
    logger.info(
        "Weekly reset: period %s..%s closed with %d failure(s); new period %s..%s",
        period.start_date, period.end_date, period.failure_count or 0,
        fresh.start_date, fresh.end_date,
    )
    outcome.superseded = period
    outcome.period = fresh
    outcome.events.append(ResetEvent.WEEKLY_RESET)
    return fresh


def _reset_credits(period: WeeklyPeriod, full_credits: int) -> None:
    period.credits_remaining = full_credits
    period.last_failure_at = None
    period.accountability_fee_paid_date = None
    period.failure_count = max(0, period.failure_count or 0)


def _expire_overrides(
    overrides: dict[int, OverrideState],
    now: datetime,
    today: date,
    outcome: ResetOutcome,
) -> None:
    for goal_id, state in overrides.items():
        expired = state.expire(now, today)
        if expired:
            logger.info("Goal %s: expired %s", goal_id, ", ".join(expired))
            outcome.overrides_changed.append(goal_id)
    if outcome.overrides_changed:
        outcome.events.append(ResetEvent.OVERRIDE_EXPIRED)


def _apply_pending_limits(goals: Iterable[Goal], now: datetime, outcome: ResetOutcome) -> None:
    for goal in goals:
        if goal.pending_limit_minutes is None:
            continue
        logger.info(
            "Goal %s: pending limit %d -> %d applied",
            goal.app_identifier, goal.base_daily_limit_minutes, goal.pending_limit_minutes,
        )
        goal.base_daily_limit_minutes = max(0, goal.pending_limit_minutes)
        goal.pending_limit_minutes = None
        goal.updated_at = now
        outcome.goals_changed.append(goal.id)
    if outcome.goals_changed:
        outcome.events.append(ResetEvent.PENDING_APPLIED)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def normalize(
    period: WeeklyPeriod,
    overrides: dict[int, OverrideState],
    goals: Iterable[Goal],
    streak: Optional[StreakState],
    now: datetime,
    today: date,
    full_credits: int = FULL_CREDITS,
    history_days: int = streak_tracker.DEFAULT_HISTORY_DAYS,
) -> ResetOutcome:
    """
    Bring the ledger up to `today`. Mutates the objects passed in and
    returns what changed; calling it again with the same `today` is a no-op.
    """
    outcome = ResetOutcome(period=period)

    # Out-of-range values are clamped, never raised.
    period.credits_remaining = clamp_credits(period.credits_remaining, full_credits)

    if is_new_week(period, today):
        period = _roll_week(period, today, full_credits, outcome)

    if not is_new_day(period, today):
        return outcome

    _reset_credits(period, full_credits)
    _expire_overrides(overrides, now, today, outcome)
    _apply_pending_limits(goals, now, outcome)

    if streak is not None:
        closed = streak_tracker.close_days_through(
            streak, today - timedelta(days=1), history_days
        )
        if closed:
            outcome.closed_days = closed
            outcome.events.append(ResetEvent.STREAK_CLOSED)

    period.last_daily_reset_date = today
    outcome.events.append(ResetEvent.DAILY_RESET)
    logger.info("Daily reset for %s: credits restored to %d", today, full_credits)
    return outcome
