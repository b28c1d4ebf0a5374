"""
Streak tracker — consecutive days with at least one actively-blocked app.

mark_day_activity may run any number of times a day (upsert keyed by
date); only the last value counts when the day is closed. close_day runs
once per day from the reset scheduler and refuses to fold the same day
twice.

Back-compat shim: a ledger that has no activity history at all but
carries a nonzero streak from an older version keeps its streak for the
missing day instead of being reset.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from screenledger.models.streak_state import StreakState

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DAYS = 14


@dataclass
class StreakSnapshot:
    current_streak: int
    longest_streak: int
    last_closed_date: Optional[date]
    history: dict[date, bool]


# ---------------------------------------------------------------------------
# History (de)serialization
# ---------------------------------------------------------------------------

def read_history(streak: StreakState) -> dict[date, bool]:
    if not streak.activity_history:
        return {}
    try:
        raw = json.loads(streak.activity_history)
    except (ValueError, TypeError):
        logger.warning("Activity history unreadable; starting empty")
        return {}
    history: dict[date, bool] = {}
    if not isinstance(raw, dict):
        return history
    for key, value in raw.items():
        try:
            history[date.fromisoformat(key)] = bool(value)
        except (TypeError, ValueError):
            continue
    return history


def write_history(streak: StreakState, history: dict[date, bool]) -> None:
    streak.activity_history = json.dumps(
        {d.isoformat(): v for d, v in sorted(history.items())}
    )


def prune(history: dict[date, bool], today: date, keep_days: int) -> dict[date, bool]:
    cutoff = today - timedelta(days=keep_days)
    return {d: v for d, v in history.items() if d >= cutoff}


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def mark_day_activity(
    streak: StreakState,
    day: date,
    has_blocked_apps: bool,
    keep_days: int = DEFAULT_HISTORY_DAYS,
) -> dict[date, bool]:
    history = read_history(streak)
    history[day] = bool(has_blocked_apps)
    history = prune(history, day, keep_days)
    write_history(streak, history)
    return history


def close_day(streak: StreakState, day: date) -> bool:
    """
    Fold `day` into the counters. Returns False when the day was already
    closed (nothing changes).
    """
    if streak.last_closed_date is not None and day <= streak.last_closed_date:
        return False

    history = read_history(streak)
    current = streak.current_streak or 0
    if not history and current > 0:
        maintained = True
    else:
        maintained = history.get(day, False)

    if maintained:
        streak.current_streak = current + 1
        streak.longest_streak = max(streak.longest_streak or 0, streak.current_streak)
        logger.info("Streak %d -> %d (%s)", current, streak.current_streak, day)
    else:
        if current > 0:
            logger.info("Streak broken at %d (%s had no blocked apps)", current, day)
        streak.current_streak = 0

    streak.last_closed_date = day
    return True


def close_days_through(streak: StreakState, yesterday: date, keep_days: int) -> list[date]:
    """
    Close every unclosed day up to and including `yesterday`, oldest first.
    A first-ever close only covers yesterday; gaps are capped at the
    history window because older days can no longer be inspected.
    """
    if streak.last_closed_date is None:
        first = yesterday
    else:
        first = max(streak.last_closed_date + timedelta(days=1), yesterday - timedelta(days=keep_days))

    closed = []
    day = first
    while day <= yesterday:
        if close_day(streak, day):
            closed.append(day)
        day += timedelta(days=1)
    return closed


def snapshot(streak: StreakState) -> StreakSnapshot:
    return StreakSnapshot(
        current_streak=streak.current_streak or 0,
        longest_streak=streak.longest_streak or 0,
        last_closed_date=streak.last_closed_date,
        history=read_history(streak),
    )
