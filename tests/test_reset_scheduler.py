"""
Tests for the reset scheduler (pure, in-memory objects only).

Covered scenarios:
  A) idempotency      — second normalize on the same day changes nothing
  B) daily crossing   — credits, failure timestamp and fee marker reset
  C) weekly crossing  — new Monday–Sunday period, failure_count 0, old kept
  D) override expiry  — one-time restriction and today's extensions dropped
  E) pending limits   — applied at the day boundary
  F) streak           — yesterday folded exactly once
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from screenledger.models.goal import Goal
from screenledger.models.streak_state import StreakState
from screenledger.services import streak_tracker
from screenledger.services.override_store import (
    Extension,
    OverrideState,
    RestrictionPeriod,
    RestrictionWindow,
)
from screenledger.services.reset_scheduler import (
    ResetEvent,
    is_new_week,
    new_period,
    normalize,
    week_bounds,
)

WED = date(2026, 3, 4)


def _at(day: date, hour: int = 9) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


def _streak() -> StreakState:
    return StreakState(current_streak=0, longest_streak=0)


def _settled_period(day: date = WED):
    """A period that already ran its daily reset for `day`."""
    period = new_period(day)
    period.last_daily_reset_date = day
    return period


def _run(period, today, overrides=None, goals=(), streak=None):
    return normalize(
        period,
        overrides if overrides is not None else {},
        list(goals),
        streak,
        _at(today),
        today,
    )


class TestIdempotency:
    def test_second_call_same_day_is_noop(self):
        period = new_period(WED)
        streak = _streak()
        first = _run(period, WED, streak=streak)
        assert first.changed

        snapshot = (period.credits_remaining, period.failure_count, period.last_daily_reset_date,
                    streak.current_streak, streak.last_closed_date)
        second = _run(first.period, WED, streak=streak)
        assert not second.changed
        assert second.period is first.period
        assert (period.credits_remaining, period.failure_count, period.last_daily_reset_date,
                streak.current_streak, streak.last_closed_date) == snapshot

    def test_out_of_range_credits_clamped(self):
        period = _settled_period()
        period.credits_remaining = 12
        _run(period, WED)
        assert period.credits_remaining == 7


class TestDailyCrossing:
    def test_credits_and_fee_reset(self):
        period = _settled_period()
        period.credits_remaining = 0
        period.failure_count = 2
        period.last_failure_at = _at(WED)
        period.accountability_fee_paid_date = WED

        outcome = _run(period, WED + timedelta(days=1))
        assert outcome.daily_crossed
        assert period.credits_remaining == 7
        assert period.last_failure_at is None
        assert period.accountability_fee_paid_date is None
        # Failures accumulate for the whole week.
        assert period.failure_count == 2
        assert period.last_daily_reset_date == WED + timedelta(days=1)

    def test_one_time_restriction_and_extensions_expire(self):
        period = _settled_period()
        state = OverrideState(
            extensions=[Extension(granted_minutes=15, granted_at=_at(WED), day=WED)],
            restriction=RestrictionWindow(
                period=RestrictionPeriod.one_time,
                limit_minutes=5,
                start_date=WED,
                end_date=_at(WED + timedelta(days=1), 0),
            ),
        )
        outcome = _run(period, WED + timedelta(days=1), overrides={7: state})
        assert ResetEvent.OVERRIDE_EXPIRED in outcome.events
        assert outcome.overrides_changed == [7]
        assert state.extensions == []
        assert state.restriction is None

    def test_daily_restriction_survives(self):
        period = _settled_period()
        state = OverrideState(restriction=RestrictionWindow(
            period=RestrictionPeriod.daily, limit_minutes=5, start_date=WED,
        ))
        outcome = _run(period, WED + timedelta(days=1), overrides={7: state})
        assert state.restriction is not None
        assert outcome.overrides_changed == []

    def test_pending_limit_applied(self):
        goal = Goal(id=4, app_identifier="app.game", display_name="Game",
                    base_daily_limit_minutes=60, pending_limit_minutes=20)
        outcome = _run(_settled_period(), WED + timedelta(days=1), goals=[goal])
        assert goal.base_daily_limit_minutes == 20
        assert goal.pending_limit_minutes is None
        assert outcome.goals_changed == [4]


class TestWeeklyCrossing:
    def test_rollover_resets_failures(self):
        period = _settled_period()
        period.failure_count = 5
        period.last_failure_at = _at(WED)
        next_monday = date(2026, 3, 9)

        outcome = _run(period, next_monday)
        assert ResetEvent.WEEKLY_RESET in outcome.events
        assert outcome.superseded is period
        assert period.is_current is False
        assert period.failure_count == 5

        fresh = outcome.period
        assert fresh.is_current is True
        assert fresh.failure_count == 0
        assert fresh.last_failure_at is None
        assert (fresh.start_date, fresh.end_date) == (next_monday, date(2026, 3, 15))
        assert fresh.last_daily_reset_date == next_monday

    def test_skipped_weeks_land_on_current_monday(self):
        outcome = _run(_settled_period(), date(2026, 4, 2))
        assert outcome.period.start_date == date(2026, 3, 30)

    def test_sunday_still_same_week(self):
        period = _settled_period()
        assert not is_new_week(period, date(2026, 3, 8))
        assert is_new_week(period, date(2026, 3, 9))

    def test_week_bounds_monday_to_sunday(self):
        assert week_bounds(WED) == (date(2026, 3, 2), date(2026, 3, 8))
        assert week_bounds(date(2026, 3, 2)) == (date(2026, 3, 2), date(2026, 3, 8))


class TestStreakClose:
    def test_continuity_example(self):
        streak = _streak()
        period = _settled_period()

        streak_tracker.mark_day_activity(streak, WED, True)
        period = _run(period, WED + timedelta(days=1), streak=streak).period
        assert streak.current_streak == 1

        streak_tracker.mark_day_activity(streak, WED + timedelta(days=1), False)
        _run(period, WED + timedelta(days=2), streak=streak)
        assert streak.current_streak == 0
        assert streak.longest_streak == 1

    def test_day_closed_only_once(self):
        streak = _streak()
        streak_tracker.mark_day_activity(streak, WED, True)
        period = _settled_period()
        outcome = _run(period, WED + timedelta(days=1), streak=streak)
        assert outcome.closed_days == [WED]

        # Clock does not move: nothing else is folded.
        again = _run(outcome.period, WED + timedelta(days=1), streak=streak)
        assert again.closed_days == []
        assert streak.current_streak == 1
