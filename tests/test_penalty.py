"""
Tests for the accountability-fee state machine and the legacy
progressive model.
"""
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from screenledger.models.credit_transaction import TransactionKind
from screenledger.models.goal import Goal
from screenledger.models.weekly_period import WeeklyPeriod, PENALTY_MODEL_FLAT_FEE
from screenledger.services import penalty
from screenledger.services.penalty import FeeState

NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _period(credits: int = 7) -> WeeklyPeriod:
    return WeeklyPeriod(
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 8),
        credits_remaining=credits,
        failure_count=0,
        is_current=True,
        penalty_model_version=PENALTY_MODEL_FLAT_FEE,
    )


def _goal() -> Goal:
    return Goal(id=3, app_identifier="app.video", display_name="Video", base_daily_limit_minutes=30)


def _breach(period: WeeklyPeriod):
    last = period.last_failure_at.date() if period.last_failure_at else None
    return penalty.report_breach(period, _goal(), NOW, TODAY, last_failure_day=last)


class TestReportBreach:
    def test_first_breach_zeroes_credits(self):
        period = _period()
        txn = _breach(period)
        assert period.credits_remaining == 0
        assert txn.amount == -7
        assert txn.kind == TransactionKind.breach_charged.value
        assert txn.goal_id == 3
        assert txn.model_version == PENALTY_MODEL_FLAT_FEE
        assert penalty.fee_state(period, TODAY) == FeeState.FEE_PENDING

    def test_second_breach_same_day_is_free(self):
        period = _period()
        _breach(period)
        txn = _breach(period)
        assert period.credits_remaining == 0
        assert txn.amount == 0
        assert txn.kind == TransactionKind.breach_waived.value

    @pytest.mark.parametrize("n", [1, 2, 5, 9])
    def test_one_fee_per_day(self, n):
        period = _period()
        amounts = [_breach(period).amount for _ in range(n)]
        assert amounts.count(-7) == 1
        assert amounts.count(0) == n - 1
        assert period.failure_count == n

    def test_breach_after_fee_paid_is_free(self):
        period = _period()
        _breach(period)
        penalty.pay_fee(period, TODAY)
        txn = _breach(period)
        assert txn.amount == 0
        assert period.credits_remaining == 7
        assert penalty.fee_state(period, TODAY) == FeeState.FEE_PAID

    def test_failure_count_increments_on_every_breach(self):
        period = _period()
        _breach(period)
        _breach(period)
        assert period.failure_count == 2


class TestPayFee:
    def test_pay_restores_credits(self):
        period = _period()
        _breach(period)
        txn = penalty.pay_fee(period, TODAY)
        assert txn.amount == 7
        assert txn.kind == TransactionKind.fee_paid.value
        assert period.credits_remaining == 7
        assert period.accountability_fee_paid_date == TODAY

    def test_pay_without_pending_fee_is_noop(self):
        period = _period()
        assert penalty.pay_fee(period, TODAY) is None
        assert period.credits_remaining == 7
        assert period.accountability_fee_paid_date is None

    def test_paying_twice_charges_once(self):
        period = _period()
        _breach(period)
        assert penalty.pay_fee(period, TODAY) is not None
        assert penalty.pay_fee(period, TODAY) is None

    def test_credits_stay_binary(self):
        period = _period()
        for step in "bbpbpbbpp":
            if step == "b":
                _breach(period)
            else:
                penalty.pay_fee(period, TODAY)
            assert period.credits_remaining in (0, 7)


class TestLegacyModel:
    @pytest.mark.parametrize("n,expected", [(1, 1), (2, 2), (3, 3), (7, 7), (12, 7), (0, 0)])
    def test_progressive_penalty(self, n, expected):
        assert penalty.legacy_penalty_for_failure(n) == expected

    @pytest.mark.parametrize("count,expected", [(0, 0), (1, 1), (2, 3), (3, 6), (4, 7), (9, 7)])
    def test_credits_lost_over_a_week(self, count, expected):
        assert penalty.legacy_credits_lost(count) == expected

    def test_credits_lost_ignores_bad_counts(self):
        assert penalty.legacy_credits_lost(-2) == 0
        assert penalty.legacy_credits_lost(None) == 0

    def test_clamp(self):
        assert penalty.clamp_credits(-3) == 0
        assert penalty.clamp_credits(11) == 7
        assert penalty.clamp_credits(None) == 7
