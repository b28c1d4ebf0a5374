"""
Penalty calculator — the accountability-fee state machine.

States (derived, never stored)
------------------------------
  OK           credits full, no breach charged today
  FEE_PENDING  a breach zeroed the credits today and has not been paid
  FEE_PAID     accountability_fee_paid_date == today, credits full again

Transitions
-----------
  report_breach : OK          → FEE_PENDING   (-7 transaction)
                  FEE_PENDING → FEE_PENDING   (0 transaction, already charged today)
                  FEE_PAID    → FEE_PAID      (0 transaction, already paid today)
  pay_fee       : FEE_PENDING → FEE_PAID      (+7 transaction)
                  anything else → unchanged, no transaction
  daily reset   : any         → OK            (see reset_scheduler)

At most one charged breach per calendar day. Credits are always 0 or
WEEKLY_CREDITS under this model; the legacy progressive model is kept only
to interpret historical transactions.

Functions mutate the WeeklyPeriod in place and return an unsaved
CreditTransaction (or None); the caller adds and commits.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from screenledger.models.credit_transaction import CreditTransaction, TransactionKind
from screenledger.models.goal import Goal
from screenledger.models.weekly_period import WeeklyPeriod, PENALTY_MODEL_FLAT_FEE

logger = logging.getLogger(__name__)

FULL_CREDITS = 7


class FeeState:
    OK          = "ok"
    FEE_PENDING = "fee_pending"
    FEE_PAID    = "fee_paid"


def clamp_credits(value: Optional[int], full: int = FULL_CREDITS) -> int:
    return max(0, min(full, value if value is not None else full))


def _charged_on(period: WeeklyPeriod, last_failure_day: Optional[date], today: date) -> bool:
    return last_failure_day == today and (period.credits_remaining or 0) == 0


def fee_state(period: WeeklyPeriod, today: date) -> str:
    if period.accountability_fee_paid_date == today:
        return FeeState.FEE_PAID
    if (period.credits_remaining or 0) <= 0:
        return FeeState.FEE_PENDING
    return FeeState.OK


def report_breach(
    period: WeeklyPeriod,
    goal: Optional[Goal],
    now: datetime,
    today: date,
    last_failure_day: Optional[date] = None,
    full_credits: int = FULL_CREDITS,
) -> CreditTransaction:
    """
    Charge the day's accountability fee, or log a free breach if today is
    already charged or already paid for.

    `last_failure_day` is the local calendar day of period.last_failure_at,
    resolved by the caller's clock.
    """
    period.failure_count = (period.failure_count or 0) + 1
    goal_id = goal.id if goal is not None else None
    label = goal.display_name if goal is not None else "unknown app"

    already_paid = period.accountability_fee_paid_date == today
    already_charged = _charged_on(period, last_failure_day, today)

    if already_paid or already_charged:
        logger.info(
            "Breach on %s waived (%s)", label, "fee paid" if already_paid else "already charged"
        )
        return CreditTransaction(
            period_id=period.id,
            goal_id=goal_id,
            amount=0,
            kind=TransactionKind.breach_waived.value,
            reason=f"Limit exceeded on {label} (no charge today)",
            day=today,
            model_version=PENALTY_MODEL_FLAT_FEE,
        )

    period.credits_remaining = 0
    period.last_failure_at = now
    logger.info("Breach on %s charged: credits %d -> 0", label, full_credits)
    return CreditTransaction(
        period_id=period.id,
        goal_id=goal_id,
        amount=-full_credits,
        kind=TransactionKind.breach_charged.value,
        reason=f"Limit exceeded on {label}",
        day=today,
        model_version=PENALTY_MODEL_FLAT_FEE,
    )


def pay_fee(
    period: WeeklyPeriod,
    today: date,
    full_credits: int = FULL_CREDITS,
) -> Optional[CreditTransaction]:
    """Restore credits after a breach. No-op outside FEE_PENDING."""
    if fee_state(period, today) != FeeState.FEE_PENDING:
        logger.info("Accountability fee not due; nothing to pay")
        return None

    period.credits_remaining = full_credits
    period.accountability_fee_paid_date = today
    logger.info("Accountability fee paid: credits restored to %d", full_credits)
    return CreditTransaction(
        period_id=period.id,
        goal_id=None,
        amount=full_credits,
        kind=TransactionKind.fee_paid.value,
        reason="Accountability fee paid",
        day=today,
        model_version=PENALTY_MODEL_FLAT_FEE,
    )


# ---------------------------------------------------------------------------
# Legacy progressive model (interpretation only)
# ---------------------------------------------------------------------------

def legacy_penalty_for_failure(failure_number: int, full_credits: int = FULL_CREDITS) -> int:
    """Credits the progressive model took for the n-th failure of a week."""
    return max(0, min(failure_number, full_credits))


def legacy_credits_lost(failure_count: int, full_credits: int = FULL_CREDITS) -> int:
    """
    Credits a progressive-model week had lost after `failure_count`
    failures. Period reports show it beside the stored balance of
    pre-migration weeks.
    """
    lost = sum(
        legacy_penalty_for_failure(n, full_credits)
        for n in range(1, max(0, failure_count or 0) + 1)
    )
    return min(lost, full_credits)
