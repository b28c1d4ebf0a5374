"""
Ledger store — the current WeeklyPeriod, its history and the credit
transaction trail.

Exactly one period is current. Every helper here only flushes; the
ledger service owns the commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from screenledger.core.clock import Clock
from screenledger.models.credit_transaction import CreditTransaction, TransactionKind
from screenledger.models.weekly_period import (
    WeeklyPeriod,
    PENALTY_MODEL_FLAT_FEE,
    PENALTY_MODEL_PROGRESSIVE,
)
from screenledger.services.penalty import FULL_CREDITS
from screenledger.services.reset_scheduler import new_period

logger = logging.getLogger(__name__)

_LEGACY_KINDS = {TransactionKind.legacy_penalty.value, TransactionKind.legacy_credit.value}


# ---------------------------------------------------------------------------
# Current period
# ---------------------------------------------------------------------------

def _is_corrupt(period: WeeklyPeriod) -> bool:
    if period.start_date is None or period.end_date is None:
        return True
    if period.end_date < period.start_date:
        return True
    return period.end_date - period.start_date != timedelta(days=6)


def get_current_period(db: Session, today: date, full_credits: int = FULL_CREDITS) -> WeeklyPeriod:
    """
    Return the current period, creating one for this week if none exists.

    Extra current rows are demoted (newest wins); a row with impossible
    dates is retired and replaced by a fresh period.
    """
    rows = (
        db.query(WeeklyPeriod)
        .filter(WeeklyPeriod.is_current.is_(True))
        .order_by(WeeklyPeriod.id.desc())
        .all()
    )
    period: Optional[WeeklyPeriod] = rows[0] if rows else None

    for extra in rows[1:]:
        logger.warning("Demoting duplicate current period id=%s", extra.id)
        extra.is_current = False

    if period is not None and _is_corrupt(period):
        logger.warning(
            "Period id=%s has invalid dates (%s..%s); starting a fresh period",
            period.id, period.start_date, period.end_date,
        )
        period.is_current = False
        period = None

    if period is None:
        period = new_period(today, full_credits)
        db.add(period)
        logger.info("Opened period %s..%s", period.start_date, period.end_date)

    db.flush()
    return period


def list_periods(db: Session, limit: int = 50, offset: int = 0) -> tuple[int, list[WeeklyPeriod]]:
    q = db.query(WeeklyPeriod)
    total = q.count()
    items = (
        q.order_by(WeeklyPeriod.start_date.desc(), WeeklyPeriod.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def record_transaction(
    db: Session,
    txn: CreditTransaction,
    period: WeeklyPeriod,
    now: Optional[datetime] = None,
) -> CreditTransaction:
    txn.period_id = period.id
    if now is not None and txn.created_at is None:
        txn.created_at = now
    db.add(txn)
    db.flush()
    return txn


def list_transactions(
    db: Session,
    period_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[CreditTransaction]]:
    q = db.query(CreditTransaction)
    if period_id is not None:
        q = q.filter(CreditTransaction.period_id == period_id)
    total = q.count()
    items = (
        q.order_by(CreditTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


# ---------------------------------------------------------------------------
# Legacy migration
# ---------------------------------------------------------------------------

@dataclass
class MigrationReport:
    transactions_tagged: int
    period_migrated: bool


def migrate_legacy_ledger(db: Session, clock: Clock, full_credits: int = FULL_CREDITS) -> MigrationReport:
    """
    Map progressive-model data onto the flat-fee model. Old transactions
    are kept and tagged; a current period still on the old model gets
    credits consistent with the new one. Safe to run on every start.
    """
    tagged = 0
    legacy = (
        db.query(CreditTransaction)
        .filter(
            (CreditTransaction.model_version.is_(None))
            | (CreditTransaction.model_version == PENALTY_MODEL_PROGRESSIVE)
        )
        .all()
    )
    for txn in legacy:
        if txn.model_version == PENALTY_MODEL_PROGRESSIVE and txn.kind in _LEGACY_KINDS:
            continue
        txn.kind = (
            TransactionKind.legacy_penalty.value if txn.amount < 0
            else TransactionKind.legacy_credit.value
        )
        txn.model_version = PENALTY_MODEL_PROGRESSIVE
        tagged += 1

    migrated = False
    current = (
        db.query(WeeklyPeriod)
        .filter(
            WeeklyPeriod.is_current.is_(True),
            WeeklyPeriod.penalty_model_version == PENALTY_MODEL_PROGRESSIVE,
        )
        .all()
    )
    today = clock.today()
    for period in current:
        failed_today = clock.local_date(period.last_failure_at) == today
        period.credits_remaining = 0 if failed_today else full_credits
        if failed_today:
            # Today's reset already happened before the failure.
            period.last_daily_reset_date = today
        period.penalty_model_version = PENALTY_MODEL_FLAT_FEE
        migrated = True
        logger.info(
            "Period id=%s moved to the flat-fee model with %d credits",
            period.id, period.credits_remaining,
        )

    if tagged:
        logger.info("Tagged %d legacy transaction(s)", tagged)
    db.flush()
    return MigrationReport(transactions_tagged=tagged, period_migrated=migrated)
