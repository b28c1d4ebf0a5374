"""
Ledger router — credits, breaches and the accountability fee.

GET  /ledger               — summary of the current period
POST /ledger/usage         — usage report from the enforcement side
POST /ledger/fee           — pay the accountability fee
GET  /ledger/transactions  — credit transaction history (newest first)
GET  /ledger/periods       — weekly periods (newest first)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from screenledger.models.credit_transaction import CreditTransaction
from screenledger.models.weekly_period import PENALTY_MODEL_PROGRESSIVE, WeeklyPeriod
from screenledger.schemas.common import NOT_FOUND
from screenledger.schemas.ledger import (
    FeeResponse,
    LedgerSummaryResponse,
    PeriodListResponse,
    PeriodResponse,
    TransactionListResponse,
    TransactionResponse,
    UsageRequest,
    UsageResponse,
)
from screenledger.services import penalty
from screenledger.services.ledger import AccountabilityLedger, LedgerSummary, get_ledger

router = APIRouter(prefix="/ledger", tags=["ledger"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def summary_to_response(s: LedgerSummary) -> LedgerSummaryResponse:
    return LedgerSummaryResponse(
        period_id=s.period_id,
        start_date=str(s.start_date),
        end_date=str(s.end_date),
        credits_remaining=s.credits_remaining,
        failure_count=s.failure_count,
        fee_state=s.fee_state,
        last_failure_at=s.last_failure_at.isoformat() if s.last_failure_at else None,
        accountability_fee_paid_date=(
            str(s.accountability_fee_paid_date) if s.accountability_fee_paid_date else None
        ),
        penalty_model_version=s.penalty_model_version,
        today=str(s.today),
        stale=s.stale,
    )


def _txn_to_response(txn: Optional[CreditTransaction]) -> Optional[TransactionResponse]:
    if txn is None:
        return None
    return TransactionResponse(
        id=txn.id,
        period_id=txn.period_id,
        goal_id=txn.goal_id,
        amount=txn.amount,
        kind=txn.kind,
        reason=txn.reason,
        day=str(txn.day),
        model_version=txn.model_version,
        created_at=txn.created_at.isoformat() if txn.created_at else "",
    )


def _period_to_response(p: WeeklyPeriod, full_credits: int) -> PeriodResponse:
    legacy = None
    if p.penalty_model_version == PENALTY_MODEL_PROGRESSIVE:
        legacy = penalty.legacy_credits_lost(p.failure_count, full_credits)
    return PeriodResponse(
        id=p.id,
        start_date=str(p.start_date),
        end_date=str(p.end_date),
        credits_remaining=p.credits_remaining,
        failure_count=p.failure_count,
        is_current=p.is_current,
        penalty_model_version=p.penalty_model_version,
        legacy_credits_lost=legacy,
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", response_model=LedgerSummaryResponse, summary="Current ledger summary")
def get_summary(ledger: AccountabilityLedger = Depends(get_ledger)):
    """`stale=true` means storage is unreachable and this is the last good state."""
    return summary_to_response(ledger.get_ledger_summary())


@router.post("/usage", response_model=UsageResponse, summary="Report usage", responses=NOT_FOUND)
def report_usage(payload: UsageRequest, ledger: AccountabilityLedger = Depends(get_ledger)):
    """
    Record today's usage for one app.

    The first report that pushes an app over its limit is a breach. The
    first breach of the day costs every credit (-7); later ones are logged
    at 0 until the next day. An app is only a breach once per day: further
    reports for an app already over its limit update the minutes and write
    no transaction, whether or not the fee has been paid since.
    """
    result = ledger.report_usage(payload.app_identifier, payload.minutes, payload.exceeded_limit)
    return UsageResponse(
        app_identifier=result.app_identifier,
        day=str(result.record.day),
        actual_usage_minutes=result.record.actual_usage_minutes,
        did_exceed_limit=result.record.did_exceed_limit,
        transaction=_txn_to_response(result.transaction),
        ledger=summary_to_response(result.summary),
    )


@router.post("/fee", response_model=FeeResponse, summary="Pay the accountability fee")
def pay_fee(ledger: AccountabilityLedger = Depends(get_ledger)):
    """Restores credits after today's breach. Does nothing when no fee is due."""
    result = ledger.pay_accountability_fee()
    return FeeResponse(
        paid=result.transaction is not None,
        transaction=_txn_to_response(result.transaction),
        ledger=summary_to_response(result.summary),
    )


@router.get("/transactions", response_model=TransactionListResponse, summary="Credit transactions")
def list_transactions(
    period_id: Optional[int] = Query(default=None, description="Restrict to one period."),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    ledger: AccountabilityLedger = Depends(get_ledger),
):
    total, items = ledger.list_transactions(period_id, limit, offset)
    return TransactionListResponse(total=total, items=[_txn_to_response(t) for t in items])


@router.get("/periods", response_model=PeriodListResponse, summary="Weekly periods")
def list_periods(
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    ledger: AccountabilityLedger = Depends(get_ledger),
):
    total, items = ledger.list_periods(limit, offset)
    return PeriodListResponse(total=total, items=[_period_to_response(p, ledger.full_credits) for p in items])
