"""
Ledger schemas.

GET  /ledger               → LedgerSummaryResponse
POST /ledger/usage         → UsageResponse
POST /ledger/fee           → FeeResponse
GET  /ledger/transactions  → TransactionListResponse
GET  /ledger/periods       → PeriodListResponse
"""
from typing import Optional

from pydantic import BaseModel, Field


class UsageRequest(BaseModel):
    app_identifier: str = Field(min_length=1)
    minutes: int = Field(ge=0, description="Total minutes used today so far.")
    exceeded_limit: Optional[bool] = Field(
        default=None,
        description="Omit to compare minutes against the effective limit.",
    )


class LedgerSummaryResponse(BaseModel):
    period_id: int
    start_date: str
    end_date: str
    credits_remaining: int
    failure_count: int
    fee_state: str = Field(description='"ok" | "fee_pending" | "fee_paid"')
    last_failure_at: Optional[str] = None
    accountability_fee_paid_date: Optional[str] = None
    penalty_model_version: int
    today: str
    stale: bool = False


class TransactionResponse(BaseModel):
    id: int
    period_id: Optional[int] = None
    goal_id: Optional[int] = None
    amount: int
    kind: Optional[str] = None
    reason: Optional[str] = None
    day: str
    model_version: Optional[int] = None
    created_at: str


class TransactionListResponse(BaseModel):
    total: int
    items: list[TransactionResponse]


class UsageResponse(BaseModel):
    app_identifier: str
    day: str
    actual_usage_minutes: int
    did_exceed_limit: bool
    transaction: Optional[TransactionResponse] = None
    ledger: LedgerSummaryResponse


class FeeResponse(BaseModel):
    paid: bool
    transaction: Optional[TransactionResponse] = None
    ledger: LedgerSummaryResponse


class PeriodResponse(BaseModel):
    id: int
    start_date: str
    end_date: str
    credits_remaining: int
    failure_count: int
    is_current: bool
    penalty_model_version: int
    # Progressive-model periods only: credits lost under the old rules.
    legacy_credits_lost: Optional[int] = None


class PeriodListResponse(BaseModel):
    total: int
    items: list[PeriodResponse]
