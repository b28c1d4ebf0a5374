"""
Goal and override schemas.

GET  /goals/{app}/effective-limit  → LimitResponse
PUT  /goals/{app}/...              → GoalResponse
"""
from datetime import datetime, time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from screenledger.services.override_store import ExtensionScope, RestrictionPeriod, SessionMode


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class GoalCreateRequest(BaseModel):
    app_identifier: str = Field(min_length=1, max_length=256, examples=["com.example.social"])
    display_name: str = Field(min_length=1, max_length=128, examples=["Social"])
    base_daily_limit_minutes: int = Field(
        ge=0, description="0 keeps the app blocked unless an override lifts it."
    )


class LimitRequest(BaseModel):
    minutes: int = Field(ge=0)


class RestrictionRequest(BaseModel):
    period: RestrictionPeriod
    minutes: int = Field(ge=0)


class BlockWindowRequest(BaseModel):
    start: time = Field(examples=["21:00"])
    end: time = Field(examples=["09:00"], description="May be earlier than start (overnight).")


class ExtensionRequest(BaseModel):
    minutes: Optional[int] = Field(
        default=None, ge=0, description="Omit for the standard puzzle reward."
    )
    scope: ExtensionScope = ExtensionScope.today
    expires_at: Optional[datetime] = Field(
        default=None, description='scope="until" only; defaults to next midnight.'
    )


class SessionRequest(BaseModel):
    mode: SessionMode
    minutes: Optional[int] = Field(default=None, ge=0, description="extra_time only.")


class ExtendTodayRequest(BaseModel):
    minutes: int = Field(gt=0)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class LimitResponse(BaseModel):
    app_identifier: str
    minutes: int = Field(description="Effective daily limit right now.")
    basis: str = Field(description='"one_session" | "extra_time" | "restriction" | "base"')
    base_minutes: int
    extension_minutes: int
    in_block_window: bool
    is_blocked: bool


class OverridesResponse(BaseModel):
    extensions: list[dict[str, Any]]
    restriction: Optional[dict[str, Any]] = None
    block_window: Optional[dict[str, Any]] = None
    session: Optional[dict[str, Any]] = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    app_identifier: str
    display_name: str
    base_daily_limit_minutes: int
    pending_limit_minutes: Optional[int] = None
    is_active: bool
    updated_at: Optional[str] = None
    applied_now: Optional[bool] = Field(
        default=None, description="Limit changes only: false when deferred to the next day."
    )
    overrides: OverridesResponse
    limit: Optional[LimitResponse] = None


class GoalListResponse(BaseModel):
    total: int
    items: list[GoalResponse]
