"""
Goals router — monitored apps, limits and overrides.

GET    /goals                          — list active goals with their effective limit
POST   /goals                          — add (or revive) a goal
DELETE /goals/{app}                    — soft delete
GET    /goals/{app}/effective-limit    — the limit the enforcement side applies now
PUT    /goals/{app}/limit              — change the base limit (may wait for tomorrow)
PUT    /goals/{app}/restriction        — daily / weekly / one-time restriction
DELETE /goals/{app}/restriction
PUT    /goals/{app}/block-window       — time-of-day block window
DELETE /goals/{app}/block-window
POST   /goals/{app}/extensions         — grant an extension (puzzle reward)
PUT    /goals/{app}/session            — extra_time / one_session / none
POST   /goals/{app}/session/end        — the app was closed
POST   /goals/{app}/extend-today       — one-off bonus on today's usage record
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from screenledger.schemas.common import NOT_FOUND, ErrorResponse
from screenledger.schemas.goals import (
    BlockWindowRequest,
    ExtendTodayRequest,
    ExtensionRequest,
    GoalCreateRequest,
    GoalListResponse,
    GoalResponse,
    LimitRequest,
    LimitResponse,
    OverridesResponse,
    RestrictionRequest,
    SessionRequest,
)
from screenledger.services.ledger import AccountabilityLedger, GoalState, get_ledger
from screenledger.services.limit_resolver import LimitDecision

router = APIRouter(prefix="/goals", tags=["goals"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _limit_to_response(decision: LimitDecision) -> LimitResponse:
    return LimitResponse(
        app_identifier=decision.app_identifier,
        minutes=decision.minutes,
        basis=decision.basis,
        base_minutes=decision.base_minutes,
        extension_minutes=decision.extension_minutes,
        in_block_window=decision.in_block_window,
        is_blocked=decision.is_blocked,
    )


def _goal_to_response(state: GoalState) -> GoalResponse:
    goal = state.goal
    ov = state.overrides
    return GoalResponse(
        id=goal.id,
        app_identifier=goal.app_identifier,
        display_name=goal.display_name,
        base_daily_limit_minutes=goal.base_daily_limit_minutes,
        pending_limit_minutes=goal.pending_limit_minutes,
        is_active=goal.is_active,
        updated_at=goal.updated_at.isoformat() if goal.updated_at else None,
        applied_now=state.applied_now,
        overrides=OverridesResponse(
            extensions=[e.model_dump(mode="json") for e in ov.extensions],
            restriction=ov.restriction.model_dump(mode="json") if ov.restriction else None,
            block_window=ov.block_window.model_dump(mode="json") if ov.block_window else None,
            session=ov.session.model_dump(mode="json") if ov.session else None,
        ),
        limit=_limit_to_response(state.limit) if state.limit else None,
    )


# ---------------------------------------------------------------------------
# Goal CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=GoalListResponse, summary="List active goals")
def list_goals(ledger: AccountabilityLedger = Depends(get_ledger)):
    items = [_goal_to_response(s) for s in ledger.list_goals()]
    return GoalListResponse(total=len(items), items=items)


@router.post(
    "",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a monitored app",
    responses={409: {"model": ErrorResponse, "description": "App already has an active goal."}},
)
def create_goal(payload: GoalCreateRequest, ledger: AccountabilityLedger = Depends(get_ledger)):
    state = ledger.add_goal(
        payload.app_identifier, payload.display_name, payload.base_daily_limit_minutes
    )
    return _goal_to_response(state)


@router.delete("/{app}", response_model=GoalResponse, summary="Deactivate a goal", responses=NOT_FOUND)
def delete_goal(app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _goal_to_response(ledger.deactivate_goal(app))


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

@router.get(
    "/{app}/effective-limit",
    response_model=LimitResponse,
    summary="Effective daily limit right now",
    responses=NOT_FOUND,
)
def get_effective_limit(app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    """
    Resolve the limit with every override applied.

    ### Precedence
    | Order | Rule |
    |---|---|
    | 1 | active one-session → base limit exactly |
    | 2 | active extra-time → base + session minutes + extensions |
    | 3 | restriction → restriction minutes + extensions |
    | 4 | otherwise → base + extensions + today's legacy bonus |

    A 404 means the app has no limit configured.
    """
    return _limit_to_response(ledger.get_effective_limit(app))


@router.put("/{app}/limit", response_model=GoalResponse, summary="Change the base limit", responses=NOT_FOUND)
def set_limit(payload: LimitRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    """If the app was already used today the change is stored as pending and applied tomorrow."""
    return _goal_to_response(ledger.set_base_limit(app, payload.minutes))


@router.post(
    "/{app}/extend-today",
    response_model=GoalResponse,
    summary="Add a one-off bonus to today's limit",
    responses=NOT_FOUND,
)
def extend_today(
    payload: ExtendTodayRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)
):
    return _goal_to_response(ledger.extend_today(app, payload.minutes))


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

@router.put("/{app}/restriction", response_model=GoalResponse, summary="Set a restriction", responses=NOT_FOUND)
def set_restriction(
    payload: RestrictionRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)
):
    """Daily restrictions stand until replaced; weekly ones end after 7 days; one-time ones at midnight."""
    return _goal_to_response(ledger.set_restriction(app, payload.period, payload.minutes))


@router.delete("/{app}/restriction", response_model=GoalResponse, summary="Clear the restriction", responses=NOT_FOUND)
def clear_restriction(app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _goal_to_response(ledger.clear_restriction(app))


@router.put("/{app}/block-window", response_model=GoalResponse, summary="Set a block window", responses=NOT_FOUND)
def set_block_window(
    payload: BlockWindowRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)
):
    return _goal_to_response(ledger.set_block_window(app, payload.start, payload.end))


@router.delete("/{app}/block-window", response_model=GoalResponse, summary="Clear the block window", responses=NOT_FOUND)
def clear_block_window(app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _goal_to_response(ledger.clear_block_window(app))


@router.post(
    "/{app}/extensions",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant an extension",
    responses={
        **NOT_FOUND,
        409: {"model": ErrorResponse, "description": "Daily extension cap reached."},
    },
)
def grant_extension(
    payload: ExtensionRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)
):
    return _goal_to_response(
        ledger.grant_extension(app, payload.minutes, payload.scope, payload.expires_at)
    )


@router.put("/{app}/session", response_model=GoalResponse, summary="Set the session mode", responses=NOT_FOUND)
def set_session(payload: SessionRequest, app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _goal_to_response(ledger.activate_session_mode(app, payload.mode, payload.minutes))


@router.post("/{app}/session/end", response_model=GoalResponse, summary="End the session", responses=NOT_FOUND)
def end_session(app: str, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _goal_to_response(ledger.end_session(app))
