"""
Gamification router — streak, achievements, pet, daily stats, shared sync.

GET  /streak           — current and longest streak
POST /streak/activity  — mark whether any app was actively blocked today
GET  /achievements     — evaluate, persist new unlocks, list all unlocked
POST /stats/daily      — today's screen time and puzzles solved
GET  /pet              — pet profile (404 when none)
PUT  /pet              — create or update the pet
GET  /pet/health       — live health score and mood
POST /sync/shared      — pull usage written to the shared region
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from screenledger.core.errors import PetNotFoundError
from screenledger.models.pet_profile import PetProfile, PetType
from screenledger.schemas.common import ErrorResponse
from screenledger.schemas.gamification import (
    AchievementsResponse,
    ActivityRequest,
    DailyStatsRequest,
    DailyStatsResponse,
    PetHealthResponse,
    PetRequest,
    PetResponse,
    StreakResponse,
    SyncResponse,
)
from screenledger.services.ledger import AccountabilityLedger, get_ledger
from screenledger.services.streak_tracker import StreakSnapshot

router = APIRouter(tags=["gamification"])


def _streak_to_response(s: StreakSnapshot) -> StreakResponse:
    return StreakResponse(
        current_streak=s.current_streak,
        longest_streak=s.longest_streak,
        last_closed_date=str(s.last_closed_date) if s.last_closed_date else None,
        history={d.isoformat(): v for d, v in sorted(s.history.items())},
    )


def _pet_to_response(pet: Optional[PetProfile]) -> Optional[PetResponse]:
    if pet is None:
        return None
    return PetResponse(
        pet_type=PetType(pet.pet_type).value,
        name=pet.name,
        health_state=pet.health_state,
    )


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------

@router.get("/streak", response_model=StreakResponse, tags=["streak"], summary="Current streak")
def get_streak(ledger: AccountabilityLedger = Depends(get_ledger)):
    return _streak_to_response(ledger.get_current_streak())


@router.post("/streak/activity", response_model=StreakResponse, tags=["streak"], summary="Mark today's activity")
def mark_activity(payload: ActivityRequest, ledger: AccountabilityLedger = Depends(get_ledger)):
    """May be called any number of times a day; the last value counts when the day closes."""
    return _streak_to_response(ledger.mark_day_activity(payload.has_blocked_apps))


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------

@router.get("/achievements", response_model=AchievementsResponse, summary="Unlocked achievements")
def get_achievements(ledger: AccountabilityLedger = Depends(get_ledger)):
    result = ledger.get_unlocked_achievements()
    return AchievementsResponse(unlocked=result.unlocked, newly_unlocked=result.newly_unlocked)


# ---------------------------------------------------------------------------
# Daily stats / shared region
# ---------------------------------------------------------------------------

@router.post("/stats/daily", response_model=DailyStatsResponse, summary="Record today's totals")
def record_daily_stats(payload: DailyStatsRequest, ledger: AccountabilityLedger = Depends(get_ledger)):
    stat = ledger.record_daily_stats(payload.screen_time_minutes, payload.puzzles_solved)
    return DailyStatsResponse(
        day=str(stat.day),
        screen_time_minutes=stat.screen_time_minutes,
        puzzles_solved=stat.puzzles_solved or 0,
        health_score=stat.health_score,
        mood=stat.mood,
    )


@router.post("/sync/shared", response_model=SyncResponse, summary="Ingest shared usage")
def sync_shared(ledger: AccountabilityLedger = Depends(get_ledger)):
    result = ledger.sync_shared_usage()
    return SyncResponse(
        day=str(result.day),
        apps_updated=result.apps_updated,
        breaches=result.breaches,
        screen_time_minutes=result.screen_time_minutes,
        puzzles_solved=result.puzzles_solved,
    )


# ---------------------------------------------------------------------------
# Pet
# ---------------------------------------------------------------------------

@router.get(
    "/pet",
    response_model=PetResponse,
    tags=["pet"],
    summary="Pet profile",
    responses={404: {"model": ErrorResponse, "description": "No pet chosen yet."}},
)
def get_pet(ledger: AccountabilityLedger = Depends(get_ledger)):
    pet = ledger.get_pet()
    if pet is None:
        raise PetNotFoundError()
    return _pet_to_response(pet)


@router.put("/pet", response_model=PetResponse, tags=["pet"], summary="Choose or rename the pet")
def set_pet(payload: PetRequest, ledger: AccountabilityLedger = Depends(get_ledger)):
    return _pet_to_response(ledger.set_pet(payload.pet_type, payload.name))


@router.get("/pet/health", response_model=PetHealthResponse, tags=["pet"], summary="Live pet health")
def get_pet_health(ledger: AccountabilityLedger = Depends(get_ledger)):
    """Today's usage across all goals against their effective limits."""
    h = ledger.get_pet_health()
    return PetHealthResponse(
        day=str(h.day),
        score=h.reading.score,
        mood=h.reading.mood,
        usage_ratio=round(h.reading.usage_ratio, 4),
        total_used_minutes=h.total_used_minutes,
        total_limit_minutes=h.total_limit_minutes,
        pet=_pet_to_response(h.pet),
    )
