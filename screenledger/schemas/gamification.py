"""
Streak, achievement, pet, stats and shared-sync schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field

from screenledger.models.pet_profile import PetType


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_closed_date: Optional[str] = None
    history: dict[str, bool] = Field(description="Blocked-activity map, date → bool.")


class ActivityRequest(BaseModel):
    has_blocked_apps: bool


class AchievementsResponse(BaseModel):
    unlocked: list[str]
    newly_unlocked: list[str]


class DailyStatsRequest(BaseModel):
    screen_time_minutes: Optional[int] = Field(
        default=None, ge=0, description="0 or omitted means not reported yet."
    )
    puzzles_solved: Optional[int] = Field(default=None, ge=0)


class DailyStatsResponse(BaseModel):
    day: str
    screen_time_minutes: Optional[int] = None
    puzzles_solved: int
    health_score: Optional[int] = None
    mood: Optional[str] = None


class PetRequest(BaseModel):
    pet_type: PetType
    name: str = Field(min_length=1, max_length=64)


class PetResponse(BaseModel):
    pet_type: str
    name: str
    health_state: str


class PetHealthResponse(BaseModel):
    day: str
    score: int = Field(ge=0, le=100)
    mood: str
    usage_ratio: float
    total_used_minutes: int
    total_limit_minutes: int
    pet: Optional[PetResponse] = None


class SyncResponse(BaseModel):
    day: str
    apps_updated: list[str]
    breaches: int
    screen_time_minutes: Optional[int] = None
    puzzles_solved: Optional[int] = None
