from .weekly_period import WeeklyPeriod
from .goal import Goal
from .usage_record import UsageRecord
from .goal_override import GoalOverride
from .credit_transaction import CreditTransaction
from .streak_state import StreakState
from .daily_stat import DailyStat
from .pet_profile import PetProfile
from .unlocked_achievement import UnlockedAchievement

__all__ = [
    "WeeklyPeriod",
    "Goal",
    "UsageRecord",
    "GoalOverride",
    "CreditTransaction",
    "StreakState",
    "DailyStat",
    "PetProfile",
    "UnlockedAchievement",
]
