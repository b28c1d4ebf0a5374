"""
Achievement evaluator — data-driven predicates over an immutable snapshot.

Every achievement is (id, category, rarity, predicate). A predicate reads
only the AchievementSnapshot handed to it: no clock, no database, no
shared state. Predicates are independent of each other; meta achievements
count what was already unlocked *before* this snapshot was taken.

Public API
----------
evaluate(snapshot)        -> frozenset[str]   ids newly satisfied
catalog_by_id()           -> dict[str, Achievement]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Mapping, Optional

from screenledger.services.pet_health import Mood


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AchievementSnapshot:
    today: date
    local_hour: int
    current_streak: int = 0
    longest_streak: int = 0
    credits_remaining: int = 7
    active_goal_count: int = 0
    # Days with recorded history (closed days that have stats).
    history_days: int = 0
    # Screen time of recent closed days, oldest → newest.
    recent_screen_time: tuple[int, ...] = ()
    # None means the enforcement side has not reported today yet.
    today_screen_time_minutes: Optional[int] = None
    puzzles_by_day: Mapping[date, int] = field(default_factory=dict)
    apps_with_usage_today: int = 0
    pet_type: Optional[str] = None
    pet_name: Optional[str] = None
    pet_mood: Optional[str] = None
    unlocked: frozenset[str] = frozenset()

    # --- derived ------------------------------------------------------------

    @property
    def total_puzzles(self) -> int:
        return sum(self.puzzles_by_day.values())

    @property
    def has_pet(self) -> bool:
        return self.pet_type is not None

    @property
    def today_data_loaded(self) -> bool:
        return bool(self.today_screen_time_minutes)

    def puzzles_on(self, day: date) -> int:
        return self.puzzles_by_day.get(day, 0)


Predicate = Callable[[AchievementSnapshot], bool]


@dataclass(frozen=True)
class Achievement:
    id: str
    category: str
    rarity: str
    predicate: Predicate


class Category:
    GETTING_STARTED = "gettingStarted"
    STREAKS         = "streaks"
    USAGE           = "usage"
    HABITS          = "habits"
    CHALLENGES      = "challenges"
    SPECIAL         = "special"
    META            = "meta"
    IMPROVEMENT     = "improvement"
    FUN             = "fun"
    MASTERY         = "mastery"
    PRECISION       = "precision"
    MINIMALISM      = "minimalism"
    PET             = "pet"
    MILESTONES      = "milestones"


class Rarity:
    COMMON    = "common"
    UNCOMMON  = "uncommon"
    RARE      = "rare"
    EPIC      = "epic"
    LEGENDARY = "legendary"


# ---------------------------------------------------------------------------
# Predicate builders
# ---------------------------------------------------------------------------

def _current(n: int) -> Predicate:
    return lambda s: s.current_streak >= n


def _longest(n: int) -> Predicate:
    return lambda s: s.longest_streak >= n


def _history(n: int) -> Predicate:
    return lambda s: s.history_days >= n


def _goals(n: int) -> Predicate:
    return lambda s: s.active_goal_count >= n


def _puzzles(n: int) -> Predicate:
    return lambda s: s.total_puzzles >= n


def _unlocked(n: int) -> Predicate:
    return lambda s: len(s.unlocked) >= n


def _apps_used(n: int) -> Predicate:
    return lambda s: s.apps_with_usage_today >= n


def _streak_with_history(n: int) -> Predicate:
    return lambda s: s.longest_streak >= n and s.history_days >= n


def _recent_all_below(days: int, minutes: int) -> Predicate:
    def check(s: AchievementSnapshot) -> bool:
        recent = s.recent_screen_time[-days:]
        return len(recent) >= days and all(m < minutes for m in recent)
    return check


def _recent_average_below(days: int, minutes: int) -> Predicate:
    def check(s: AchievementSnapshot) -> bool:
        recent = s.recent_screen_time[-days:]
        return len(recent) >= days and sum(recent) // len(recent) < minutes
    return check


def _no_puzzles_for(days: int) -> Predicate:
    def check(s: AchievementSnapshot) -> bool:
        if not s.puzzles_by_day:
            return False
        return all(
            s.puzzles_on(s.today - timedelta(days=offset)) == 0
            for offset in range(1, days + 1)
        )
    return check


def _low_day(minutes: int) -> Predicate:
    # Late in the day and only once usage data has actually arrived.
    return lambda s: s.local_hour >= 23 and s.today_data_loaded \
        and s.today_screen_time_minutes < minutes


def _streak_and_low_today(n: int, minutes: int) -> Predicate:
    return lambda s: s.current_streak >= n and s.today_data_loaded \
        and s.today_screen_time_minutes < minutes


def _pet_mood(moods: tuple[str, ...], current: int = 0, longest: int = 0) -> Predicate:
    return lambda s: s.has_pet and s.pet_mood in moods \
        and s.current_streak >= current and s.longest_streak >= longest


def _pet_named(s: AchievementSnapshot) -> bool:
    if not s.has_pet or not s.pet_name:
        return False
    return s.pet_name.strip().lower() != (s.pet_type or "").lower()


_FULL = (Mood.FULL_HEALTH,)
_HAPPY_OR_BETTER = (Mood.FULL_HEALTH, Mood.HAPPY)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

CATALOG: tuple[Achievement, ...] = (
    # Getting started
    Achievement("first_day", Category.GETTING_STARTED, Rarity.COMMON,
                lambda s: s.history_days > 0 or s.active_goal_count > 0),
    Achievement("week_warrior", Category.GETTING_STARTED, Rarity.COMMON, _history(7)),
    Achievement("goal_setter", Category.GETTING_STARTED, Rarity.COMMON, _goals(3)),

    # Streaks
    Achievement("streak_3", Category.STREAKS, Rarity.COMMON, _current(3)),
    Achievement("streak_7", Category.STREAKS, Rarity.UNCOMMON, _longest(7)),
    Achievement("streak_14", Category.STREAKS, Rarity.RARE, _longest(14)),
    Achievement("streak_30", Category.STREAKS, Rarity.EPIC, _longest(30)),
    Achievement("streak_45", Category.STREAKS, Rarity.RARE, _longest(45)),
    Achievement("streak_60", Category.STREAKS, Rarity.EPIC, _longest(60)),
    Achievement("streak_75", Category.STREAKS, Rarity.EPIC, _longest(75)),
    Achievement("streak_90", Category.STREAKS, Rarity.EPIC, _longest(90)),
    Achievement("streak_100", Category.STREAKS, Rarity.LEGENDARY, _longest(100)),
    Achievement("streak_120", Category.STREAKS, Rarity.LEGENDARY, _longest(120)),
    Achievement("streak_150", Category.STREAKS, Rarity.LEGENDARY, _longest(150)),
    Achievement("streak_200", Category.STREAKS, Rarity.LEGENDARY, _longest(200)),
    Achievement("streak_365", Category.MASTERY, Rarity.LEGENDARY, _longest(365)),

    # Goals
    Achievement("blocker_5", Category.USAGE, Rarity.COMMON, _goals(5)),
    Achievement("blocker_10", Category.USAGE, Rarity.UNCOMMON, _goals(10)),
    Achievement("blocker_20", Category.USAGE, Rarity.RARE, _goals(20)),
    Achievement("weekend_warrior_v2", Category.HABITS, Rarity.RARE, _goals(1)),
    Achievement("blocker_streak", Category.CHALLENGES, Rarity.RARE,
                lambda s: s.active_goal_count >= 5 and s.longest_streak >= 30),
    Achievement("spring_cleaner", Category.SPECIAL, Rarity.UNCOMMON,
                lambda s: s.today.month in (3, 4, 5) and s.active_goal_count >= 10),
    Achievement("consistency_master", Category.MASTERY, Rarity.EPIC,
                lambda s: s.longest_streak >= 70 and s.active_goal_count > 0),
    Achievement("app_minimalist", Category.MINIMALISM, Rarity.UNCOMMON,
                lambda s: s.active_goal_count == 1 and s.longest_streak >= 30),

    # Puzzles
    Achievement("puzzle_first", Category.HABITS, Rarity.COMMON, _puzzles(1)),
    Achievement("puzzle_10", Category.HABITS, Rarity.UNCOMMON, _puzzles(10)),
    Achievement("puzzle_marathon", Category.USAGE, Rarity.UNCOMMON, _puzzles(25)),
    Achievement("puzzle_50", Category.HABITS, Rarity.RARE, _puzzles(50)),
    Achievement("puzzle_100", Category.HABITS, Rarity.EPIC, _puzzles(100)),
    Achievement("app_unlocker", Category.CHALLENGES, Rarity.UNCOMMON, _puzzles(10)),
    Achievement("puzzle_speed_demon", Category.PRECISION, Rarity.RARE,
                lambda s: s.puzzles_on(s.today) >= 5),
    Achievement("no_puzzle_day", Category.HABITS, Rarity.UNCOMMON, _no_puzzles_for(1)),
    Achievement("no_puzzle_week", Category.HABITS, Rarity.RARE, _no_puzzles_for(7)),
    Achievement("zero_puzzles_month", Category.USAGE, Rarity.LEGENDARY,
                lambda s: _no_puzzles_for(30)(s) and s.longest_streak >= 30),

    # Screen time
    Achievement("low_screen_time", Category.IMPROVEMENT, Rarity.RARE,
                _recent_average_below(7, 120)),
    Achievement("screen_time_reducer", Category.MILESTONES, Rarity.RARE,
                _recent_average_below(7, 90)),
    Achievement("minimal_usage", Category.IMPROVEMENT, Rarity.UNCOMMON,
                _recent_all_below(3, 60)),
    Achievement("low_screen_week", Category.USAGE, Rarity.UNCOMMON,
                _recent_all_below(7, 180)),
    Achievement("digital_detox_master", Category.MASTERY, Rarity.LEGENDARY,
                _recent_all_below(7, 30)),
    Achievement("low_screen_time_day", Category.USAGE, Rarity.UNCOMMON, _low_day(60)),
    Achievement("ultra_low_day", Category.USAGE, Rarity.RARE, _low_day(30)),
    Achievement("week_under_5_hours", Category.USAGE, Rarity.RARE,
                _streak_and_low_today(7, 60)),
    Achievement("week_under_3_hours", Category.USAGE, Rarity.EPIC,
                _streak_and_low_today(7, 30)),
    Achievement("digital_monk", Category.MASTERY, Rarity.LEGENDARY,
                _streak_and_low_today(7, 60)),
    Achievement("minimal_screen_week", Category.MINIMALISM, Rarity.EPIC,
                _streak_and_low_today(7, 30)),
    Achievement("apps_used_1", Category.USAGE, Rarity.COMMON, _apps_used(1)),
    Achievement("apps_used_5", Category.USAGE, Rarity.UNCOMMON, _apps_used(5)),
    Achievement("apps_used_10", Category.USAGE, Rarity.RARE, _apps_used(10)),
    Achievement("apps_used_15", Category.USAGE, Rarity.EPIC, _apps_used(15)),
    Achievement("apps_used_20", Category.USAGE, Rarity.LEGENDARY, _apps_used(20)),

    # History
    Achievement("history_14", Category.HABITS, Rarity.COMMON, _history(14)),
    Achievement("history_21", Category.HABITS, Rarity.COMMON, _history(21)),
    Achievement("history_30", Category.HABITS, Rarity.UNCOMMON, _history(30)),
    Achievement("history_45", Category.HABITS, Rarity.RARE, _history(45)),
    Achievement("history_60", Category.HABITS, Rarity.EPIC, _history(60)),
    Achievement("history_90", Category.HABITS, Rarity.EPIC, _history(90)),
    Achievement("history_120", Category.HABITS, Rarity.LEGENDARY, _history(120)),
    Achievement("improvement_7days", Category.IMPROVEMENT, Rarity.UNCOMMON,
                _streak_with_history(7)),
    Achievement("improvement_30days", Category.IMPROVEMENT, Rarity.RARE,
                _streak_with_history(30)),
    Achievement("improvement_90days", Category.IMPROVEMENT, Rarity.EPIC,
                _streak_with_history(90)),
    Achievement("improvement_180days", Category.IMPROVEMENT, Rarity.LEGENDARY,
                _streak_with_history(180)),

    # Pet
    Achievement("pet_owner", Category.PET, Rarity.COMMON, lambda s: s.has_pet),
    Achievement("pet_namer", Category.PET, Rarity.COMMON, _pet_named),
    Achievement("pet_full_health", Category.PET, Rarity.UNCOMMON, _pet_mood(_FULL, current=3)),
    Achievement("comeback_kid", Category.PET, Rarity.UNCOMMON, _pet_mood(_FULL, current=3)),
    Achievement("pet_recovery", Category.PET, Rarity.RARE, _pet_mood(_FULL, current=3)),
    Achievement("pet_happy_week", Category.PET, Rarity.UNCOMMON,
                _pet_mood(_HAPPY_OR_BETTER, current=7)),
    Achievement("pet_protector", Category.PET, Rarity.RARE, _pet_mood(_FULL, current=30)),
    Achievement("pet_30_days_healthy", Category.PET, Rarity.EPIC, _pet_mood(_FULL, current=30)),
    Achievement("pet_best_friend", Category.PET, Rarity.LEGENDARY, _pet_mood(_FULL, longest=49)),
    Achievement("pet_health_100", Category.PET, Rarity.UNCOMMON,
                lambda s: _pet_mood(_FULL)(s) and s.today_data_loaded
                and s.today_screen_time_minutes < 60),

    # Fun / mastery
    Achievement("lucky_seven", Category.FUN, Rarity.EPIC,
                lambda s: s.longest_streak >= 49 and s.current_streak >= 7),
    Achievement("self_control_sensei", Category.MASTERY, Rarity.LEGENDARY,
                lambda s: s.longest_streak >= 50 and len(s.unlocked) >= 20
                and s.active_goal_count >= 10),

    # Meta
    Achievement("achievements_5", Category.META, Rarity.COMMON, _unlocked(5)),
    Achievement("achievements_10", Category.META, Rarity.COMMON, _unlocked(10)),
    Achievement("achievement_hunter", Category.META, Rarity.UNCOMMON, _unlocked(10)),
    Achievement("achievements_20", Category.META, Rarity.UNCOMMON, _unlocked(20)),
    Achievement("completionist", Category.META, Rarity.EPIC, _unlocked(25)),
    Achievement("achievements_35", Category.META, Rarity.RARE, _unlocked(35)),
    Achievement("legend", Category.META, Rarity.LEGENDARY, _unlocked(40)),
    Achievement("achievements_50", Category.META, Rarity.EPIC, _unlocked(50)),
    Achievement("achievements_75", Category.META, Rarity.LEGENDARY, _unlocked(75)),
)


def catalog_by_id() -> dict[str, Achievement]:
    return {a.id: a for a in CATALOG}


def evaluate(snapshot: AchievementSnapshot) -> frozenset[str]:
    """Ids whose predicate holds and that are not unlocked yet."""
    return frozenset(
        a.id for a in CATALOG
        if a.id not in snapshot.unlocked and a.predicate(snapshot)
    )
