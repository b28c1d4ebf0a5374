"""
AccountabilityLedger — the service object every route talks to.

Constructed once at startup (see screenledger.main) and handed to routes
through Depends(get_ledger). Tests build their own with a FixedClock.

Every public command
--------------------
  1. takes the single-writer lock,
  2. opens a session and runs the reset scheduler (_prepare),
  3. performs the operation,
  4. commits, retrying the whole unit up to COMMIT_RETRIES times on a
     storage error. A write that still cannot be committed is queued and
     StaleStateError is raised; the in-memory summary keeps its effect
     and the queue is replayed at the start of the next command, before
     anything else touches the session. Reads that have a last good
     value cached serve it instead of failing.
  5. publishes the ledger-owned sections of the shared region, when one
     is configured and something changed.

LedgerError subclasses raised by an operation (unknown goal, extension
cap) are not retried.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Optional, TypeVar

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from screenledger.core.clock import Clock
from screenledger.core.config import Settings
from screenledger.core.errors import ExtensionLimitReachedError, LedgerError, StaleStateError
from screenledger.models.credit_transaction import CreditTransaction
from screenledger.models.daily_stat import DailyStat
from screenledger.models.goal import Goal
from screenledger.models.pet_profile import PetProfile, PetType
from screenledger.models.streak_state import StreakState
from screenledger.models.unlocked_achievement import UnlockedAchievement
from screenledger.models.usage_record import UsageRecord
from screenledger.models.weekly_period import WeeklyPeriod
from screenledger.services import achievements, goal_store, ledger_store, penalty
from screenledger.services import reset_scheduler, streak_tracker
from screenledger.services.limit_resolver import LimitDecision, resolve_limit
from screenledger.services.override_store import (
    BlockWindow,
    Extension,
    ExtensionScope,
    OverrideState,
    RestrictionPeriod,
    RestrictionWindow,
    SessionMode,
    SessionState,
    load_all_overrides,
    save_overrides,
)
from screenledger.services.pet_health import HealthReading, health_score
from screenledger.services.shared_state import SharedRegion

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RECENT_DAYS = 30


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class LedgerSummary:
    period_id: int
    start_date: date
    end_date: date
    credits_remaining: int
    failure_count: int
    fee_state: str
    last_failure_at: Optional[datetime]
    accountability_fee_paid_date: Optional[date]
    penalty_model_version: int
    today: date
    # True when served from memory because storage was unavailable.
    stale: bool = False


@dataclass
class GoalState:
    goal: Goal
    overrides: OverrideState
    limit: Optional[LimitDecision] = None
    # set_base_limit only: False when the change waits for tomorrow.
    applied_now: Optional[bool] = None


@dataclass
class UsageResult:
    record: UsageRecord
    app_identifier: str
    transaction: Optional[CreditTransaction]
    summary: LedgerSummary


@dataclass
class FeeResult:
    transaction: Optional[CreditTransaction]
    summary: LedgerSummary


@dataclass
class AchievementResult:
    unlocked: list[str]
    newly_unlocked: list[str]


@dataclass
class PetHealth:
    pet: Optional[PetProfile]
    reading: HealthReading
    total_used_minutes: int
    total_limit_minutes: int
    day: date


@dataclass
class SyncResult:
    day: date
    apps_updated: list[str] = field(default_factory=list)
    breaches: int = 0
    screen_time_minutes: Optional[int] = None
    puzzles_solved: Optional[int] = None


@dataclass
class _PendingWrite:
    operation: str
    moment: datetime
    fn: Callable[[Any], Any]


@dataclass
class _Context:
    """Per-command working set, valid until the session closes."""
    db: Session
    now: datetime
    today: date
    period: WeeklyPeriod
    goals: list[Goal]
    overrides: dict[int, OverrideState]
    streak: StreakState
    reset: reset_scheduler.ResetOutcome
    dirty: bool = False

    def overrides_for(self, goal: Goal) -> OverrideState:
        return self.overrides.setdefault(goal.id, OverrideState())


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AccountabilityLedger:
    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Clock,
        settings: Settings,
        shared: Optional[SharedRegion] = None,
    ):
        self._session_factory = session_factory
        self.clock = clock
        self.settings = settings
        self.shared = shared
        self._lock = threading.RLock()
        self._last_summary: Optional[LedgerSummary] = None
        self._last_limits: dict[str, LimitDecision] = {}
        self._pending: list[_PendingWrite] = []

    @property
    def full_credits(self) -> int:
        return self.settings.WEEKLY_CREDITS

    # --- plumbing -----------------------------------------------------------

    def _open(self) -> Session:
        return self._session_factory(expire_on_commit=False)

    def _streak(self, db: Session) -> StreakState:
        streak = db.query(StreakState).order_by(StreakState.id.asc()).first()
        if streak is None:
            streak = StreakState(current_streak=0, longest_streak=0)
            db.add(streak)
            db.flush()
        return streak

    def _prepare(self, db: Session, now: Optional[datetime] = None) -> _Context:
        now = now or self.clock.now()
        today = self.clock.local_date(now)
        period = ledger_store.get_current_period(db, today, self.full_credits)
        goals = goal_store.list_goals(db)
        active_ids = {g.id for g in goals}
        overrides = {
            gid: state for gid, state in load_all_overrides(db).items() if gid in active_ids
        }
        streak = self._streak(db)
        bases = {g.id: g.base_daily_limit_minutes for g in goals}

        outcome = reset_scheduler.normalize(
            period, overrides, goals, streak, now, today,
            full_credits=self.full_credits,
            history_days=self.settings.ACTIVITY_HISTORY_DAYS,
        )
        if outcome.superseded is not None:
            db.add(outcome.period)
        for goal_id in outcome.overrides_changed:
            save_overrides(db, goal_id, overrides[goal_id])
        for day in outcome.closed_days:
            self._snapshot_day(db, day, bases)
        db.flush()

        return _Context(
            db=db,
            now=now,
            today=today,
            period=outcome.period,
            goals=goals,
            overrides=overrides,
            streak=streak,
            reset=outcome,
            dirty=outcome.changed,
        )

    def _run(
        self,
        operation: str,
        fn: Callable[[_Context], T],
        fallback: Optional[Callable[[], Optional[T]]] = None,
        on_success: Optional[Callable[[T], None]] = None,
        queue: bool = False,
    ) -> T:
        attempts = max(1, self.settings.COMMIT_RETRIES)
        with self._lock:
            now = self.clock.now()
            applied: Optional[LedgerSummary] = None
            for attempt in range(1, attempts + 1):
                db = self._open()
                try:
                    replayed_dirty = self._replay(db)
                    ctx = self._prepare(db, now)
                    result = fn(ctx)
                    summary = applied = self._summary(ctx)
                    dirty = ctx.dirty or replayed_dirty
                    shared_payload = self._shared_payload(ctx) if dirty else None
                    db.commit()
                except SQLAlchemyError as exc:
                    db.rollback()
                    logger.warning(
                        "%s: storage error on attempt %d/%d: %s",
                        operation, attempt, attempts, exc,
                    )
                    continue
                finally:
                    db.close()

                if self._pending:
                    logger.info("Flushed %d queued write(s)", len(self._pending))
                    self._pending.clear()
                self._last_summary = summary
                if on_success is not None:
                    on_success(result)
                if shared_payload is not None:
                    self._publish(shared_payload)
                return result

            if queue:
                self._pending.append(_PendingWrite(operation=operation, moment=now, fn=fn))
                if applied is not None:
                    # Unflushed writes are still the ledger's state.
                    self._last_summary = applied
                logger.error(
                    "%s: not persisted after %d attempt(s); queued (%d pending)",
                    operation, attempts, len(self._pending),
                )
                raise StaleStateError(operation, attempts, queued=True)

            if fallback is not None:
                cached = fallback()
                if cached is not None:
                    logger.warning("%s: storage unavailable, serving cached state", operation)
                    return cached
            logger.error("%s: giving up after %d attempt(s)", operation, attempts)
            raise StaleStateError(operation, attempts)

    def _write(self, operation: str, fn: Callable[[_Context], T]) -> T:
        return self._run(operation, fn, queue=True)

    def _replay(self, db: Session) -> bool:
        """Re-apply queued writes, each at the moment it was first attempted."""
        dirty = False
        for pending in list(self._pending):
            ctx = self._prepare(db, pending.moment)
            try:
                pending.fn(ctx)
            except LedgerError as exc:
                logger.warning("Dropping queued %s: %s", pending.operation, exc.message)
                self._pending.remove(pending)
                continue
            dirty = dirty or ctx.dirty
        return dirty

    def _summary(self, ctx: _Context) -> LedgerSummary:
        p = ctx.period
        return LedgerSummary(
            period_id=p.id,
            start_date=p.start_date,
            end_date=p.end_date,
            credits_remaining=p.credits_remaining,
            failure_count=p.failure_count or 0,
            fee_state=penalty.fee_state(p, ctx.today),
            last_failure_at=p.last_failure_at,
            accountability_fee_paid_date=p.accountability_fee_paid_date,
            penalty_model_version=p.penalty_model_version,
            today=ctx.today,
        )

    def _cached_summary(self) -> Optional[LedgerSummary]:
        if self._last_summary is None:
            return None
        return dataclasses.replace(self._last_summary, stale=True)

    # --- shared region ------------------------------------------------------

    def _shared_payload(self, ctx: _Context) -> Optional[dict[str, Any]]:
        if self.shared is None:
            return None
        goals: dict[str, Any] = {}
        for goal in ctx.goals:
            state = ctx.overrides_for(goal)
            decision = self._resolve(ctx, goal)
            goals[goal.app_identifier] = {
                "display_name": goal.display_name,
                "base_limit": goal.base_daily_limit_minutes,
                "pending_limit": goal.pending_limit_minutes,
                "effective_limit": decision.minutes,
                "is_blocked": decision.is_blocked,
                "extension_minutes": decision.extension_minutes,
                "restriction": state.restriction.model_dump(mode="json") if state.restriction else None,
                "block_window": state.block_window.model_dump(mode="json") if state.block_window else None,
                "session": state.session.model_dump(mode="json") if state.session else None,
            }
        history = streak_tracker.read_history(ctx.streak)
        since = ctx.today - timedelta(days=self.settings.ACTIVITY_HISTORY_DAYS)
        health = {
            stat.day.isoformat(): {"score": stat.health_score, "mood": stat.mood}
            for stat in ctx.db.query(DailyStat)
            .filter(DailyStat.day >= since, DailyStat.health_score.isnot(None))
            .all()
        }
        return {
            "goals": goals,
            "daily_blocked_status": {d.isoformat(): v for d, v in sorted(history.items())},
            "health_history": health,
        }

    def _publish(self, payload: dict[str, Any]) -> None:
        try:
            self.shared.publish(**payload)
        except OSError as exc:
            logger.warning("Could not publish shared region %s: %s", self.shared.path, exc)

    # --- helpers ------------------------------------------------------------

    def _goal(self, ctx: _Context, app_identifier: str) -> Goal:
        return goal_store.require_goal(ctx.db, app_identifier)

    def _resolve(self, ctx: _Context, goal: Goal) -> LimitDecision:
        state = ctx.overrides_for(goal)
        record = goal_store.get_usage_record(ctx.db, goal.id, ctx.today)
        decision = resolve_limit(
            goal, state, record, ctx.now, ctx.today,
            default_extra_minutes=self.settings.EXTRA_TIME_MINUTES,
        )
        if decision.restriction_expired:
            logger.info("Goal %s: restriction expired on read", goal.app_identifier)
            save_overrides(ctx.db, goal.id, state)
            ctx.dirty = True
        return decision

    def _save(self, ctx: _Context, goal: Goal) -> GoalState:
        state = ctx.overrides_for(goal)
        save_overrides(ctx.db, goal.id, state)
        ctx.dirty = True
        return GoalState(goal=goal, overrides=state, limit=self._resolve(ctx, goal))

    def _daily_stat(self, db: Session, day: date) -> DailyStat:
        stat = db.query(DailyStat).filter(DailyStat.day == day).first()
        if stat is None:
            stat = DailyStat(day=day, puzzles_solved=0)
            db.add(stat)
        return stat

    def _snapshot_day(self, db: Session, day: date, bases: dict[int, int]) -> None:
        """Store the closed day's health score from its usage against base limits."""
        used = sum(
            r.actual_usage_minutes or 0
            for r in goal_store.usage_records_on(db, day)
            if r.goal_id in bases
        )
        reading = health_score(used, sum(max(0, b or 0) for b in bases.values()))
        stat = self._daily_stat(db, day)
        stat.health_score = reading.score
        stat.mood = reading.mood
        logger.info("Day %s closed: health %d (%s)", day, reading.score, reading.mood)

    def _apply_usage(
        self,
        ctx: _Context,
        goal: Goal,
        minutes: int,
        exceeded: Optional[bool],
    ) -> tuple[UsageRecord, Optional[CreditTransaction]]:
        if exceeded is None:
            exceeded = minutes > self._resolve(ctx, goal).minutes
        record, newly_exceeded = goal_store.upsert_usage(ctx.db, goal.id, ctx.today, minutes, exceeded)
        txn = None
        if newly_exceeded:
            txn = penalty.report_breach(
                ctx.period, goal, ctx.now, ctx.today,
                last_failure_day=self.clock.local_date(ctx.period.last_failure_at),
                full_credits=self.full_credits,
            )
            ledger_store.record_transaction(ctx.db, txn, ctx.period, ctx.now)
        ctx.dirty = True
        return record, txn

    # --- startup ------------------------------------------------------------

    def migrate(self) -> ledger_store.MigrationReport:
        """Bring legacy penalty data onto the current model. Run once at startup."""
        with self._lock:
            db = self._open()
            try:
                report = ledger_store.migrate_legacy_ledger(db, self.clock, self.full_credits)
                db.commit()
                return report
            except SQLAlchemyError:
                db.rollback()
                raise
            finally:
                db.close()

    # --- ledger -------------------------------------------------------------

    def get_ledger_summary(self) -> LedgerSummary:
        return self._run("get_ledger_summary", self._summary, fallback=self._cached_summary)

    def report_usage(self, app_identifier: str, minutes: int, exceeded: Optional[bool] = None) -> UsageResult:
        def op(ctx: _Context) -> UsageResult:
            goal = self._goal(ctx, app_identifier)
            record, txn = self._apply_usage(ctx, goal, minutes, exceeded)
            return UsageResult(
                record=record,
                app_identifier=goal.app_identifier,
                transaction=txn,
                summary=self._summary(ctx),
            )
        return self._write("report_usage", op)

    def pay_accountability_fee(self) -> FeeResult:
        def op(ctx: _Context) -> FeeResult:
            txn = penalty.pay_fee(ctx.period, ctx.today, self.full_credits)
            if txn is not None:
                ledger_store.record_transaction(ctx.db, txn, ctx.period, ctx.now)
                ctx.dirty = True
            return FeeResult(transaction=txn, summary=self._summary(ctx))
        return self._write("pay_accountability_fee", op)

    def list_transactions(
        self, period_id: Optional[int] = None, limit: int = 50, offset: int = 0
    ) -> tuple[int, list[CreditTransaction]]:
        return self._run(
            "list_transactions",
            lambda ctx: ledger_store.list_transactions(ctx.db, period_id, limit, offset),
        )

    def list_periods(self, limit: int = 50, offset: int = 0) -> tuple[int, list[WeeklyPeriod]]:
        return self._run(
            "list_periods",
            lambda ctx: ledger_store.list_periods(ctx.db, limit, offset),
        )

    # --- goals --------------------------------------------------------------

    def add_goal(self, app_identifier: str, display_name: str, base_daily_limit_minutes: int) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = goal_store.create_goal(
                ctx.db, app_identifier, display_name, base_daily_limit_minutes, ctx.now
            )
            if goal not in ctx.goals:
                ctx.goals.append(goal)
            return self._save(ctx, goal)
        return self._write("add_goal", op)

    def list_goals(self) -> list[GoalState]:
        def op(ctx: _Context) -> list[GoalState]:
            return [
                GoalState(goal=g, overrides=ctx.overrides_for(g), limit=self._resolve(ctx, g))
                for g in ctx.goals
            ]
        return self._run("list_goals", op)

    def deactivate_goal(self, app_identifier: str) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            goal_store.deactivate_goal(ctx.db, goal, ctx.now)
            ctx.goals = [g for g in ctx.goals if g.id != goal.id]
            ctx.dirty = True
            return GoalState(goal=goal, overrides=ctx.overrides.pop(goal.id, OverrideState()))
        return self._write("deactivate_goal", op)

    def get_effective_limit(self, app_identifier: str) -> LimitDecision:
        def op(ctx: _Context) -> LimitDecision:
            return self._resolve(ctx, self._goal(ctx, app_identifier))

        def remember(decision: LimitDecision) -> None:
            self._last_limits[app_identifier] = decision

        return self._run(
            "get_effective_limit", op,
            fallback=lambda: self._last_limits.get(app_identifier),
            on_success=remember,
        )

    def set_base_limit(self, app_identifier: str, minutes: int) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            applied = goal_store.set_base_limit(ctx.db, goal, minutes, ctx.today, ctx.now)
            state = self._save(ctx, goal)
            state.applied_now = applied
            return state
        return self._write("set_base_limit", op)

    def extend_today(self, app_identifier: str, minutes: int) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            goal_store.extend_today(ctx.db, goal.id, ctx.today, minutes)
            return self._save(ctx, goal)
        return self._write("extend_today", op)

    # --- overrides ----------------------------------------------------------

    def _restriction_end(self, period: RestrictionPeriod, today: date) -> Optional[datetime]:
        if period == RestrictionPeriod.weekly:
            return self.clock.start_of_day(today + timedelta(days=7))
        if period == RestrictionPeriod.one_time:
            return self.clock.next_midnight(today)
        return None

    def set_restriction(self, app_identifier: str, period: RestrictionPeriod, minutes: int) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            ctx.overrides_for(goal).restriction = RestrictionWindow(
                period=period,
                limit_minutes=max(0, minutes),
                start_date=ctx.today,
                end_date=self._restriction_end(period, ctx.today),
            )
            logger.info("Goal %s: %s restriction at %d min", app_identifier, period.value, minutes)
            return self._save(ctx, goal)
        return self._write("set_restriction", op)

    def clear_restriction(self, app_identifier: str) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            ctx.overrides_for(goal).restriction = None
            return self._save(ctx, goal)
        return self._write("clear_restriction", op)

    def set_block_window(self, app_identifier: str, start: time, end: time) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            ctx.overrides_for(goal).block_window = BlockWindow(start=start, end=end)
            return self._save(ctx, goal)
        return self._write("set_block_window", op)

    def clear_block_window(self, app_identifier: str) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            ctx.overrides_for(goal).block_window = None
            return self._save(ctx, goal)
        return self._write("clear_block_window", op)

    def grant_extension(
        self,
        app_identifier: str,
        minutes: Optional[int] = None,
        scope: ExtensionScope = ExtensionScope.today,
        expires_at: Optional[datetime] = None,
    ) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            state = ctx.overrides_for(goal)
            cap = self.settings.MAX_EXTENSIONS_PER_DAY
            if state.extensions_granted_on(ctx.today) >= cap:
                raise ExtensionLimitReachedError(app_identifier, cap)

            granted = self.settings.PUZZLE_EXTENSION_MINUTES if minutes is None else max(0, minutes)
            until = None
            if scope == ExtensionScope.until:
                until = self.clock.localize(expires_at) if expires_at else self.clock.next_midnight(ctx.today)
            state.extensions.append(Extension(
                granted_minutes=granted,
                granted_at=ctx.now,
                day=ctx.today,
                scope=scope,
                expires_at=until,
            ))
            logger.info("Goal %s: +%d min extension (%s)", app_identifier, granted, scope.value)
            return self._save(ctx, goal)
        return self._write("grant_extension", op)

    def activate_session_mode(
        self,
        app_identifier: str,
        mode: SessionMode,
        minutes: Optional[int] = None,
    ) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            state = ctx.overrides_for(goal)
            if mode == SessionMode.none:
                state.session = None
            elif mode == SessionMode.extra_time:
                bonus = self.settings.EXTRA_TIME_MINUTES if minutes is None else max(0, minutes)
                state.session = SessionState(
                    mode=mode,
                    activated_at=ctx.now,
                    expires_at=ctx.now + timedelta(minutes=bonus),
                    extension_minutes=bonus,
                )
            else:
                state.session = SessionState(mode=mode, activated_at=ctx.now)
            logger.info("Goal %s: session mode %s", app_identifier, mode.value)
            return self._save(ctx, goal)
        return self._write("activate_session_mode", op)

    def end_session(self, app_identifier: str) -> GoalState:
        def op(ctx: _Context) -> GoalState:
            goal = self._goal(ctx, app_identifier)
            ctx.overrides_for(goal).session = None
            return self._save(ctx, goal)
        return self._write("end_session", op)

    # --- streak -------------------------------------------------------------

    def get_current_streak(self) -> streak_tracker.StreakSnapshot:
        return self._run("get_current_streak", lambda ctx: streak_tracker.snapshot(ctx.streak))

    def mark_day_activity(self, has_blocked_apps: bool) -> streak_tracker.StreakSnapshot:
        def op(ctx: _Context) -> streak_tracker.StreakSnapshot:
            streak_tracker.mark_day_activity(
                ctx.streak, ctx.today, has_blocked_apps, self.settings.ACTIVITY_HISTORY_DAYS
            )
            ctx.dirty = True
            return streak_tracker.snapshot(ctx.streak)
        return self._write("mark_day_activity", op)

    # --- daily stats / shared usage ----------------------------------------

    def record_daily_stats(
        self,
        screen_time_minutes: Optional[int] = None,
        puzzles_solved: Optional[int] = None,
    ) -> DailyStat:
        def op(ctx: _Context) -> DailyStat:
            stat = self._daily_stat(ctx.db, ctx.today)
            if screen_time_minutes is not None:
                # Zero is "not reported yet", same as the shared region.
                stat.screen_time_minutes = screen_time_minutes or None
            if puzzles_solved is not None:
                stat.puzzles_solved = max(0, puzzles_solved)
            ctx.db.flush()
            return stat
        return self._write("record_daily_stats", op)

    def sync_shared_usage(self) -> SyncResult:
        """Pull today's usage written by the enforcement process."""
        def op(ctx: _Context) -> SyncResult:
            result = SyncResult(day=ctx.today)
            if self.shared is None:
                return result
            usage = self.shared.app_usage(ctx.today)
            for goal in ctx.goals:
                minutes = usage.get(goal.app_identifier)
                if minutes is None:
                    continue
                _, txn = self._apply_usage(ctx, goal, minutes, None)
                result.apps_updated.append(goal.app_identifier)
                if txn is not None:
                    result.breaches += 1

            screen_time = self.shared.screen_time(ctx.today)
            puzzles = self.shared.puzzles_solved(ctx.today)
            if screen_time is not None or puzzles is not None:
                stat = self._daily_stat(ctx.db, ctx.today)
                if screen_time is not None:
                    stat.screen_time_minutes = screen_time
                if puzzles is not None:
                    stat.puzzles_solved = puzzles
                ctx.dirty = True
            result.screen_time_minutes = screen_time
            result.puzzles_solved = puzzles
            if result.apps_updated:
                logger.info("Synced shared usage for %d app(s)", len(result.apps_updated))
            return result
        return self._write("sync_shared_usage", op)

    # --- pet ----------------------------------------------------------------

    def _pet(self, db: Session) -> Optional[PetProfile]:
        return db.query(PetProfile).order_by(PetProfile.id.asc()).first()

    def _live_health(self, ctx: _Context) -> PetHealth:
        used = 0
        limit = 0
        for goal in ctx.goals:
            record = goal_store.get_usage_record(ctx.db, goal.id, ctx.today)
            used += record.actual_usage_minutes if record else 0
            limit += self._resolve(ctx, goal).minutes
        reading = health_score(used, limit)
        pet = self._pet(ctx.db)
        if pet is not None and pet.health_state != reading.mood:
            pet.health_state = reading.mood
        return PetHealth(
            pet=pet,
            reading=reading,
            total_used_minutes=used,
            total_limit_minutes=limit,
            day=ctx.today,
        )

    def get_pet(self) -> Optional[PetProfile]:
        return self._run("get_pet", lambda ctx: self._live_health(ctx).pet)

    def set_pet(self, pet_type: PetType, name: str) -> PetProfile:
        def op(ctx: _Context) -> PetProfile:
            pet = self._pet(ctx.db)
            if pet is None:
                pet = PetProfile(pet_type=pet_type, name=name)
                ctx.db.add(pet)
            else:
                pet.pet_type = pet_type
                pet.name = name
            ctx.db.flush()
            return self._live_health(ctx).pet
        return self._write("set_pet", op)

    def get_pet_health(self) -> PetHealth:
        return self._run("get_pet_health", self._live_health)

    # --- achievements -------------------------------------------------------

    def _achievement_snapshot(self, ctx: _Context, unlocked: frozenset[str]) -> achievements.AchievementSnapshot:
        since = ctx.today - timedelta(days=_RECENT_DAYS)
        stats = (
            ctx.db.query(DailyStat)
            .filter(DailyStat.day >= since)
            .order_by(DailyStat.day.asc())
            .all()
        )
        history_days = (
            ctx.db.query(DailyStat)
            .filter(DailyStat.day < ctx.today)
            .count()
        )
        today_stat = next((s for s in stats if s.day == ctx.today), None)
        apps_used = sum(
            1 for r in goal_store.usage_records_on(ctx.db, ctx.today)
            if (r.actual_usage_minutes or 0) > 0
        )
        health = self._live_health(ctx)
        pet = health.pet
        return achievements.AchievementSnapshot(
            today=ctx.today,
            local_hour=ctx.now.hour,
            current_streak=ctx.streak.current_streak or 0,
            longest_streak=ctx.streak.longest_streak or 0,
            credits_remaining=ctx.period.credits_remaining,
            active_goal_count=len(ctx.goals),
            history_days=history_days,
            recent_screen_time=tuple(
                s.screen_time_minutes for s in stats
                if s.day < ctx.today and s.screen_time_minutes is not None
            ),
            today_screen_time_minutes=today_stat.screen_time_minutes if today_stat else None,
            puzzles_by_day={s.day: s.puzzles_solved or 0 for s in stats},
            apps_with_usage_today=apps_used,
            pet_type=PetType(pet.pet_type).value if pet else None,
            pet_name=pet.name if pet else None,
            pet_mood=health.reading.mood if pet else None,
            unlocked=unlocked,
        )

    def get_unlocked_achievements(self) -> AchievementResult:
        def op(ctx: _Context) -> AchievementResult:
            rows = ctx.db.query(UnlockedAchievement).all()
            unlocked = frozenset(r.achievement_id for r in rows)
            new_ids = achievements.evaluate(self._achievement_snapshot(ctx, unlocked))
            for achievement_id in sorted(new_ids):
                ctx.db.add(UnlockedAchievement(achievement_id=achievement_id, unlocked_at=ctx.now))
            if new_ids:
                logger.info("Unlocked %d achievement(s): %s", len(new_ids), ", ".join(sorted(new_ids)))
                ctx.db.flush()
            return AchievementResult(
                unlocked=sorted(unlocked | new_ids),
                newly_unlocked=sorted(new_ids),
            )
        return self._run("get_unlocked_achievements", op)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

def get_ledger(request: Request) -> AccountabilityLedger:
    return request.app.state.ledger
