"""
Goal store — monitored apps and their per-day usage records.

Goals are looked up by app identifier; a deactivated goal is invisible
to every lookup except create_goal, which revives it.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from screenledger.core.errors import GoalAlreadyExistsError, GoalNotFoundError
from screenledger.models.goal import Goal
from screenledger.models.usage_record import UsageRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

def _by_app(db: Session, app_identifier: str) -> Optional[Goal]:
    return (
        db.query(Goal)
        .filter(Goal.app_identifier == app_identifier)
        .order_by(Goal.is_active.desc(), Goal.id.desc())
        .first()
    )


def get_goal(db: Session, app_identifier: str) -> Optional[Goal]:
    goal = _by_app(db, app_identifier)
    return goal if goal is not None and goal.is_active else None


def require_goal(db: Session, app_identifier: str) -> Goal:
    goal = get_goal(db, app_identifier)
    if goal is None:
        raise GoalNotFoundError(app_identifier)
    return goal


def list_goals(db: Session, include_inactive: bool = False) -> list[Goal]:
    q = db.query(Goal)
    if not include_inactive:
        q = q.filter(Goal.is_active.is_(True))
    return q.order_by(Goal.id.asc()).all()


def create_goal(
    db: Session,
    app_identifier: str,
    display_name: str,
    base_daily_limit_minutes: int,
    now: datetime,
) -> Goal:
    existing = _by_app(db, app_identifier)
    minutes = max(0, base_daily_limit_minutes)
    if existing is not None and existing.is_active:
        raise GoalAlreadyExistsError(app_identifier)

    if existing is not None:
        existing.is_active = True
        existing.display_name = display_name
        existing.base_daily_limit_minutes = minutes
        existing.pending_limit_minutes = None
        existing.updated_at = now
        logger.info("Goal %s reactivated at %d min", app_identifier, minutes)
        db.flush()
        return existing

    goal = Goal(
        app_identifier=app_identifier,
        display_name=display_name,
        base_daily_limit_minutes=minutes,
        is_active=True,
        updated_at=now,
    )
    db.add(goal)
    db.flush()
    logger.info("Goal %s created at %d min", app_identifier, minutes)
    return goal


def set_base_limit(db: Session, goal: Goal, minutes: int, today: date, now: datetime) -> bool:
    """
    Change the base limit. Returns True when applied immediately, False
    when deferred to the next daily reset because the app was already
    used today.
    """
    minutes = max(0, minutes)
    record = get_usage_record(db, goal.id, today)
    goal.updated_at = now
    if record is not None and (record.actual_usage_minutes or 0) > 0:
        goal.pending_limit_minutes = minutes
        logger.info("Goal %s: limit %d pending until tomorrow", goal.app_identifier, minutes)
        db.flush()
        return False

    goal.base_daily_limit_minutes = minutes
    goal.pending_limit_minutes = None
    logger.info("Goal %s: limit set to %d", goal.app_identifier, minutes)
    db.flush()
    return True


def deactivate_goal(db: Session, goal: Goal, now: datetime) -> Goal:
    goal.is_active = False
    goal.updated_at = now
    db.flush()
    logger.info("Goal %s deactivated", goal.app_identifier)
    return goal


# ---------------------------------------------------------------------------
# Usage records
# ---------------------------------------------------------------------------

def get_usage_record(db: Session, goal_id: int, day: date) -> Optional[UsageRecord]:
    return (
        db.query(UsageRecord)
        .filter(UsageRecord.goal_id == goal_id, UsageRecord.day == day)
        .first()
    )


def usage_records_on(db: Session, day: date) -> list[UsageRecord]:
    return db.query(UsageRecord).filter(UsageRecord.day == day).all()


def upsert_usage(
    db: Session,
    goal_id: int,
    day: date,
    minutes: int,
    exceeded: bool,
) -> tuple[UsageRecord, bool]:
    """
    Create or update the (goal, day) record. Returns the record and whether
    this report turned it from within-limit to exceeded.
    """
    record = get_usage_record(db, goal_id, day)
    if record is None:
        record = UsageRecord(
            goal_id=goal_id,
            day=day,
            actual_usage_minutes=0,
            did_exceed_limit=False,
        )
        db.add(record)

    newly_exceeded = exceeded and not record.did_exceed_limit
    record.actual_usage_minutes = max(0, minutes)
    record.did_exceed_limit = bool(record.did_exceed_limit or exceeded)
    db.flush()
    return record, newly_exceeded


def extend_today(db: Session, goal_id: int, day: date, minutes: int) -> UsageRecord:
    """Legacy per-day bonus stored on the usage record itself."""
    record = get_usage_record(db, goal_id, day)
    if record is None:
        record = UsageRecord(
            goal_id=goal_id,
            day=day,
            actual_usage_minutes=0,
            did_exceed_limit=False,
        )
        db.add(record)
    record.extended_limit_minutes = (record.extended_limit_minutes or 0) + max(0, minutes)
    db.flush()
    return record
