"""
Habit service — the operations the presentation layer calls.

Every mutating operation validates first, mutates in memory, and commits
once: the response event and the updated habit fields land together or not
at all. Reminder (re)scheduling happens after that commit and never rolls
it back.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from habitual.core.enums import Frequency, parse_frequency
from habitual.core.errors import (
    HabitNotFoundError,
    HabitValidationError,
    NothingToConfirmError,
    StorageError,
)
from habitual.db.types import ensure_utc
from habitual.models.habit import Habit
from habitual.models.habit_event import HabitEvent
from habitual.services.interval_policy import Response
from habitual.services.overdue_queue import OverdueQueueManager, scan_overdue
from habitual.services.reminders import (
    ReminderAction,
    ReminderAdapter,
    cancel_reminder,
    schedule_reminder,
)
from habitual.services.storage import commit

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise HabitValidationError("Habit name must not be empty.", field="name")
    return cleaned


def _reschedule(
    db: Session,
    adapter: ReminderAdapter,
    habit: Habit,
    now: datetime,
    log_event: bool = True,
) -> None:
    """Post-commit side effect: a failure here never fails the operation."""
    if not schedule_reminder(adapter, habit, now, log_event=log_event) or not log_event:
        return
    try:
        commit(db, "log_reminder_sent")
    except StorageError:
        logger.warning("reminder for habit %s scheduled but not logged", habit.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_habit(db: Session, habit_id: int) -> Habit:
    habit = db.get(Habit, habit_id)
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


def list_habits(db: Session, active_only: bool = False) -> list[Habit]:
    q = db.query(Habit)
    if active_only:
        q = q.filter(Habit.is_active.is_(True))
    return q.order_by(Habit.created_at, Habit.id).all()


def get_habit_events(
    db: Session,
    habit_id: int,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[HabitEvent]]:
    """Return (total, page) of a habit's events, newest first."""
    get_habit(db, habit_id)
    q = db.query(HabitEvent).filter(HabitEvent.habit_id == habit_id)
    total = q.count()
    items = (
        q.order_by(HabitEvent.timestamp.desc(), HabitEvent.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


def habit_summary(db: Session, now: datetime | None = None) -> dict:
    now = ensure_utc(now)
    total = db.query(func.count(Habit.id)).scalar() or 0
    active = db.query(func.count(Habit.id)).filter(Habit.is_active.is_(True)).scalar() or 0
    overdue = sum(1 for h in list_habits(db, active_only=True) if h.is_overdue(now))
    return {"total": total, "active": active, "overdue": overdue}


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def create_habit(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    name: str,
    frequency: Frequency | str = Frequency.daily,
    description: str = "",
    icon: Optional[str] = None,
    now: datetime | None = None,
) -> Habit:
    now = ensure_utc(now)
    habit = Habit(
        name=_clean_name(name),
        description=description,
        frequency=parse_frequency(frequency),
        icon=icon,
        now=now,
    )
    db.add(habit)
    commit(db, "create_habit")
    db.refresh(habit)
    logger.info("created habit %s %r (%s)", habit.id, habit.name, habit.frequency.value)

    _reschedule(db, adapter, habit, now)
    scan_overdue(db, queue)
    return habit


def update_habit(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    habit_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    icon: Optional[str] = None,
    frequency: Frequency | str | None = None,
    is_active: Optional[bool] = None,
    now: datetime | None = None,
) -> Habit:
    now = ensure_utc(now)
    habit = get_habit(db, habit_id)

    # Validate everything before touching the habit.
    new_name = _clean_name(name) if name is not None else None
    new_frequency = parse_frequency(frequency) if frequency is not None else None

    if new_name is not None:
        habit.rename(new_name)
    if description is not None:
        habit.description = description
    if icon is not None:
        habit.icon = icon

    frequency_changed = new_frequency is not None and new_frequency != habit.frequency
    if frequency_changed:
        habit.change_frequency(new_frequency, now)

    activation_changed = is_active is not None and is_active != habit.is_active
    if activation_changed:
        habit.is_active = is_active

    commit(db, "update_habit")
    db.refresh(habit)

    if activation_changed and not habit.is_active:
        cancel_reminder(adapter, habit.id)
        queue.discard(habit.id)
        logger.info("deactivated habit %s", habit.id)
    elif activation_changed:
        _reschedule(db, adapter, habit, now)
    elif frequency_changed:
        # Only the platform reminder moves; no event is appended.
        _reschedule(db, adapter, habit, now, log_event=False)
    return habit


def delete_habit(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    habit_id: int,
) -> None:
    habit = get_habit(db, habit_id)
    db.delete(habit)
    commit(db, "delete_habit")
    logger.info("deleted habit %s", habit_id)

    cancel_reminder(adapter, habit_id)
    queue.discard(habit_id)
    scan_overdue(db, queue)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def record_response(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    habit_id: int,
    response: Response | str,
    now: datetime | None = None,
) -> Habit:
    """
    Apply a success / failure / later answer, commit it atomically, then
    reschedule the reminder. An answered habit leaves the overdue queue;
    if it was being confirmed, the next queued habit is presented.
    """
    now = ensure_utc(now)
    response = Response(response)
    habit = get_habit(db, habit_id)

    habit.record(response, now)
    commit(db, "record_response")
    db.refresh(habit)
    logger.info(
        "habit %s answered %s: interval=%ss multiplier=%s streak=%s",
        habit.id, response.value, int(habit.current_interval),
        habit.current_interval_multiplier, habit.consecutive_successes,
    )

    queue.discard(habit.id)
    _reschedule(db, adapter, habit, now)
    return habit


def confirm_current(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    response: Response | str,
    now: datetime | None = None,
) -> Optional[Habit]:
    """
    Answer the habit in the confirmation slot. A habit that was deleted
    while presented is dropped and the queue advances; returns None then.
    """
    habit_id = queue.current
    if habit_id is None:
        raise NothingToConfirmError()
    try:
        return record_response(db, queue, adapter, habit_id, response, now)
    except HabitNotFoundError:
        logger.info("habit %s disappeared before confirmation; advancing", habit_id)
        queue.discard(habit_id)
        return None


def handle_action(
    db: Session,
    queue: OverdueQueueManager,
    adapter: ReminderAdapter,
    habit_id: int,
    action: ReminderAction | str,
    now: datetime | None = None,
) -> Habit:
    """
    Route a reminder action. The three answers record a response; "opened"
    puts the habit in front of the confirmation queue without resolving it.
    """
    action = ReminderAction(action)
    if action is ReminderAction.opened:
        habit = get_habit(db, habit_id)
        queue.prioritize(habit.id)
        return habit
    return record_response(db, queue, adapter, habit_id, Response(action.value), now)
