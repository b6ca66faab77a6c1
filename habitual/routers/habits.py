"""
Habits router.

POST   /habits                  — create a habit (schedules its first reminder)
GET    /habits                  — list habits
GET    /habits/summary          — total / active / overdue counts
GET    /habits/{id}             — one habit with its derived statistics
PATCH  /habits/{id}             — edit name, description, icon, frequency, active flag
DELETE /habits/{id}             — delete a habit and its events
GET    /habits/{id}/events      — event log, newest first
POST   /habits/{id}/responses   — record success / failure / later
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response as HTTPResponse, status
from sqlalchemy.orm import Session

from habitual.db.base import get_db
from habitual.dependencies import get_overdue_queue, get_reminder_adapter
from habitual.models.habit import Habit
from habitual.models.habit_event import HabitEvent
from habitual.schemas.common import INVALID, NOT_FOUND, STORAGE
from habitual.schemas.habit import (
    HabitAnswerRequest,
    HabitCreateRequest,
    HabitEventListResponse,
    HabitEventResponse,
    HabitResponse,
    HabitSummaryResponse,
    HabitUpdateRequest,
)
from habitual.services import habits as habit_service
from habitual.services.overdue_queue import OverdueQueueManager
from habitual.services.reminders import ReminderAdapter

router = APIRouter(prefix="/habits", tags=["habits"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def habit_to_response(h: Habit) -> HabitResponse:
    return HabitResponse(
        id=h.id,
        name=h.name,
        description=h.description,
        icon=h.icon,
        frequency=h.frequency.value,
        is_active=h.is_active,
        created_at=h.created_at.isoformat(),
        current_interval=h.current_interval,
        next_notification_date=h.next_notification_date.isoformat(),
        consecutive_successes=h.consecutive_successes,
        current_interval_multiplier=h.current_interval_multiplier,
        success_rate=round(h.success_rate, 2),
        streak_count=h.streak_count,
        total_responses=h.total_responses,
        total_reminders=h.total_reminders,
        total_attempts=h.total_attempts,
        successful_attempts=h.successful_attempts,
        last_checked_at=h.last_checked_at.isoformat() if h.last_checked_at else None,
    )


def _event_to_response(ev: HabitEvent) -> HabitEventResponse:
    return HabitEventResponse(
        id=ev.id,
        habit_id=ev.habit_id,
        kind=ev.kind.value,
        timestamp=ev.timestamp.isoformat(),
        interval_used=ev.interval_used,
        note=ev.note,
    )


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=HabitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a habit",
    responses={**INVALID, **STORAGE},
)
def create_habit(
    payload: HabitCreateRequest,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    """
    Create a habit. The first reminder fires one base period from now
    (Daily = 1 day, Weekly = 7 days, Monthly = 30 days).
    """
    habit = habit_service.create_habit(
        db, queue, reminders,
        name=payload.name,
        frequency=payload.frequency,
        description=payload.description,
        icon=payload.icon,
    )
    return habit_to_response(habit)


@router.get("", response_model=list[HabitResponse], summary="List habits")
def list_habits(
    active_only: bool = Query(default=False, description="Only return active habits."),
    db: Session = Depends(get_db),
):
    return [habit_to_response(h) for h in habit_service.list_habits(db, active_only=active_only)]


@router.get("/summary", response_model=HabitSummaryResponse, summary="Habit counts")
def habits_summary(db: Session = Depends(get_db)):
    return HabitSummaryResponse(**habit_service.habit_summary(db))


# ---------------------------------------------------------------------------
# Single habit
# ---------------------------------------------------------------------------

@router.get("/{habit_id}", response_model=HabitResponse, responses=NOT_FOUND)
def get_habit(habit_id: int, db: Session = Depends(get_db)):
    return habit_to_response(habit_service.get_habit(db, habit_id))


@router.patch(
    "/{habit_id}",
    response_model=HabitResponse,
    summary="Edit a habit",
    responses={**NOT_FOUND, **INVALID, **STORAGE},
)
def update_habit(
    habit_id: int,
    payload: HabitUpdateRequest,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    """
    Changing `frequency` reschedules immediately from the unchanged multiplier.
    Setting `is_active=false` cancels the pending reminder and removes the
    habit from the confirmation queue.
    """
    habit = habit_service.update_habit(
        db, queue, reminders, habit_id,
        name=payload.name,
        description=payload.description,
        icon=payload.icon,
        frequency=payload.frequency,
        is_active=payload.is_active,
    )
    return habit_to_response(habit)


@router.delete(
    "/{habit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a habit and its event log",
    responses={**NOT_FOUND, **STORAGE},
)
def delete_habit(
    habit_id: int,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    habit_service.delete_habit(db, queue, reminders, habit_id)
    return HTTPResponse(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{habit_id}/events",
    response_model=HabitEventListResponse,
    summary="Event log (newest first)",
    responses=NOT_FOUND,
)
def list_habit_events(
    habit_id: int,
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    total, items = habit_service.get_habit_events(db, habit_id, limit=limit, offset=offset)
    return HabitEventListResponse(
        total=total,
        items=[_event_to_response(ev) for ev in items],
    )


@router.post(
    "/{habit_id}/responses",
    response_model=HabitResponse,
    summary="Record a response to a reminder",
    responses={**NOT_FOUND, **STORAGE},
)
def record_response(
    habit_id: int,
    payload: HabitAnswerRequest,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    """
    ### Responses
    | Response | Effect |
    |---|---|
    | `success` | streak + 1; every 3rd in a row raises the multiplier by 1 |
    | `failure` | multiplier back to 1, streak back to 0 |
    | `later`   | interval / 3, never below one base period |
    """
    habit = habit_service.record_response(db, queue, reminders, habit_id, payload.response)
    return habit_to_response(habit)
