"""
Reminders router — the platform side of reminder delivery.

GET    /reminders/pending         — reminders waiting to fire
DELETE /reminders/pending         — cancel every pending reminder
POST   /reminders/actions         — a user acted on a delivered reminder
POST   /reminders/test/{habit_id} — fire a test reminder after a short delay
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response as HTTPResponse, status
from sqlalchemy.orm import Session

from habitual.core.config import settings
from habitual.db.base import get_db
from habitual.dependencies import get_overdue_queue, get_reminder_adapter
from habitual.routers.habits import habit_to_response
from habitual.schemas.common import NOT_FOUND, STORAGE
from habitual.schemas.confirmation import (
    PendingReminderListResponse,
    PendingReminderResponse,
    ReminderActionRequest,
    ReminderTestResponse,
)
from habitual.schemas.habit import HabitResponse
from habitual.services import habits as habit_service
from habitual.services.overdue_queue import OverdueQueueManager
from habitual.services.reminders import ReminderAdapter, schedule_test_reminder

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("/pending", response_model=PendingReminderListResponse, summary="Pending reminders")
def pending(reminders: ReminderAdapter = Depends(get_reminder_adapter)):
    items = [
        PendingReminderResponse(
            habit_id=r.habit_id,
            fire_at=r.fire_at.isoformat(),
            title=r.title,
            body=r.body,
            is_test=r.is_test,
        )
        for r in reminders.pending()
    ]
    return PendingReminderListResponse(total=len(items), items=items)


@router.delete(
    "/pending",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel every pending reminder",
)
def cancel_all(reminders: ReminderAdapter = Depends(get_reminder_adapter)):
    """Habit schedules are untouched; overdue habits still surface through the scan."""
    reminders.cancel_all()
    return HTTPResponse(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/actions",
    response_model=HabitResponse,
    summary="Handle a reminder action",
    responses={**NOT_FOUND, **STORAGE},
)
def reminder_action(
    payload: ReminderActionRequest,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    """
    ### Actions
    | Action | Effect |
    |---|---|
    | `success` / `failure` / `later` | recorded exactly like `POST /habits/{id}/responses` |
    | `opened` | reminder tapped without an answer: the habit goes to the confirmation queue |
    """
    habit = habit_service.handle_action(db, queue, reminders, payload.habit_id, payload.action)
    return habit_to_response(habit)


@router.post(
    "/test/{habit_id}",
    response_model=ReminderTestResponse,
    summary="Schedule a test reminder",
    responses=NOT_FOUND,
)
def test_reminder(
    habit_id: int,
    delay: Optional[float] = Query(
        default=None, gt=0, le=3600,
        description=f"Seconds until delivery. Defaults to {settings.TEST_REMINDER_DELAY_SECONDS}.",
    ),
    db: Session = Depends(get_db),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    """Does not touch the habit's schedule or event log."""
    habit = habit_service.get_habit(db, habit_id)
    effective = settings.TEST_REMINDER_DELAY_SECONDS if delay is None else delay
    scheduled = schedule_test_reminder(reminders, habit, delay=effective)
    return ReminderTestResponse(scheduled=scheduled, delay_seconds=effective)
