"""
Confirmation router — the overdue queue as seen by the client.

POST /confirmations/scan     — app came to the foreground: queue overdue habits
GET  /confirmations/current  — habit awaiting confirmation + pending ids
POST /confirmations/resolve  — answer the current habit and advance
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from habitual.core.errors import HabitNotFoundError
from habitual.db.base import get_db
from habitual.dependencies import get_overdue_queue, get_reminder_adapter
from habitual.routers.habits import habit_to_response
from habitual.schemas.common import ErrorResponse, STORAGE
from habitual.schemas.confirmation import ConfirmationStateResponse, ResolveRequest, ScanResponse
from habitual.schemas.habit import HabitResponse
from habitual.services import habits as habit_service
from habitual.services.overdue_queue import OverdueQueueManager, scan_overdue
from habitual.services.reminders import ReminderAdapter

router = APIRouter(prefix="/confirmations", tags=["confirmations"])


def _current_habit(db: Session, queue: OverdueQueueManager) -> Optional[HabitResponse]:
    habit_id = queue.current
    if habit_id is None:
        return None
    try:
        return habit_to_response(habit_service.get_habit(db, habit_id))
    except HabitNotFoundError:
        queue.discard(habit_id)
        return _current_habit(db, queue)


def _state(db: Session, queue: OverdueQueueManager) -> ConfirmationStateResponse:
    current = _current_habit(db, queue)
    return ConfirmationStateResponse(
        state=queue.state.value,
        current=current,
        pending=list(queue.pending),
    )


@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="Queue overdue habits for confirmation",
    responses=STORAGE,
)
def scan(
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
):
    """
    Call when the app becomes active. Every active habit whose reminder time
    has passed gets an `overdue_prompt` event and is queued, most overdue
    first. At most one habit is presented at a time.
    """
    overdue = scan_overdue(db, queue)
    state = _state(db, queue)
    return ScanResponse(**state.model_dump(), overdue=[h.id for h in overdue])


@router.get(
    "/current",
    response_model=ConfirmationStateResponse,
    summary="Habit currently awaiting confirmation",
)
def current(
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
):
    return _state(db, queue)


@router.post(
    "/resolve",
    response_model=ConfirmationStateResponse,
    summary="Answer the current habit and present the next one",
    responses={
        409: {"model": ErrorResponse, "description": "Nothing is awaiting confirmation."},
        **STORAGE,
    },
)
def resolve(
    payload: ResolveRequest,
    db: Session = Depends(get_db),
    queue: OverdueQueueManager = Depends(get_overdue_queue),
    reminders: ReminderAdapter = Depends(get_reminder_adapter),
):
    habit_service.confirm_current(db, queue, reminders, payload.response)
    return _state(db, queue)
