"""
Overdue confirmation and reminder schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field

from habitual.schemas.habit import HabitResponse
from habitual.services.interval_policy import Response
from habitual.services.reminders import ReminderAction


class ConfirmationStateResponse(BaseModel):
    state: str = Field(description='"idle" | "presenting"')
    current: Optional[HabitResponse] = None
    pending: list[int] = Field(default_factory=list, description="Queued habit ids, in order.")


class ScanResponse(ConfirmationStateResponse):
    overdue: list[int] = Field(default_factory=list, description="Habit ids found overdue by this scan.")


class ResolveRequest(BaseModel):
    response: Response


class ReminderActionRequest(BaseModel):
    habit_id: int
    action: ReminderAction


class PendingReminderResponse(BaseModel):
    habit_id: int
    fire_at: str
    title: str
    body: str
    is_test: bool


class PendingReminderListResponse(BaseModel):
    total: int
    items: list[PendingReminderResponse]


class ReminderTestResponse(BaseModel):
    scheduled: bool
    delay_seconds: float
