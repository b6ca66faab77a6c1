"""
Habit request / response schemas.

POST  /habits                 → HabitCreateRequest   → HabitResponse
PATCH /habits/{id}            → HabitUpdateRequest   → HabitResponse
POST  /habits/{id}/responses  → HabitAnswerRequest   → HabitResponse
GET   /habits/{id}/events     → HabitEventListResponse
GET   /habits/summary         → HabitSummaryResponse
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitual.services.interval_policy import Response


def _strip_name(v):
    stripped = v.strip() if isinstance(v, str) else v
    if isinstance(stripped, str) and not stripped:
        raise ValueError("name must not be empty after stripping whitespace")
    return stripped


class HabitCreateRequest(BaseModel):
    name: Annotated[str, Field(
        min_length=1,
        max_length=256,
        description="Habit name. Stripped of leading/trailing whitespace.",
        examples=["Drink Water"],
    )]
    description: str = Field(default="", max_length=10_000)
    icon: Optional[str] = Field(default=None, max_length=32, examples=["💧"])
    frequency: str = Field(
        default="Daily",
        description='"Daily" | "Weekly" | "Monthly"',
        examples=["Daily"],
    )

    @field_validator("name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        return _strip_name(v)


class HabitUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=256)
    description: Optional[str] = Field(default=None, max_length=10_000)
    icon: Optional[str] = Field(default=None, max_length=32)
    frequency: Optional[str] = Field(default=None, description='"Daily" | "Weekly" | "Monthly"')
    is_active: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        return _strip_name(v) if v is not None else v


class HabitAnswerRequest(BaseModel):
    response: Response = Field(description='"success" | "failure" | "later"')


class HabitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    icon: str
    frequency: str
    is_active: bool
    created_at: str

    current_interval: float = Field(description="Seconds until the next reminder.")
    next_notification_date: str
    consecutive_successes: int
    current_interval_multiplier: int

    success_rate: float = Field(description="Percentage of responses that were successes.")
    streak_count: int
    total_responses: int
    total_reminders: int

    total_attempts: int
    successful_attempts: int
    last_checked_at: Optional[str] = None


class HabitEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    kind: str = Field(
        description=(
            '"reminder_sent" | "overdue_prompt" | "response_success" | '
            '"response_failure" | "response_later"'
        )
    )
    timestamp: str
    interval_used: Optional[float] = None
    note: Optional[str] = None


class HabitEventListResponse(BaseModel):
    total: int
    items: list[HabitEventResponse]


class HabitSummaryResponse(BaseModel):
    total: int
    active: int
    overdue: int
