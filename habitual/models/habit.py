"""
Habit — the stateful entity owning the reminder schedule.

Scheduling state (current_interval, next_notification_date, multiplier,
consecutive_successes) is mutated only through the record_* methods and
change_frequency(). Statistics are derived from the event log on every
read; total_attempts / successful_attempts / last_checked_at are kept for
display compatibility only.

next_notification_date is a snapshot: now + current_interval at the moment
it was last computed. It never advances on its own.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from habitual.core.enums import EventKind, Frequency, parse_frequency
from habitual.core.errors import HabitValidationError
from habitual.db.base import Base
from habitual.db.types import UTCDateTime, ensure_utc
from habitual.models.habit_event import HabitEvent
from habitual.services.interval_policy import (
    Response,
    SchedulingState,
    apply_response,
    base_interval,
    next_notification_date,
    reschedule_for_frequency,
)

POPULAR_ICONS = [
    "🧘", "🏃", "📚", "💧", "🧘‍♀️", "🚴", "🍎",
    "💪", "🎯", "✍️", "🎨", "🎵", "🌿", "☕",
]
DEFAULT_ICON = POPULAR_ICONS[0]

_RESPONSE_EVENTS = {
    Response.success: EventKind.response_success,
    Response.failure: EventKind.response_failure,
    Response.later: EventKind.response_later,
}


class Habit(Base):
    __tablename__ = "habits"
    __table_args__ = (
        CheckConstraint("current_interval > 0", name="ck_habit_interval_positive"),
        CheckConstraint("current_interval_multiplier >= 1", name="ck_habit_multiplier_min"),
        CheckConstraint("consecutive_successes >= 0", name="ck_habit_streak_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_ICON)
    frequency: Mapped[Frequency] = mapped_column(
        Enum(Frequency, name="habit_frequency_enum"),
        nullable=False,
        default=Frequency.daily,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Scheduling state
    current_interval: Mapped[float] = mapped_column(Float, nullable=False)
    next_notification_date: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, index=True
    )
    consecutive_successes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_interval_multiplier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Legacy display counters; the event log is authoritative
    total_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    events: Mapped[list[HabitEvent]] = relationship(
        back_populates="habit",
        cascade="all, delete-orphan",
        order_by=HabitEvent.id,
    )

    def __init__(
        self,
        name: str,
        description: str = "",
        frequency: Frequency | str = Frequency.daily,
        icon: str | None = None,
        now: datetime | None = None,
        **kwargs,
    ):
        frequency = parse_frequency(frequency)
        now = ensure_utc(now)
        interval = base_interval(frequency)
        super().__init__(
            name=name,
            description=description or "",
            icon=icon or DEFAULT_ICON,
            frequency=frequency,
            is_active=True,
            created_at=now,
            current_interval=interval,
            next_notification_date=next_notification_date(now, interval),
            consecutive_successes=0,
            current_interval_multiplier=1,
            total_attempts=0,
            successful_attempts=0,
            last_checked_at=None,
            **kwargs,
        )

    @validates("name")
    def _validate_name(self, key, value):
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise HabitValidationError("Habit name must not be empty.", field="name")
        return cleaned

    @validates("frequency")
    def _validate_frequency(self, key, value):
        return parse_frequency(value)

    def __repr__(self) -> str:
        return f"<Habit {self.id} {self.name!r} {self.frequency.value} x{self.current_interval_multiplier}>"

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @property
    def scheduling_state(self) -> SchedulingState:
        return SchedulingState(
            frequency=self.frequency,
            multiplier=self.current_interval_multiplier,
            consecutive_successes=self.consecutive_successes,
        )

    @property
    def current_frequency_interval(self) -> float:
        return self.scheduling_state.frequency_interval

    def is_overdue(self, now: datetime | None = None) -> bool:
        return self.is_active and self.next_notification_date < ensure_utc(now)

    def record_success(self, now: datetime | None = None) -> HabitEvent:
        return self._record(Response.success, now)

    def record_failure(self, now: datetime | None = None) -> HabitEvent:
        return self._record(Response.failure, now)

    def record_later(self, now: datetime | None = None) -> HabitEvent:
        return self._record(Response.later, now)

    def record(self, response: Response, now: datetime | None = None) -> HabitEvent:
        return self._record(Response(response), now)

    def _record(self, response: Response, now: datetime | None) -> HabitEvent:
        now = ensure_utc(now)
        transition = apply_response(self.scheduling_state, response)

        self.current_interval_multiplier = transition.state.multiplier
        self.consecutive_successes = transition.state.consecutive_successes
        self.current_interval = transition.interval
        self.next_notification_date = next_notification_date(now, transition.interval)

        if transition.counts_attempt:
            self.total_attempts += 1
            self.last_checked_at = now
        if transition.counts_success:
            self.successful_attempts += 1

        return self.log_event(
            _RESPONSE_EVENTS[response], now=now, interval=transition.interval_used
        )

    def change_frequency(self, frequency: Frequency | str, now: datetime | None = None) -> None:
        """Switch base period; multiplier and streak survive, no event is logged."""
        frequency = parse_frequency(frequency)
        now = ensure_utc(now)
        state, interval = reschedule_for_frequency(self.scheduling_state, frequency)
        self.frequency = state.frequency
        self.current_interval = interval
        self.next_notification_date = next_notification_date(now, interval)

    def rename(self, name: str) -> None:
        self.name = name

    def log_event(
        self,
        kind: EventKind,
        now: datetime | None = None,
        interval: float | None = None,
        note: str | None = None,
    ) -> HabitEvent:
        ev = HabitEvent(
            kind=kind,
            timestamp=ensure_utc(now),
            interval_used=interval,
            note=note,
        )
        self.events.append(ev)
        return ev

    # ------------------------------------------------------------------
    # Statistics (derived from the event log)
    # ------------------------------------------------------------------

    @property
    def recent_events(self) -> list[HabitEvent]:
        # Reverse first so equal timestamps keep latest-appended first.
        return sorted(reversed(self.events), key=lambda e: e.timestamp, reverse=True)

    @property
    def total_responses(self) -> int:
        return sum(1 for e in self.events if e.is_response)

    @property
    def total_reminders(self) -> int:
        return sum(1 for e in self.events if e.is_reminder)

    @property
    def success_rate(self) -> float:
        responses = [e for e in self.events if e.is_response]
        if not responses:
            return 0.0
        successes = sum(1 for e in responses if e.is_success)
        return successes / len(responses) * 100

    @property
    def streak_count(self) -> int:
        streak = 0
        for e in self.recent_events:
            if not e.is_response:
                continue
            if not e.is_success:
                break
            streak += 1
        return streak
