"""
HabitEvent — one fact in a habit's history.

Append-only. Rows are created once per scheduling decision or user response
and are only ever removed by the cascade when their habit is deleted.

kind values:
  "reminder_sent"     — a platform reminder was accepted by the adapter
  "overdue_prompt"    — an overdue scan queued the habit for confirmation
  "response_success"  — user answered "Yes, I did it"
  "response_failure"  — user answered "No, I forgot"
  "response_later"    — user answered "Hasn't come up yet"

interval_used: seconds of the frequency interval that governed the reminder
being answered (or scheduled).
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Enum, Float, ForeignKey, Integer, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from habitual.core.enums import EventKind, REMINDER_KINDS, RESPONSE_KINDS
from habitual.core.errors import StorageError
from habitual.db.base import Base
from habitual.db.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from habitual.models.habit import Habit


class HabitEvent(Base):
    __tablename__ = "habit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: Mapped[EventKind] = mapped_column(
        Enum(EventKind, name="habit_event_kind_enum"), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, index=True
    )
    interval_used: Mapped[float | None] = mapped_column(Float, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    habit: Mapped["Habit"] = relationship(back_populates="events")

    @property
    def is_reminder(self) -> bool:
        return self.kind in REMINDER_KINDS

    @property
    def is_response(self) -> bool:
        return self.kind in RESPONSE_KINDS

    @property
    def is_success(self) -> bool:
        return self.kind == EventKind.response_success

    @property
    def is_failure(self) -> bool:
        return self.kind == EventKind.response_failure

    @property
    def is_later(self) -> bool:
        return self.kind == EventKind.response_later

    def __repr__(self) -> str:
        return f"<HabitEvent {self.kind.value} habit={self.habit_id} at={self.timestamp}>"


@event.listens_for(HabitEvent, "before_update")
def _reject_event_update(mapper, connection, target: HabitEvent) -> None:
    raise StorageError("Habit events are append-only.", operation="update_event")
