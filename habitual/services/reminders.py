"""
Reminder delivery adapter contract and the engine-side wrappers around it.

Posting a reminder is fire-and-forget: adapter failures are logged and
swallowed, and the habit's next_notification_date stays authoritative. A
missed reminder is caught later by the overdue scan.

Adapters raise AdapterError on delivery failure. A missing notification
permission is not an error; schedule() simply reports it did nothing.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from habitual.core.config import settings
from habitual.core.enums import EventKind
from habitual.core.errors import AdapterError
from habitual.db.types import ensure_utc, utcnow
from habitual.models.habit import Habit

logger = logging.getLogger(__name__)


class ReminderAction(str, enum.Enum):
    """User actions delivered back by the platform reminder."""
    success = "success"
    failure = "failure"
    later = "later"
    opened = "opened"  # tapped without choosing; route to the confirmation UI


@dataclass(frozen=True)
class PendingReminder:
    habit_id: int
    fire_at: datetime
    title: str
    body: str
    is_test: bool = False


class ReminderAdapter(Protocol):
    def schedule(
        self, habit_id: int, fire_at: datetime, title: str, body: str, *, test: bool = False
    ) -> bool:
        """Post a reminder. Returns False when nothing was scheduled."""
        ...

    def cancel(self, habit_id: int) -> None:
        ...

    def cancel_all(self) -> None:
        ...

    def pending(self) -> list[PendingReminder]:
        ...


class InMemoryReminderAdapter:
    """
    Keeps pending reminders in process memory, one regular and one test
    reminder per habit. Stands in for the platform notification center.
    """

    def __init__(
        self,
        permission_granted: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.permission_granted = permission_granted
        self._clock = clock
        self._pending: dict[str, PendingReminder] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _identifier(habit_id: int, test: bool = False) -> str:
        return f"test_habit_{habit_id}" if test else f"habit_{habit_id}"

    def schedule(
        self, habit_id: int, fire_at: datetime, title: str, body: str, *, test: bool = False
    ) -> bool:
        if not self.permission_granted:
            return False
        if ensure_utc(fire_at) <= self._clock():
            return False
        with self._lock:
            self._pending[self._identifier(habit_id, test)] = PendingReminder(
                habit_id=habit_id,
                fire_at=ensure_utc(fire_at),
                title=title,
                body=body,
                is_test=test,
            )
        return True

    def cancel(self, habit_id: int) -> None:
        with self._lock:
            self._pending.pop(self._identifier(habit_id), None)

    def cancel_all(self) -> None:
        with self._lock:
            self._pending.clear()

    def pending(self) -> list[PendingReminder]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda r: (r.fire_at, r.habit_id))


# ---------------------------------------------------------------------------
# Engine-side wrappers
# ---------------------------------------------------------------------------

def reminder_content(habit: Habit, test: bool = False) -> tuple[str, str]:
    title = settings.REMINDER_TITLE
    body = settings.REMINDER_BODY_TEMPLATE.format(name=habit.name)
    if test:
        title = f"{title} (TEST)"
        body = f"{body} This is a test notification."
    return title, body


def schedule_reminder(
    adapter: ReminderAdapter,
    habit: Habit,
    now: datetime | None = None,
    log_event: bool = True,
) -> bool:
    """
    Replace the habit's pending reminder with one at next_notification_date.
    Appends a ReminderSent event when the adapter accepted it and `log_event`
    is set; the caller commits.
    """
    if not habit.is_active:
        return False
    title, body = reminder_content(habit)
    try:
        adapter.cancel(habit.id)
        accepted = adapter.schedule(habit.id, habit.next_notification_date, title, body)
    except AdapterError as exc:
        logger.warning("reminder scheduling failed for habit %s: %s", habit.id, exc.message)
        return False
    if accepted:
        if log_event:
            habit.log_event(
                EventKind.reminder_sent, now=now, interval=habit.current_interval
            )
        logger.info("scheduled reminder for habit %s at %s", habit.id, habit.next_notification_date)
    return accepted


def cancel_reminder(adapter: ReminderAdapter, habit_id: int) -> None:
    try:
        adapter.cancel(habit_id)
    except AdapterError as exc:
        logger.warning("reminder cancellation failed for habit %s: %s", habit_id, exc.message)


def schedule_test_reminder(
    adapter: ReminderAdapter,
    habit: Habit,
    delay: float | None = None,
    now: datetime | None = None,
) -> bool:
    """Fire a one-off reminder after `delay` seconds; the habit's schedule is untouched."""
    delay = settings.TEST_REMINDER_DELAY_SECONDS if delay is None else delay
    fire_at = ensure_utc(now) + timedelta(seconds=delay)
    title, body = reminder_content(habit, test=True)
    try:
        return adapter.schedule(habit.id, fire_at, title, body, test=True)
    except AdapterError as exc:
        logger.warning("test reminder failed for habit %s: %s", habit.id, exc.message)
        return False
