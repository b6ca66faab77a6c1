"""
Overdue Queue Manager — surfaces overdue habits one at a time.

States
------
  idle        : nothing in the confirmation slot, queue empty
  presenting  : one habit id in the slot, zero or more queued behind it

Triggers
--------
  App foreground and any change to the habit collection call scan() with
  the full habit set. scan() logs an OverduePrompt event on every overdue
  habit, replaces the queue with them and presents the head.

Ordering
--------
  Most overdue first (oldest next_notification_date), ties by habit id.
  The habit already in the confirmation slot is never queued again.

The manager stores habit ids only. One instance per process, built by the
composition root and injected where needed.
"""
from __future__ import annotations

import enum
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from habitual.core.enums import EventKind
from habitual.db.types import ensure_utc
from habitual.models.habit import Habit
from habitual.services.storage import commit

logger = logging.getLogger(__name__)


class QueueState(str, enum.Enum):
    idle = "idle"
    presenting = "presenting"


class OverdueQueueManager:

    def __init__(self) -> None:
        self._queue: deque[int] = deque()
        self._current: Optional[int] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def current(self) -> Optional[int]:
        return self._current

    @property
    def pending(self) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._queue)

    @property
    def state(self) -> QueueState:
        return QueueState.idle if self._current is None else QueueState.presenting

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    @staticmethod
    def mark_overdue(habits: Iterable[Habit], now: datetime | None = None) -> list[Habit]:
        """Filter to active overdue habits, log an OverduePrompt on each, return them ordered."""
        now = ensure_utc(now)
        overdue = [h for h in habits if h.is_overdue(now)]
        for habit in overdue:
            habit.log_event(
                EventKind.overdue_prompt, now=now, interval=habit.current_frequency_interval
            )
        overdue.sort(key=lambda h: (h.next_notification_date, h.id or 0))
        return overdue

    def enqueue(self, habits: Iterable[Habit]) -> Optional[int]:
        """Replace the queue with `habits` (order kept) and present the head."""
        with self._lock:
            self._queue = deque(h.id for h in habits if h.id != self._current)
            return self.present_next()

    def scan(self, habits: Iterable[Habit], now: datetime | None = None) -> list[Habit]:
        overdue = self.mark_overdue(habits, now)
        if not overdue:
            return []
        self.enqueue(overdue)
        logger.info(
            "overdue scan queued %d habit(s); presenting=%s pending=%s",
            len(overdue), self._current, list(self._queue),
        )
        return overdue

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def present_next(self) -> Optional[int]:
        """Pop the queue head into the empty confirmation slot. Returns the slot."""
        with self._lock:
            if self._current is not None or not self._queue:
                return self._current
            self._current = self._queue.popleft()
            logger.debug("presenting habit %s for confirmation", self._current)
            return self._current

    def resolve(self) -> Optional[int]:
        with self._lock:
            self._current = None
            return self.present_next()

    def discard(self, habit_id: int) -> bool:
        """Drop a habit from the slot or queue (deleted, deactivated, answered)."""
        with self._lock:
            removed = False
            if habit_id in self._queue:
                self._queue.remove(habit_id)
                removed = True
            if self._current == habit_id:
                self.resolve()
                removed = True
            return removed

    def prioritize(self, habit_id: int) -> Optional[int]:
        """Bring a habit to the front: into the slot when free, else queue head."""
        with self._lock:
            if self._current == habit_id:
                return self._current
            if habit_id in self._queue:
                self._queue.remove(habit_id)
            self._queue.appendleft(habit_id)
            return self.present_next()

    def clear(self) -> None:
        with self._lock:
            self._queue.clear()
            self._current = None


def scan_overdue(
    db: Session,
    queue: OverdueQueueManager,
    now: datetime | None = None,
) -> list[Habit]:
    """
    Scan every stored habit. OverduePrompt events are committed before the
    queue changes; a habit id in the slot that no longer exists is dropped.
    """
    now = ensure_utc(now)
    habits = db.query(Habit).order_by(Habit.id).all()

    current = queue.current
    if current is not None and current not in {h.id for h in habits}:
        logger.info("habit %s vanished while awaiting confirmation; advancing", current)
        queue.discard(current)

    overdue = queue.mark_overdue(habits, now)
    if not overdue:
        return []
    commit(db, "scan_overdue")
    queue.enqueue(overdue)
    logger.info(
        "overdue scan queued %d habit(s); presenting=%s pending=%s",
        len(overdue), queue.current, list(queue.pending),
    )
    return overdue
