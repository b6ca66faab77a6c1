"""
Interval Policy — pure computation of the next reminder schedule.

Frequency-multiplier model
--------------------------
  interval = base_interval(frequency) * multiplier

  SUCCESS : consecutive_successes += 1; every 3rd consecutive success bumps
            the multiplier by one and resets the counter.
  FAILURE : multiplier and counter both collapse back to 1 / 0.
  LATER   : state untouched; interval = max(interval / 3, base_interval).

Every transition reports the interval that governed the reminder being
answered (`interval_used`) so the caller can stamp it on the HabitEvent.

No I/O, no clock. Callers supply `now`.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from habitual.core.enums import Frequency


class Response(str, enum.Enum):
    success = "success"
    failure = "failure"
    later = "later"


BASE_INTERVALS: dict[Frequency, float] = {
    Frequency.daily: 86_400.0,
    Frequency.weekly: 604_800.0,
    Frequency.monthly: 2_592_000.0,  # 30-day approximation
}

SUCCESSES_PER_STEP = 3
LATER_DIVISOR = 3


@dataclass(frozen=True)
class SchedulingState:
    frequency: Frequency
    multiplier: int = 1
    consecutive_successes: int = 0

    @property
    def frequency_interval(self) -> float:
        return frequency_interval(self.frequency, self.multiplier)


@dataclass(frozen=True)
class Transition:
    """Outcome of applying one response to a SchedulingState."""
    state: SchedulingState
    interval: float          # new current_interval
    interval_used: float     # frequency interval in effect before the response
    counts_attempt: bool     # legacy total_attempts += 1
    counts_success: bool     # legacy successful_attempts += 1


def base_interval(frequency: Frequency) -> float:
    return BASE_INTERVALS[frequency]


def frequency_interval(frequency: Frequency, multiplier: int) -> float:
    return base_interval(frequency) * multiplier


def next_notification_date(now: datetime, interval: float) -> datetime:
    return now + timedelta(seconds=interval)


def apply_response(state: SchedulingState, response: Response) -> Transition:
    interval_used = state.frequency_interval

    if response is Response.success:
        streak = state.consecutive_successes + 1
        multiplier = state.multiplier
        if streak >= SUCCESSES_PER_STEP:
            multiplier += 1
            streak = 0
        new_state = replace(state, multiplier=multiplier, consecutive_successes=streak)
        return Transition(
            state=new_state,
            interval=new_state.frequency_interval,
            interval_used=interval_used,
            counts_attempt=True,
            counts_success=True,
        )

    if response is Response.failure:
        new_state = replace(state, multiplier=1, consecutive_successes=0)
        return Transition(
            state=new_state,
            interval=new_state.frequency_interval,
            interval_used=interval_used,
            counts_attempt=True,
            counts_success=False,
        )

    if response is Response.later:
        return Transition(
            state=state,
            interval=max(interval_used / LATER_DIVISOR, base_interval(state.frequency)),
            interval_used=interval_used,
            counts_attempt=False,
            counts_success=False,
        )

    raise ValueError(f"Unsupported response: {response!r}")


def reschedule_for_frequency(state: SchedulingState, frequency: Frequency) -> tuple[SchedulingState, float]:
    """Switch frequency keeping multiplier and streak; return (state, interval)."""
    new_state = replace(state, frequency=frequency)
    return new_state, new_state.frequency_interval
