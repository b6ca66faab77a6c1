from .habit_event import HabitEvent
from .habit import Habit

__all__ = [
    "Habit",
    "HabitEvent",
]
