import enum

from habitual.core.errors import UnknownFrequencyError


class Frequency(str, enum.Enum):
    daily = "Daily"
    weekly = "Weekly"
    monthly = "Monthly"


class EventKind(str, enum.Enum):
    reminder_sent = "reminder_sent"
    overdue_prompt = "overdue_prompt"
    response_success = "response_success"
    response_failure = "response_failure"
    response_later = "response_later"


REMINDER_KINDS = frozenset({EventKind.reminder_sent, EventKind.overdue_prompt})
RESPONSE_KINDS = frozenset({
    EventKind.response_success,
    EventKind.response_failure,
    EventKind.response_later,
})


def parse_frequency(value) -> Frequency:
    """Accept a Frequency, its value ("Weekly") or its name ("weekly")."""
    if isinstance(value, Frequency):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for member in Frequency:
            if key in (member.name, member.value.lower()):
                return member
    raise UnknownFrequencyError(value)
