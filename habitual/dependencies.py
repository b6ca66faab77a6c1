"""
Request dependencies for the services held by the composition root.
"""
from fastapi import Request

from habitual.services.overdue_queue import OverdueQueueManager
from habitual.services.reminders import ReminderAdapter


def get_overdue_queue(request: Request) -> OverdueQueueManager:
    return request.app.state.overdue_queue


def get_reminder_adapter(request: Request) -> ReminderAdapter:
    return request.app.state.reminder_adapter
