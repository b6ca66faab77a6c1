"""
Tests for the habit service against the SQLite test database.

Covered:
  - create / update / delete lifecycle, cascade of events
  - atomic response recording (storage failure leaves prior state intact)
  - reminder scheduling is fire-and-forget (adapter errors, no permission)
  - overdue scan through storage, deleted-while-presented handling
  - reminder actions, including "opened"
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from habitual.core.enums import EventKind, Frequency
from habitual.core.errors import (
    AdapterError,
    HabitNotFoundError,
    HabitValidationError,
    NothingToConfirmError,
    StorageError,
    UnknownFrequencyError,
)
from habitual.db.types import utcnow
from habitual.models import Habit, HabitEvent
from habitual.services import habits as svc
from habitual.services.overdue_queue import scan_overdue
from habitual.services.reminders import InMemoryReminderAdapter, schedule_test_reminder
from habitual.services.storage import commit

DAY = 86_400


class FailingAdapter(InMemoryReminderAdapter):
    def schedule(self, habit_id, fire_at, title, body, *, test=False):
        raise AdapterError("notification center unavailable", habit_id=habit_id)

    def cancel(self, habit_id):
        raise AdapterError("notification center unavailable", habit_id=habit_id)


def _kinds(db, habit_id: int) -> list[EventKind]:
    return [
        e.kind for e in
        db.query(HabitEvent).filter(HabitEvent.habit_id == habit_id).order_by(HabitEvent.id)
    ]


def _fail_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestCreate:
    def test_create_schedules_first_reminder(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Drink Water")
        assert h.id > 0
        assert h.frequency == Frequency.daily
        pending = reminders.pending()
        assert len(pending) == 1
        assert pending[0].habit_id == h.id
        assert pending[0].fire_at == h.next_notification_date
        assert pending[0].body == "Did you do your habit: Drink Water?"
        assert _kinds(db, h.id) == [EventKind.reminder_sent]

    def test_create_rejects_empty_name(self, db, queue, reminders):
        with pytest.raises(HabitValidationError):
            svc.create_habit(db, queue, reminders, name="   ")
        assert db.query(Habit).count() == 0

    def test_create_rejects_unknown_frequency(self, db, queue, reminders):
        with pytest.raises(UnknownFrequencyError):
            svc.create_habit(db, queue, reminders, name="Run", frequency="Yearly")
        assert db.query(Habit).count() == 0

    def test_without_permission_nothing_scheduled(self, db, queue):
        adapter = InMemoryReminderAdapter(permission_granted=False)
        h = svc.create_habit(db, queue, adapter, name="Stretch")
        assert adapter.pending() == []
        assert _kinds(db, h.id) == []

    def test_create_triggers_scan(self, db, queue, reminders):
        now = utcnow()
        old = svc.create_habit(db, queue, reminders, name="Old", now=now - timedelta(days=2))
        assert queue.current == old.id


class TestRecordResponse:
    def test_drink_water_scenario_persisted(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Drink Water")
        for _ in range(3):
            svc.record_response(db, queue, reminders, h.id, "success")
        db.expire_all()
        h = svc.get_habit(db, h.id)
        assert h.current_interval_multiplier == 2
        assert h.consecutive_successes == 0
        assert h.current_interval == 172_800

        svc.record_response(db, queue, reminders, h.id, "failure")
        db.expire_all()
        h = svc.get_habit(db, h.id)
        assert h.current_interval_multiplier == 1
        assert h.current_interval == 86_400
        assert h.success_rate == pytest.approx(75.0)
        assert h.streak_count == 0

    def test_response_reschedules_reminder(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Read")
        svc.record_response(db, queue, reminders, h.id, "success")
        pending = reminders.pending()
        assert len(pending) == 1
        assert pending[0].fire_at == h.next_notification_date
        assert _kinds(db, h.id) == [
            EventKind.reminder_sent,
            EventKind.response_success,
            EventKind.reminder_sent,
        ]

    def test_storage_failure_leaves_state_intact(self, db, queue, reminders, monkeypatch):
        h = svc.create_habit(db, queue, reminders, name="Meditate")
        habit_id = h.id
        events_before = len(_kinds(db, habit_id))

        monkeypatch.setattr(db, "commit", _fail_commit)
        with pytest.raises(StorageError):
            svc.record_response(db, queue, reminders, habit_id, "success")
        monkeypatch.undo()

        db.expire_all()
        h = svc.get_habit(db, habit_id)
        assert h.consecutive_successes == 0
        assert h.total_attempts == 0
        assert len(_kinds(db, habit_id)) == events_before

    def test_adapter_failure_does_not_roll_back(self, db, queue):
        adapter = FailingAdapter()
        h = svc.create_habit(db, queue, adapter, name="Floss")
        svc.record_response(db, queue, adapter, h.id, "success")
        db.expire_all()
        h = svc.get_habit(db, h.id)
        assert h.consecutive_successes == 1
        assert _kinds(db, h.id) == [EventKind.response_success]

    def test_unknown_habit(self, db, queue, reminders):
        with pytest.raises(HabitNotFoundError):
            svc.record_response(db, queue, reminders, 999_999, "success")

    def test_answer_resolves_presented_habit(self, db, queue, reminders):
        now = utcnow()
        a = svc.create_habit(db, queue, reminders, name="A", now=now - timedelta(days=3))
        b = svc.create_habit(db, queue, reminders, name="B", now=now - timedelta(days=2))
        assert queue.current == a.id
        svc.record_response(db, queue, reminders, a.id, "later")
        assert queue.current == b.id

    def test_unlogged_reminder_does_not_fail_answer(self, db, queue, reminders, monkeypatch):
        now = utcnow()
        a = svc.create_habit(db, queue, reminders, name="A", now=now - timedelta(days=3))
        b = svc.create_habit(db, queue, reminders, name="B", now=now - timedelta(days=2))
        a_id, b_id = a.id, b.id
        assert queue.current == a_id

        real_commit = db.commit
        calls = []

        def _second_commit_fails():
            calls.append(None)
            if len(calls) == 2:
                _fail_commit()
            real_commit()

        monkeypatch.setattr(db, "commit", _second_commit_fails)
        svc.record_response(db, queue, reminders, a_id, "success")
        monkeypatch.undo()

        assert len(calls) == 2
        assert queue.current == b_id
        db.expire_all()
        assert _kinds(db, a_id).count(EventKind.response_success) == 1
        assert svc.get_habit(db, a_id).consecutive_successes == 1
        assert a_id in [r.habit_id for r in reminders.pending()]


class TestUpdate:
    def test_frequency_change_recomputes(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Run")
        events_before = len(_kinds(db, h.id))
        h = svc.update_habit(db, queue, reminders, h.id, frequency="Weekly")
        assert h.frequency == Frequency.weekly
        assert h.current_interval == 604_800
        assert reminders.pending()[0].fire_at == h.next_notification_date
        kinds = _kinds(db, h.id)
        assert len(kinds) == events_before
        assert reminders.pending()[0].habit_id == h.id

    def test_invalid_update_mutates_nothing(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Run")
        with pytest.raises(UnknownFrequencyError):
            svc.update_habit(db, queue, reminders, h.id, name="Sprint", frequency="Hourly")
        db.expire_all()
        assert svc.get_habit(db, h.id).name == "Run"

    def test_edit_name_icon_description(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Run")
        h = svc.update_habit(
            db, queue, reminders, h.id, name=" Jog ", icon="🏃", description="5k"
        )
        assert (h.name, h.icon, h.description) == ("Jog", "🏃", "5k")

    def test_deactivate_cancels_and_dequeues(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Old", now=utcnow() - timedelta(days=2))
        assert queue.current == h.id
        svc.update_habit(db, queue, reminders, h.id, is_active=False)
        assert queue.current is None
        assert reminders.pending() == []
        assert scan_overdue(db, queue) == []


class TestDelete:
    def test_delete_cascades_events_and_cancels(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Journal")
        svc.record_response(db, queue, reminders, h.id, "success")
        habit_id = h.id
        svc.delete_habit(db, queue, reminders, habit_id)
        assert db.get(Habit, habit_id) is None
        assert _kinds(db, habit_id) == []
        assert reminders.pending() == []

    def test_delete_presented_habit_advances(self, db, queue, reminders):
        now = utcnow()
        a = svc.create_habit(db, queue, reminders, name="A", now=now - timedelta(days=3))
        b = svc.create_habit(db, queue, reminders, name="B", now=now - timedelta(days=2))
        a_id, b_id = a.id, b.id
        svc.delete_habit(db, queue, reminders, a_id)
        assert queue.current == b_id
        assert a_id not in queue.pending


class TestScanOverdue:
    def test_scan_after_one_period(self, db, queue, reminders):
        created = utcnow()
        h = svc.create_habit(db, queue, reminders, name="Drink Water", now=created)
        overdue = scan_overdue(db, queue, now=created + timedelta(seconds=86_500))
        assert [o.id for o in overdue] == [h.id]
        assert queue.current == h.id
        assert _kinds(db, h.id).count(EventKind.overdue_prompt) == 1

    def test_vanished_current_is_dropped(self, db, queue, reminders):
        queue.prioritize(123_456)
        scan_overdue(db, queue)
        assert queue.current is None

    def test_confirm_current_for_deleted_habit_advances(self, db, queue, reminders):
        queue.prioritize(123_456)
        assert svc.confirm_current(db, queue, reminders, "success") is None
        assert queue.current is None

    def test_confirm_current_when_idle(self, db, queue, reminders):
        with pytest.raises(NothingToConfirmError):
            svc.confirm_current(db, queue, reminders, "success")


class TestReminderActions:
    def test_opened_presents_without_resolving(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Walk")
        svc.handle_action(db, queue, reminders, h.id, "opened")
        assert queue.current == h.id
        db.expire_all()
        assert svc.get_habit(db, h.id).total_responses == 0

    @pytest.mark.parametrize("action,kind", [
        ("success", EventKind.response_success),
        ("failure", EventKind.response_failure),
        ("later", EventKind.response_later),
    ])
    def test_answers_are_recorded(self, db, queue, reminders, action, kind):
        h = svc.create_habit(db, queue, reminders, name="Walk")
        svc.handle_action(db, queue, reminders, h.id, action)
        assert kind in _kinds(db, h.id)

    def test_test_reminder_leaves_schedule(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Walk")
        before = h.next_notification_date
        assert schedule_test_reminder(reminders, h, delay=5) is True
        tests = [r for r in reminders.pending() if r.is_test]
        assert len(tests) == 1
        assert tests[0].title.endswith("(TEST)")
        assert h.next_notification_date == before


class TestSummary:
    def test_counts(self, db, queue, reminders):
        svc.create_habit(db, queue, reminders, name="A")
        b = svc.create_habit(db, queue, reminders, name="B", now=utcnow() - timedelta(days=2))
        c = svc.create_habit(db, queue, reminders, name="C")
        svc.update_habit(db, queue, reminders, c.id, is_active=False)
        assert svc.habit_summary(db) == {"total": 3, "active": 2, "overdue": 1}
        assert b.id in [h.id for h in svc.list_habits(db, active_only=True)]


class TestStorage:
    def test_events_are_append_only(self, db, queue, reminders):
        h = svc.create_habit(db, queue, reminders, name="Journal")
        event = db.query(HabitEvent).filter(HabitEvent.habit_id == h.id).one()
        event.note = "edited"
        with pytest.raises(StorageError):
            commit(db, "edit_event")

        # session is usable again and the event is unchanged
        assert db.query(HabitEvent).count() == 1
        db.refresh(event)
        assert event.note is None

    def test_unexpected_error_is_wrapped(self, db, queue, reminders, monkeypatch):
        def _boom():
            raise RuntimeError("connection reset")

        monkeypatch.setattr(db, "commit", _boom)
        with pytest.raises(StorageError) as info:
            commit(db, "create_habit")
        monkeypatch.undo()
        assert info.value.details == {"operation": "create_habit"}
        assert db.query(Habit).count() == 0
