"""
Shared pytest fixtures.

Uses a SQLite database file so no Postgres is required for tests. Tables
are emptied after every test; each test gets its own overdue queue and
in-memory reminder adapter.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from habitual.db.base import Base, get_db
from habitual.main import create_app
from habitual.models import Habit, HabitEvent
from habitual.services.overdue_queue import OverdueQueueManager
from habitual.services.reminders import InMemoryReminderAdapter

SQLITE_URL = "sqlite:///./test_habitual.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = TestingSessionLocal()
    try:
        db.query(HabitEvent).delete()
        db.query(Habit).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def queue():
    return OverdueQueueManager()


@pytest.fixture()
def reminders():
    return InMemoryReminderAdapter()


@pytest.fixture()
def client(queue, reminders):
    app = create_app(overdue_queue=queue, reminder_adapter=reminders)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
