"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Every test gets its own user id, so rows from other tests never leak into
rollups.
"""
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from habitrollup.db.base import Base, get_db
from habitrollup.main import app
from habitrollup.models import Habit, SubTask
from habitrollup.models.habit import ProgressRule

SQLITE_URL = "sqlite:///./test_habitrollup.db"

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


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def client(db, user_id):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, headers={"X-User-Id": user_id}) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_habit(db, user_id):
    """Insert a habit for the current test user and return it."""

    def _make(
        name="Read",
        weekly_target=7,
        monthly_target=30,
        has_sub_tasks=False,
        progress_rule=ProgressRule.PERCENTAGE,
        completion_threshold=None,
        archived=False,
        owner=None,
    ) -> Habit:
        habit = Habit(
            user_id=owner or user_id,
            name=name,
            weekly_target=weekly_target,
            monthly_target=monthly_target,
            has_sub_tasks=has_sub_tasks,
            progress_rule=progress_rule,
            completion_threshold=completion_threshold,
            archived=archived,
        )
        db.add(habit)
        db.commit()
        db.refresh(habit)
        return habit

    return _make


@pytest.fixture()
def make_sub_task(db):
    def _make(habit, title="Step", weight=1, is_required=True, position=0) -> SubTask:
        sub_task = SubTask(
            habit_id=habit.id,
            title=title,
            weight=weight,
            is_required=is_required,
            position=position,
        )
        db.add(sub_task)
        db.commit()
        db.refresh(sub_task)
        return sub_task

    return _make
