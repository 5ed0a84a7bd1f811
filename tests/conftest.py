import os

os.environ.setdefault("HABIT_TRACKER_DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from habit_tracker.api.dependencies import get_clock, get_session  # noqa: E402
from habit_tracker.data.models import Base, Child, Habit, HabitStep, Profile, Reward  # noqa: E402
from habit_tracker.main import app  # noqa: E402
from habit_tracker.security.pin import hash_pin  # noqa: E402
from habit_tracker.security.token import CHILD_MODE, PARENT_MODE, create_token  # noqa: E402

# Monday 2024-06-03, 10:00 in New York.
MONDAY_MORNING = datetime(2024, 6, 3, 14, 0)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(MONDAY_MORNING)


@pytest.fixture
def client(session_factory, clock):
    def override_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(session_factory):
    def _make(email: str = "parent@example.com", pin: str | None = "1234", timezone: str = "America/New_York") -> int:
        with session_factory() as session:
            profile = Profile(
                email=email,
                name="Parent",
                pin_hash=hash_pin(pin) if pin else None,
                timezone=timezone,
            )
            session.add(profile)
            session.commit()
            return profile.id

    return _make


@pytest.fixture
def make_child(session_factory):
    def _make(parent_id: int, name: str = "Ada", age: int = 8, coin_balance: int = 0) -> int:
        with session_factory() as session:
            child = Child(parent_id=parent_id, name=name, age=age, coin_balance=coin_balance, current_streak=0)
            session.add(child)
            session.commit()
            return child.id

    return _make


@pytest.fixture
def make_habit(session_factory):
    def _make(child_id: int, steps=(), **fields) -> int:
        values = {
            "name": "Brush teeth",
            "icon": "⭐",
            "frequency": "daily",
            "times_per_period": 1,
            "cooldown_minutes": 0,
            "coins_per_completion": 10,
            "is_active": True,
        }
        values.update(fields)
        with session_factory() as session:
            habit = Habit(child_id=child_id, **values)
            session.add(habit)
            session.flush()
            for index, name in enumerate(steps):
                session.add(HabitStep(habit_id=habit.id, name=name, order_index=index))
            session.commit()
            return habit.id

    return _make


@pytest.fixture
def make_reward(session_factory):
    def _make(parent_id: int, child_id: int, coin_cost: int = 30, name: str = "Movie night", is_active: bool = True) -> int:
        with session_factory() as session:
            reward = Reward(
                parent_id=parent_id,
                child_id=child_id,
                name=name,
                icon="🎬",
                coin_cost=coin_cost,
                is_active=is_active,
            )
            session.add(reward)
            session.commit()
            return reward.id

    return _make


@pytest.fixture
def family(make_profile, make_child):
    parent_id = make_profile()
    child_id = make_child(parent_id)
    return parent_id, child_id


@pytest.fixture
def read_child(session_factory):
    def _read(child_id: int) -> Child:
        with session_factory() as session:
            child = session.get(Child, child_id)
            session.expunge(child)
            return child

    return _read


def parent_headers(profile_id: int) -> dict:
    return {"Authorization": f"Bearer {create_token(profile_id, PARENT_MODE)}"}


def child_headers(profile_id: int, child_id: int) -> dict:
    return {"Authorization": f"Bearer {create_token(profile_id, CHILD_MODE, child_id)}"}
