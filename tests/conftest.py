"""Shared fixtures: an in-memory store seeded with a player and a coach."""

from datetime import datetime, timedelta, timezone

import pytest

from coachboard.core.roster import create_coach, create_player
from coachboard.infrastructure.memory import InMemoryRecordStore


class StepClock:
    """Clock that advances one second per call."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def jane(store):
    return create_player(store, "Jane", "Doe", position="Midfield")


@pytest.fixture
def coach1(store):
    return create_coach(store, "coach1@example.com", "Casey", "Coach")


@pytest.fixture
def admin_coach(store):
    return create_coach(store, "head@example.com", "Alex", "Head", is_admin=True)
