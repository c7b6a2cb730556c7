"""Shared test fixtures for task board tests."""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard.store import TaskStore

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for deterministic transition timestamps."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, ms: float = 0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds, milliseconds=ms)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "taskboard.db")


@pytest.fixture
def store(db_path, clock):
    return TaskStore(db_path, clock=clock)
