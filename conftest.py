from datetime import datetime, timedelta, timezone

import pytest

from study.data.memory import InMemoryFlashcardStore, InMemorySessionLog
from study.services import FlashcardService, SchedulingEngine


class StepClock:
    """Deterministic clock: every call returns a strictly later instant."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryFlashcardStore(clock=clock)


@pytest.fixture
def memory_log():
    return InMemorySessionLog()


@pytest.fixture
def engine(memory_store, memory_log, clock):
    return SchedulingEngine(memory_store, memory_log, clock=clock)


@pytest.fixture
def flashcards(memory_store, memory_log, clock):
    return FlashcardService(memory_store, memory_log, clock=clock)
