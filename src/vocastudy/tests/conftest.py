"""Test configuration."""
import os
from pathlib import Path
from typing import Callable, List

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from vocastudy.config import StudySettings
from vocastudy.models.study_models import VocabularyEntry
from vocastudy.services.question_generator import QuestionGenerator
from vocastudy.services.rng import Rng
from vocastudy.services.scheduler import CancelHandle, Scheduler

fake = Faker()


class FakeScheduler(Scheduler):
    """Scheduler driven by a virtual clock in milliseconds."""

    def __init__(self):
        self.now = 0
        self._queue = []  # (due, handle, callback)

    def schedule_once(self, delay_ms, callback):
        handle = CancelHandle(delay_ms)
        self._queue.append((self.now + delay_ms, handle, callback))
        return handle

    def cancel(self, handle):
        if handle.pending:
            handle.cancelled = True
        self._queue = [entry for entry in self._queue if entry[1] is not handle]

    @property
    def pending(self) -> List[CancelHandle]:
        return [entry[1] for entry in self._queue]

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing every callback that falls due."""
        target = self.now + ms
        while True:
            due = [entry for entry in self._queue if entry[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1].id))
            self._queue.remove(entry)
            self.now = entry[0]
            entry[1].fired = True
            entry[2]()
        self.now = target

    def run_all(self) -> None:
        while self._queue:
            self.advance(max(entry[0] for entry in self._queue) - self.now)


class FixedRng(Rng):
    """Rng that never reorders and always samples from the front."""

    def shuffle(self, items):
        return list(items)

    def pick_random(self, items, n):
        return list(items)[:n]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def study_settings() -> StudySettings:
    return StudySettings(
        options_per_question=4,
        correct_delay_ms=1000,
        incorrect_delay_ms=2000,
        comprehensive_delay_ms=1000,
        pronounce_delay_ms=300,
        hint_length=2,
        hint_policy="none",
        rng_seed=None,
    )


@pytest.fixture
def fixed_generator() -> QuestionGenerator:
    return QuestionGenerator(FixedRng(), 4)


@pytest.fixture
def make_entries() -> Callable[[int], List[VocabularyEntry]]:
    """Factory for entries with distinct, predictable texts."""

    def factory(count: int) -> List[VocabularyEntry]:
        return [
            VocabularyEntry(id=f"item-{i}", english=f"word{i}", vietnamese=f"từ{i}")
            for i in range(count)
        ]

    return factory


@pytest.fixture
def fake_entries() -> List[VocabularyEntry]:
    """Entries with generated texts."""
    words = fake.words(nb=12, unique=True)
    return [
        VocabularyEntry(
            id=fake.uuid4(),
            english=word,
            vietnamese=f"{word}-vi",
            example=fake.sentence(),
        )
        for word in words
    ]


@pytest.fixture
def session_kwargs(fixed_generator, scheduler, study_settings):
    """Keyword arguments wiring a session to deterministic fakes."""
    return {
        "generator": fixed_generator,
        "scheduler": scheduler,
        "study_settings": study_settings,
        "clock": lambda: scheduler.now / 1000,
    }
