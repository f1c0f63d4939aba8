"""Tests for loading sets into study sessions."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from vocastudy.errors import NetworkError, NotFound
from vocastudy.models.study_models import (
    ComprehensiveConfig,
    ComprehensiveStage,
    LearnConfig,
    Phase,
    StudyMode,
)
from vocastudy.services.comprehensive_session import ComprehensiveSession
from vocastudy.services.learn_session import LearnSession
from vocastudy.services.study_service import LoadStatus, SessionLoader
from vocastudy.services.vocabulary_repository import VocabularyRepository


@pytest.fixture
def repository() -> AsyncMock:
    """Create a mock repository."""
    return AsyncMock(spec=VocabularyRepository)


@pytest.fixture
def loader(repository, session_kwargs) -> SessionLoader:
    """Create a loader wired to deterministic sessions."""
    return SessionLoader(repository, **session_kwargs)


def test_initial_status(loader: SessionLoader):
    """Test that nothing is loaded initially."""
    assert loader.status is LoadStatus.IDLE
    assert loader.session is None


@pytest.mark.asyncio
async def test_load_learn(loader, repository, make_entries):
    """Test loading a set into a started learn session."""
    repository.get_items_for_set.return_value = make_entries(4)

    session = await loader.load_learn("set-1", LearnConfig(mode=StudyMode.QUIZ_ONLY))

    repository.get_items_for_set.assert_awaited_once_with("set-1")
    assert isinstance(session, LearnSession)
    assert loader.status is LoadStatus.READY
    assert loader.session is session
    assert session.get_phase() is Phase.QUIZ1
    assert len(loader.entries) == 4


@pytest.mark.asyncio
async def test_load_comprehensive(loader, repository, make_entries):
    """Test loading a set into a started comprehensive session."""
    repository.get_items_for_set.return_value = make_entries(3)

    session = await loader.load_comprehensive("set-1", ComprehensiveConfig())

    assert isinstance(session, ComprehensiveSession)
    assert session.get_phase() is ComprehensiveStage.ANSWERING
    assert loader.status is LoadStatus.READY


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [NotFound("Vocabulary set set-1 not found"), NetworkError("offline")])
async def test_repository_failure(loader, repository, error):
    """Test that repository errors end in the FAILED status."""
    repository.get_items_for_set.side_effect = error

    session = await loader.load_learn("set-1")

    assert session is None
    assert loader.status is LoadStatus.FAILED
    assert loader.error == str(error)
    assert loader.session is None


@pytest.mark.asyncio
async def test_empty_set_fails(loader, repository):
    """Test that an empty set cannot start a session."""
    repository.get_items_for_set.return_value = []

    session = await loader.load_comprehensive("set-1")

    assert session is None
    assert loader.status is LoadStatus.FAILED
    assert "no words" in loader.error


@pytest.mark.asyncio
async def test_status_while_loading(loader, repository, make_entries):
    """Test that the status is LOADING until the repository answers."""
    release = asyncio.Event()

    async def slow_load(set_id):
        await release.wait()
        return make_entries(2)

    repository.get_items_for_set.side_effect = slow_load
    task = asyncio.create_task(loader.load_learn("set-1"))
    await asyncio.sleep(0)

    assert loader.status is LoadStatus.LOADING

    release.set()
    await task
    assert loader.status is LoadStatus.READY


@pytest.mark.asyncio
async def test_reload_after_failure(loader, repository, make_entries):
    """Test that a failed load can simply be tried again."""
    repository.get_items_for_set.side_effect = [NetworkError("offline"), make_entries(2)]

    assert await loader.load_learn("set-1") is None
    session = await loader.load_learn("set-1")

    assert session is not None
    assert loader.status is LoadStatus.READY
    assert loader.error is None


@pytest.mark.asyncio
async def test_new_load_closes_previous_session(loader, repository, make_entries):
    """Test that loading again closes the session it replaces."""
    repository.get_items_for_set.return_value = make_entries(2)
    first = await loader.load_learn("set-1")

    await loader.load_comprehensive("set-1")

    assert first.closed


@pytest.mark.asyncio
async def test_close(loader, repository, make_entries):
    """Test closing the loader's session."""
    repository.get_items_for_set.return_value = make_entries(2)
    session = await loader.load_learn("set-1")

    loader.close()

    assert session.closed
    assert loader.session is None
    assert loader.status is LoadStatus.IDLE


if __name__ == "__main__":
    pytest.main([__file__])
