"""Loading vocabulary and starting study sessions."""
import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from vocastudy import monitoring
from vocastudy.errors import InsufficientData, RepositoryFailure, StudyError
from vocastudy.models.study_models import ComprehensiveConfig, LearnConfig, VocabularyEntry
from vocastudy.services.comprehensive_session import ComprehensiveSession
from vocastudy.services.learn_session import LearnSession
from vocastudy.services.study_session import StudySession
from vocastudy.services.vocabulary_repository import VocabularyRepository

logger = logging.getLogger(__name__)


class LoadStatus(Enum):
    """Externally visible state of a session load."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class SessionLoader:
    """Loads a vocabulary set once and starts a session over it.

    Repository and insufficient-data errors are caught here and turned into
    the FAILED status with a message for the user; the caller may try the
    load again, nothing is retried automatically.
    """

    def __init__(self, repository: VocabularyRepository, **session_kwargs):
        self.repository = repository
        self.session_kwargs = session_kwargs
        self.status = LoadStatus.IDLE
        self.error: Optional[str] = None
        self.entries: List[VocabularyEntry] = []
        self.session: Optional[StudySession] = None

    async def load_learn(self, set_id: str, config: Optional[LearnConfig] = None) -> Optional[LearnSession]:
        """Load a set and start a learn session, or return None on failure."""
        return await self._load(
            set_id,
            lambda entries: LearnSession(entries, config or LearnConfig(), **self.session_kwargs),
        )

    async def load_comprehensive(
        self, set_id: str, config: Optional[ComprehensiveConfig] = None
    ) -> Optional[ComprehensiveSession]:
        """Load a set and start a comprehensive session, or return None on failure."""
        return await self._load(
            set_id,
            lambda entries: ComprehensiveSession(entries, config or ComprehensiveConfig(), **self.session_kwargs),
        )

    def close(self) -> None:
        """Close the current session, cancelling its timers."""
        if self.session:
            self.session.close()
            self.session = None
        self.status = LoadStatus.IDLE
        self.error = None

    async def _load(
        self, set_id: str, factory: Callable[[List[VocabularyEntry]], StudySession]
    ) -> Optional[StudySession]:
        self.close()
        self.status = LoadStatus.LOADING
        logger.info(f"Loading vocabulary set {set_id}")

        started_at = time.perf_counter()
        try:
            entries = await self.repository.get_items_for_set(set_id)
        except RepositoryFailure as e:
            self._fail(set_id, e)
            return None
        finally:
            monitoring.load_duration.observe(time.perf_counter() - started_at)

        session = factory(entries)
        try:
            session.start()
        except InsufficientData as e:
            self._fail(set_id, e)
            return None

        self.entries = entries
        self.session = session
        self.status = LoadStatus.READY
        logger.info(f"Started {session.mode} session over {len(entries)} items of set {set_id}")
        return session

    def _fail(self, set_id: str, error: StudyError) -> None:
        self.status = LoadStatus.FAILED
        self.error = str(error)
        monitoring.error_count.labels(error_type=type(error).__name__).inc()
        logger.error(f"Could not start session for set {set_id}: {error}")
