"""Data access for vocabulary sets."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocastudy.errors import NetworkError, NotFound
from vocastudy.models.models import VocabularyItem, VocabularySet
from vocastudy.models.study_models import VocabularyEntry

logger = logging.getLogger(__name__)


class VocabularyRepository(ABC):
    """Read access to vocabulary used by study sessions."""

    @abstractmethod
    async def get_items_for_set(self, set_id: str) -> List[VocabularyEntry]:
        """Return the entries of a set.

        Raises:
            NotFound: the set does not exist.
            NetworkError: the store could not be reached.
        """


def to_entry(item: VocabularyItem) -> VocabularyEntry:
    """Convert a stored item into a read-only entry."""
    return VocabularyEntry(
        id=item.id,
        english=item.english,
        vietnamese=item.vietnamese,
        phonetic=item.phonetic,
        part_of_speech=item.type,
        example=item.example,
        synonyms=item.synonyms,
    )


class SqlVocabularyRepository(VocabularyRepository):
    """Repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        """Initialize the repository with a database session."""
        self.db = db

    def get_set(self, set_id: str) -> Optional[VocabularySet]:
        """Get a vocabulary set by its ID."""
        return self.db.query(VocabularySet).filter(VocabularySet.id == set_id).first()

    async def get_items_for_set(self, set_id: str) -> List[VocabularyEntry]:
        try:
            if not self.get_set(set_id):
                raise NotFound(f"Vocabulary set {set_id} not found")
            items = (
                self.db.query(VocabularyItem)
                .filter(VocabularyItem.set_id == set_id)
                .order_by(VocabularyItem.created_at.desc(), VocabularyItem.id)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error loading vocabulary set {set_id}: {e}")
            raise NetworkError(f"Could not load vocabulary set {set_id}") from e

        entries = []
        for item in items:
            try:
                entries.append(to_entry(item))
            except ValueError as e:
                logger.warning(f"Skipping vocabulary item {item.id}: {e}")
        logger.debug(f"Loaded {len(entries)} entries for set {set_id}")
        return entries

    def create_set_with_items(
        self,
        user_id: str,
        name: str,
        items: List[Dict[str, Any]],
        description: Optional[str] = None,
        is_public: bool = False,
    ) -> VocabularySet:
        """Create a vocabulary set together with its items in one transaction."""
        vocabulary_set = VocabularySet(
            user_id=user_id,
            name=name,
            description=description,
            is_public=is_public,
        )
        vocabulary_set.items = [VocabularyItem(**item) for item in items]
        try:
            self.db.add(vocabulary_set)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(vocabulary_set)
        logger.info(f"Created vocabulary set {vocabulary_set.id} with {len(items)} items")
        return vocabulary_set
