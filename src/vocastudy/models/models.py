"""Database models for vocabulary sets."""
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from vocastudy.models.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class VocabularySet(Base, TimestampMixin):
    """Vocabulary set model."""

    __tablename__ = "vocabulary_sets"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False)

    # Relationships
    items = relationship(
        "VocabularyItem",
        back_populates="vocabulary_set",
        cascade="all, delete-orphan",
    )


class VocabularyItem(Base, TimestampMixin):
    """Vocabulary item model: one English-Vietnamese pair."""

    __tablename__ = "vocabulary_items"

    id = Column(String, primary_key=True, default=_new_id)
    set_id = Column(String, ForeignKey("vocabulary_sets.id"), nullable=False, index=True)
    english = Column(String, nullable=False)
    vietnamese = Column(String, nullable=False)
    phonetic = Column(String)
    type = Column(String)  # part of speech, e.g. "noun"
    example = Column(Text)
    synonyms = Column(String)

    # Relationships
    vocabulary_set = relationship("VocabularySet", back_populates="items")
