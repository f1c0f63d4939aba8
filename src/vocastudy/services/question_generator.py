"""Question generation shared by all quiz-like study modes."""
import logging
import math
from typing import List, Optional, Sequence

from vocastudy.config import settings
from vocastudy.errors import InsufficientData
from vocastudy.models.study_models import (
    Direction,
    KindPolicy,
    Phase,
    Question,
    QuestionKind,
    StudyMode,
    VocabularyEntry,
)
from vocastudy.services.rng import RandomRng, Rng

logger = logging.getLogger(__name__)

SPELLING_PROMPTS = {
    Direction.VIETNAMESE_TO_ENGLISH: 'Write the English word for: "{}"',
    Direction.ENGLISH_TO_VIETNAMESE: 'Write the Vietnamese meaning of: "{}"',
}


def require_entries(entries: Sequence[VocabularyEntry], minimum: int = 1, mode: str = "study") -> None:
    """Raise InsufficientData if there are fewer than `minimum` entries."""
    if len(entries) < minimum:
        if not entries:
            message = f"This vocabulary set has no words yet. Add words before starting {mode}."
        else:
            message = f"{mode.capitalize()} needs at least {minimum} words, this set has {len(entries)}."
        raise InsufficientData(message, available=len(entries), required=minimum)


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def check_answer(question: Question, submitted: str) -> bool:
    """Spelling is compared trimmed and case-insensitively, options must match exactly."""
    if question.kind is QuestionKind.SPELLING:
        return normalize_answer(submitted) == normalize_answer(question.correct_answer)
    return submitted == question.correct_answer


def split_for_phase(
    items: Sequence[VocabularyEntry], phase: Phase, mode: StudyMode
) -> List[VocabularyEntry]:
    """Return the slice of items a learn phase works on.

    First-half phases get the first ceil(n/2) items, second-half phases the
    rest. Spell-only mode runs spell1 over every item.
    """
    if phase is Phase.COMPLETED:
        return []
    if mode is StudyMode.SPELL_ONLY:
        return list(items) if phase is Phase.SPELL1 else []
    half = math.ceil(len(items) / 2)
    if phase.is_first_half:
        return list(items[:half])
    return list(items[half:])


class QuestionGenerator:
    """Builds questions from vocabulary entries."""

    def __init__(self, rng: Optional[Rng] = None, options_per_question: Optional[int] = None):
        self.rng = rng or RandomRng(settings.study.rng_seed)
        self.options_per_question = options_per_question or settings.study.options_per_question

    def generate(
        self,
        entries: Sequence[VocabularyEntry],
        direction: Direction,
        kind_policy: KindPolicy,
        *,
        pool: Optional[Sequence[VocabularyEntry]] = None,
        shuffle: bool = True,
        tag: str = "q",
    ) -> List[Question]:
        """Generate one question per entry.

        Args:
            entries: Entries to ask about; must not be empty.
            direction: Direction of multiple-choice questions. Spelling
                questions always ask for the other language.
            kind_policy: How kinds are assigned by position.
            pool: Entries distractors are drawn from, defaults to `entries`.
            shuffle: Randomize entry order before building questions.
            tag: Part of the question ids, unique per pass within a session.
        """
        require_entries(entries)
        ordered = self.rng.shuffle(entries) if shuffle else list(entries)
        candidates = list(pool) if pool is not None else list(entries)

        questions = []
        for index, entry in enumerate(ordered):
            if self._kind_for(kind_policy, index) is QuestionKind.MULTIPLE_CHOICE:
                question = self.multiple_choice(entry, direction, candidates, f"{entry.id}-mc-{tag}-{index}")
            else:
                question = self.spelling(entry, direction.inverse(), f"{entry.id}-spell-{tag}-{index}")
            questions.append(question)

        logger.debug(
            f"Generated {len(questions)} questions ({kind_policy.value}, {direction.value}, tag {tag})"
        )
        return questions

    @staticmethod
    def _kind_for(kind_policy: KindPolicy, index: int) -> QuestionKind:
        if kind_policy is KindPolicy.MULTIPLE_CHOICE:
            return QuestionKind.MULTIPLE_CHOICE
        if kind_policy is KindPolicy.SPELLING:
            return QuestionKind.SPELLING
        return QuestionKind.MULTIPLE_CHOICE if index % 2 == 0 else QuestionKind.SPELLING

    def multiple_choice(
        self,
        entry: VocabularyEntry,
        direction: Direction,
        pool: Sequence[VocabularyEntry],
        question_id: str,
    ) -> Question:
        correct = entry.answer_for(direction)
        options = self.build_options(correct, [candidate.answer_for(direction) for candidate in pool])
        return Question(
            id=question_id,
            prompt=entry.prompt_for(direction),
            term=entry.prompt_for(direction),
            correct_answer=correct,
            kind=QuestionKind.MULTIPLE_CHOICE,
            direction=direction,
            source_entry=entry,
            options=options,
            explanation=self._explanation(entry),
        )

    def spelling(self, entry: VocabularyEntry, direction: Direction, question_id: str) -> Question:
        term = entry.prompt_for(direction)
        return Question(
            id=question_id,
            prompt=SPELLING_PROMPTS[direction].format(term),
            term=term,
            correct_answer=entry.answer_for(direction),
            kind=QuestionKind.SPELLING,
            direction=direction,
            source_entry=entry,
            explanation=self._explanation(entry),
        )

    def build_options(self, correct: str, candidates: Sequence[str]) -> List[str]:
        """Return the correct answer plus up to N-1 distinct distractors, shuffled.

        When the pool has fewer distinct alternatives the list is shorter;
        it is never padded.
        """
        alternatives = list(dict.fromkeys(c for c in candidates if c != correct))
        distractors = self.rng.pick_random(alternatives, self.options_per_question - 1)
        if len(distractors) < self.options_per_question - 1:
            logger.debug(f"Only {len(distractors)} distractors available for '{correct}'")
        return self.rng.shuffle([correct] + distractors)

    @staticmethod
    def _explanation(entry: VocabularyEntry) -> Optional[str]:
        return f"Example: {entry.example}" if entry.example else None
