"""Models for study-session data structures."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


class QuestionKind(Enum):
    """Kinds of questions a session can ask."""
    MULTIPLE_CHOICE = "multiple-choice"  # Pick one of the options
    SPELLING = "spelling"  # Type the answer


class Direction(Enum):
    """Which language is shown and which one is expected."""
    ENGLISH_TO_VIETNAMESE = "english-to-vietnamese"
    VIETNAMESE_TO_ENGLISH = "vietnamese-to-english"

    def inverse(self) -> "Direction":
        if self is Direction.ENGLISH_TO_VIETNAMESE:
            return Direction.VIETNAMESE_TO_ENGLISH
        return Direction.ENGLISH_TO_VIETNAMESE

    @property
    def prompt_language(self) -> str:
        return "en" if self is Direction.ENGLISH_TO_VIETNAMESE else "vi"

    @property
    def answer_language(self) -> str:
        return "vi" if self is Direction.ENGLISH_TO_VIETNAMESE else "en"


class KindPolicy(Enum):
    """How question kinds are assigned to generated questions."""
    MULTIPLE_CHOICE = "multiple-choice"  # Every question is multiple-choice
    SPELLING = "spelling"  # Every question is spelling
    ALTERNATING = "alternating"  # Even positions multiple-choice, odd positions spelling


class Phase(Enum):
    """Phases of a learn session."""
    QUIZ1 = "quiz1"
    REVIEW1 = "review1"
    SPELL1 = "spell1"
    QUIZ2 = "quiz2"
    REVIEW2 = "review2"
    SPELL2 = "spell2"
    COMPLETED = "completed"

    @property
    def is_quiz(self) -> bool:
        return self in (Phase.QUIZ1, Phase.QUIZ2)

    @property
    def is_spell(self) -> bool:
        return self in (Phase.SPELL1, Phase.SPELL2)

    @property
    def is_review(self) -> bool:
        return self in (Phase.REVIEW1, Phase.REVIEW2)

    @property
    def is_first_half(self) -> bool:
        return self in (Phase.QUIZ1, Phase.REVIEW1, Phase.SPELL1)


class StudyMode(Enum):
    """Sub-modes of a learn session."""
    MIXED = "mixed"
    QUIZ_ONLY = "quiz-only"
    SPELL_ONLY = "spell-only"


class ComprehensiveStage(Enum):
    """Stages of a comprehensive session."""
    ANSWERING = "answering"
    FEEDBACK = "feedback"
    SHOW_RESULT = "show-result"


@dataclass(frozen=True)
class VocabularyEntry:
    """A read-only English-Vietnamese pair as seen by a session."""
    id: str
    english: str
    vietnamese: str
    phonetic: Optional[str] = None
    part_of_speech: Optional[str] = None
    example: Optional[str] = None
    synonyms: Optional[str] = None

    def __post_init__(self):
        if not self.english or not self.english.strip():
            raise ValueError(f"Entry {self.id} has an empty English text")
        if not self.vietnamese or not self.vietnamese.strip():
            raise ValueError(f"Entry {self.id} has an empty Vietnamese text")

    def prompt_for(self, direction: Direction) -> str:
        """Text shown to the learner for the given direction."""
        if direction is Direction.ENGLISH_TO_VIETNAMESE:
            return self.english
        return self.vietnamese

    def answer_for(self, direction: Direction) -> str:
        """Text expected from the learner for the given direction."""
        if direction is Direction.ENGLISH_TO_VIETNAMESE:
            return self.vietnamese
        return self.english


@dataclass
class Question:
    """A generated prompt/answer pair for one entry in one pass."""
    id: str
    prompt: str
    term: str
    correct_answer: str
    kind: QuestionKind
    direction: Direction
    source_entry: VocabularyEntry
    options: Optional[List[str]] = None
    explanation: Optional[str] = None
    attempt_number: int = 1

    @property
    def is_multiple_choice(self) -> bool:
        return self.kind is QuestionKind.MULTIPLE_CHOICE


@dataclass
class AnswerRecord:
    """One submitted answer."""
    question_index: int
    submitted_text: str
    is_correct: bool
    time_spent_ms: int
    question: Question
    hint_used: bool = False


@dataclass
class Score:
    """Correct/total tally."""
    correct: int = 0
    total: int = 0

    def record(self, is_correct: bool, credit: bool = True) -> None:
        """Count one answer; `credit=False` counts a correct answer in total only."""
        self.total += 1
        if is_correct and credit:
            self.correct += 1

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    @property
    def percentage(self) -> int:
        return round(self.accuracy * 100)

    def __add__(self, other: "Score") -> "Score":
        return Score(self.correct + other.correct, self.total + other.total)


@dataclass
class PhaseScores:
    """Score per scored learn phase."""
    quiz1: Score = field(default_factory=Score)
    spell1: Score = field(default_factory=Score)
    quiz2: Score = field(default_factory=Score)
    spell2: Score = field(default_factory=Score)

    def for_phase(self, phase: Phase) -> Optional[Score]:
        """Score for a quiz or spell phase, None for review and completed."""
        if phase.is_quiz or phase.is_spell:
            return getattr(self, phase.value)
        return None

    def items(self) -> Iterator[Tuple[Phase, Score]]:
        for phase in (Phase.QUIZ1, Phase.SPELL1, Phase.QUIZ2, Phase.SPELL2):
            yield phase, getattr(self, phase.value)

    def overall(self) -> Score:
        result = Score()
        for _, score in self.items():
            result = result + score
        return result


@dataclass
class ScoreSummary:
    """Overall score and a breakdown keyed by phase or question kind."""
    overall: Score
    breakdown: Dict[str, Score]
    incorrect_count: int = 0


@dataclass
class LearnConfig:
    """Options chosen before a learn session starts."""
    mode: StudyMode = StudyMode.MIXED
    direction: Direction = Direction.ENGLISH_TO_VIETNAMESE


@dataclass
class ComprehensiveConfig:
    """Options chosen before a comprehensive session starts."""
    direction: Direction = Direction.ENGLISH_TO_VIETNAMESE
    kind_policy: KindPolicy = KindPolicy.ALTERNATING
