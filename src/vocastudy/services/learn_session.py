"""Learn mode: multi-phase adaptive quiz and spelling."""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from vocastudy import monitoring
from vocastudy.config import HINT_POLICY_NO_CREDIT
from vocastudy.errors import SessionStateError
from vocastudy.models.study_models import (
    AnswerRecord,
    KindPolicy,
    LearnConfig,
    Phase,
    PhaseScores,
    ScoreSummary,
    StudyMode,
    VocabularyEntry,
)
from vocastudy.services.question_generator import require_entries, split_for_phase
from vocastudy.services.study_session import StudySession

logger = logging.getLogger(__name__)

PHASE_PATHS: Dict[StudyMode, Tuple[Phase, ...]] = {
    StudyMode.MIXED: (
        Phase.QUIZ1,
        Phase.REVIEW1,
        Phase.SPELL1,
        Phase.QUIZ2,
        Phase.REVIEW2,
        Phase.SPELL2,
        Phase.COMPLETED,
    ),
    StudyMode.QUIZ_ONLY: (Phase.QUIZ1, Phase.QUIZ2, Phase.COMPLETED),
    StudyMode.SPELL_ONLY: (Phase.SPELL1, Phase.COMPLETED),
}


class LearnSession(StudySession):
    """Learn mode state machine.

    The item list is split in two halves. Each half is quizzed with
    multiple-choice questions, reviewed, then spelled. A question phase only
    ends once every question in it has been answered correctly: wrong
    answers are collected during a pass and asked again, in the order they
    were first asked, until none are left.
    """

    mode = "learn"
    pronounce_multiple_choice = True

    def __init__(self, entries: Sequence[VocabularyEntry], config: Optional[LearnConfig] = None, **kwargs):
        super().__init__(entries, **kwargs)
        self.config = config or LearnConfig()
        self.phase = PHASE_PATHS[self.config.mode][0]
        self.score_by_phase = PhaseScores()
        self.incorrect_indices: Set[int] = set()
        self.review_entries: List[VocabularyEntry] = []
        self.hint_used = False

    @property
    def path(self) -> Tuple[Phase, ...]:
        return PHASE_PATHS[self.config.mode]

    def start(self, config: Optional[LearnConfig] = None) -> None:
        if self.closed:
            raise SessionStateError("Session is closed")
        config = config or self.config
        require_entries(self.entries, 1, "learn")

        self._cancel_pending()
        self.config = config
        self.score_by_phase = PhaseScores()
        self.hint_used = False
        self.last_answer = None
        self.started = True
        monitoring.sessions_started.labels(mode=self.mode).inc()
        logger.info(
            f"Learn session started: {len(self.entries)} items, mode {config.mode.value}, "
            f"direction {config.direction.value}"
        )
        self._enter_phase(self.path[0])

    def restart(self) -> None:
        logger.info("Learn session restarted")
        self.start(self.config)

    def get_phase(self) -> Optional[Phase]:
        if not self.started:
            return None
        return self.phase

    def get_review_entries(self) -> List[VocabularyEntry]:
        """Words listed during a review phase."""
        return list(self.review_entries)

    def use_hint(self) -> str:
        """Reveal the first characters of the current spelling answer."""
        self._ensure_open()
        question = self.get_current_question()
        if question is None or question.is_multiple_choice or self.show_feedback:
            raise SessionStateError("Hints are only available while answering a spelling question")
        self._hint_active = True
        self.hint_used = True
        monitoring.hints_used.inc()
        return question.correct_answer[: self.settings.hint_length]

    @property
    def score(self) -> float:
        return self.score_by_phase.overall().accuracy

    def get_score_summary(self) -> ScoreSummary:
        breakdown = {
            phase.value: score
            for phase, score in self.score_by_phase.items()
            if phase in self.path
        }
        return ScoreSummary(
            overall=self.score_by_phase.overall(),
            breakdown=breakdown,
            incorrect_count=len(self.incorrect_indices),
        )

    def _accepting_answers(self) -> bool:
        return (self.phase.is_quiz or self.phase.is_spell) and bool(self.questions)

    def _feedback_delay_ms(self, is_correct: bool) -> int:
        return self.settings.correct_delay_ms if is_correct else self.settings.incorrect_delay_ms

    def _score_answer(self, record: AnswerRecord) -> None:
        credit = not (record.hint_used and self.settings.hint_policy == HINT_POLICY_NO_CREDIT)
        self.score_by_phase.for_phase(self.phase).record(record.is_correct, credit)
        if not record.is_correct:
            self.incorrect_indices.add(record.question_index)

    def _next_question(self) -> None:
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            self._start_question()
        elif self.incorrect_indices:
            self._requeue_incorrect()
        else:
            self._enter_phase(self._next_phase(self.phase))

    def _continue(self) -> None:
        if not self.phase.is_review:
            raise SessionStateError(f"Cannot continue from {self.phase.value}")
        self._enter_phase(self._next_phase(self.phase))

    def _requeue_incorrect(self) -> None:
        retry = [self.questions[index] for index in sorted(self.incorrect_indices)]
        for question in retry:
            question.attempt_number += 1
        logger.debug(f"{self.phase.value}: repeating {len(retry)} incorrect questions")
        monitoring.retries.labels(mode=self.mode).inc()
        self.questions = retry
        self.current_index = 0
        self.incorrect_indices = set()
        self.answers = []
        self._start_question()

    def _next_phase(self, phase: Phase) -> Phase:
        path = self.path
        return path[path.index(phase) + 1]

    def _enter_phase(self, phase: Phase) -> None:
        items = split_for_phase(self.entries, phase, self.config.mode)
        while phase is not Phase.COMPLETED and not items:
            logger.debug(f"Skipping {phase.value}: no items in this half")
            phase = self._next_phase(phase)
            items = split_for_phase(self.entries, phase, self.config.mode)

        self.phase = phase
        self.questions = []
        self.current_index = 0
        self.incorrect_indices = set()
        self.answers = []
        self.review_entries = []
        monitoring.phase_transitions.labels(phase=phase.value).inc()
        logger.info(f"Learn session entered {phase.value}")

        if phase is Phase.COMPLETED:
            monitoring.sessions_completed.labels(mode=self.mode).inc()
            overall = self.score_by_phase.overall()
            logger.info(f"Learn session completed: {overall.correct}/{overall.total}")
            return

        if phase.is_review:
            self.review_entries = items
            return

        kind_policy = KindPolicy.MULTIPLE_CHOICE if phase.is_quiz else KindPolicy.SPELLING
        self.questions = self.generator.generate(
            items,
            self.config.direction,
            kind_policy,
            pool=self.entries,
            shuffle=False,
            tag=phase.value,
        )
        self._start_question()
