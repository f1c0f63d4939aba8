"""Comprehensive mode: one flat pass alternating multiple-choice and spelling."""
import logging
from typing import List, Optional, Sequence

from vocastudy import monitoring
from vocastudy.errors import SessionStateError
from vocastudy.models.study_models import (
    AnswerRecord,
    ComprehensiveConfig,
    ComprehensiveStage,
    QuestionKind,
    Score,
    ScoreSummary,
    VocabularyEntry,
)
from vocastudy.services.question_generator import require_entries
from vocastudy.services.study_session import StudySession

logger = logging.getLogger(__name__)


class ComprehensiveSession(StudySession):
    """Comprehensive test state machine.

    Every answer is recorded. Feedback auto-advances after a fixed delay and
    no question is repeated inside a pass; once the result is shown,
    `retry_incorrect()` starts a fresh pass over the missed words only.
    """

    mode = "comprehensive"

    def __init__(
        self, entries: Sequence[VocabularyEntry], config: Optional[ComprehensiveConfig] = None, **kwargs
    ):
        super().__init__(entries, **kwargs)
        self.config = config or ComprehensiveConfig()
        self.finished = False
        self.pass_number = 0

    def start(self, config: Optional[ComprehensiveConfig] = None) -> None:
        if self.closed:
            raise SessionStateError("Session is closed")
        config = config or self.config
        require_entries(self.entries, 1, "the comprehensive test")
        self.config = config
        self.pass_number = 0
        self._begin_pass(self.entries)
        monitoring.sessions_started.labels(mode=self.mode).inc()
        logger.info(
            f"Comprehensive session started: {len(self.entries)} items, "
            f"direction {config.direction.value}"
        )

    def restart(self) -> None:
        logger.info("Comprehensive session restarted")
        self.start(self.config)

    def retry_incorrect(self) -> int:
        """Start a new pass over the words answered incorrectly.

        Returns the number of words in the new pass; 0 means there was
        nothing to retry and the session is left untouched.
        """
        self._ensure_open()
        if not self.finished:
            raise SessionStateError("Retry is only available once the result is shown")
        missed_ids = {answer.question.source_entry.id for answer in self.answers if not answer.is_correct}
        missed = [entry for entry in self.entries if entry.id in missed_ids]
        if not missed:
            logger.info("No incorrect answers to retry")
            return 0

        self._begin_pass(missed)
        monitoring.retries.labels(mode=self.mode).inc()
        logger.info(f"Retrying {len(missed)} incorrect words")
        return len(missed)

    def get_phase(self) -> Optional[ComprehensiveStage]:
        if not self.started:
            return None
        if self.finished:
            return ComprehensiveStage.SHOW_RESULT
        if self.show_feedback:
            return ComprehensiveStage.FEEDBACK
        return ComprehensiveStage.ANSWERING

    @property
    def incorrect_count(self) -> int:
        return sum(1 for answer in self.answers if not answer.is_correct)

    def get_answer_review(self) -> List[AnswerRecord]:
        """Every answer of the finished pass, in the order it was given."""
        if not self.finished:
            raise SessionStateError("The answer review is available once the result is shown")
        return list(self.answers)

    def get_score_summary(self) -> ScoreSummary:
        overall = Score()
        breakdown = {kind.value: Score() for kind in QuestionKind}
        for answer in self.answers:
            overall.record(answer.is_correct)
            breakdown[answer.question.kind.value].record(answer.is_correct)
        return ScoreSummary(overall=overall, breakdown=breakdown, incorrect_count=self.incorrect_count)

    def _begin_pass(self, items: Sequence[VocabularyEntry]) -> None:
        questions = self.generator.generate(
            items,
            self.config.direction,
            self.config.kind_policy,
            tag=f"p{self.pass_number + 1}",
        )
        self._cancel_pending()
        self.pass_number += 1
        self.questions = questions
        self.current_index = 0
        self.answers = []
        self.last_answer = None
        self.finished = False
        self.started = True
        self._start_question()

    def _accepting_answers(self) -> bool:
        return not self.finished and bool(self.questions)

    def _feedback_delay_ms(self, is_correct: bool) -> int:
        return self.settings.comprehensive_delay_ms

    def _next_question(self) -> None:
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            self._start_question()
            return
        self.finished = True
        monitoring.sessions_completed.labels(mode=self.mode).inc()
        summary = self.get_score_summary()
        logger.info(
            f"Comprehensive pass {self.pass_number} finished: "
            f"{summary.overall.correct}/{summary.overall.total}"
        )
