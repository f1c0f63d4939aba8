"""Shared machinery for study session state machines."""
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from vocastudy import monitoring
from vocastudy.config import StudySettings, settings
from vocastudy.errors import InvalidSubmission, SessionStateError
from vocastudy.models.study_models import AnswerRecord, Question, ScoreSummary, VocabularyEntry
from vocastudy.services.audio_cue import AudioCue, LoggingAudioCue
from vocastudy.services.question_generator import QuestionGenerator, check_answer
from vocastudy.services.rng import RandomRng
from vocastudy.services.scheduler import AsyncioScheduler, CancelHandle, Scheduler

logger = logging.getLogger(__name__)


class StudySession(ABC):
    """Base class for session state machines.

    A session owns its questions, answers and pending timers. After an
    answer is submitted the session shows feedback and refuses input until
    the auto-advance timer fires or `advance()` is called. Timer-driven
    changes are reported to listeners registered with `add_listener`.
    """

    mode: str = "base"
    pronounce_multiple_choice: bool = False

    def __init__(
        self,
        entries: Sequence[VocabularyEntry],
        *,
        generator: Optional[QuestionGenerator] = None,
        scheduler: Optional[Scheduler] = None,
        audio: Optional[AudioCue] = None,
        study_settings: Optional[StudySettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.entries = tuple(entries)
        self.settings = study_settings or settings.study
        self.generator = generator or QuestionGenerator(
            RandomRng(self.settings.rng_seed), self.settings.options_per_question
        )
        self.scheduler = scheduler or AsyncioScheduler()
        self.audio = audio or LoggingAudioCue()
        self.clock = clock

        self.questions: List[Question] = []
        self.current_index = 0
        self.answers: List[AnswerRecord] = []
        self.last_answer: Optional[AnswerRecord] = None
        self.show_feedback = False
        self.started = False
        self.closed = False

        self._hint_active = False
        self._question_started_at = 0.0
        self._pending: List[CancelHandle] = []
        self._advance_handle: Optional[CancelHandle] = None
        self._pronounce_handle: Optional[CancelHandle] = None
        self._listeners: List[Callable[["StudySession"], None]] = []

    # Subclass hooks

    @abstractmethod
    def start(self, config=None) -> None:
        """Generate questions and enter the first state."""

    @abstractmethod
    def restart(self) -> None:
        """Discard all progress and start again from scratch."""

    @abstractmethod
    def get_phase(self):
        """Current phase or stage."""

    @abstractmethod
    def get_score_summary(self) -> ScoreSummary:
        """Overall score with a breakdown."""

    @abstractmethod
    def _accepting_answers(self) -> bool:
        """Whether the current state asks questions."""

    @abstractmethod
    def _feedback_delay_ms(self, is_correct: bool) -> int:
        """How long feedback stays on screen."""

    @abstractmethod
    def _next_question(self) -> None:
        """Move past the current question once feedback is over."""

    def _score_answer(self, record: AnswerRecord) -> None:
        """Update running tallies for a freshly evaluated answer; no-op by default."""

    def _continue(self) -> None:
        raise SessionStateError("Nothing to continue")

    # Public interface

    def add_listener(self, listener: Callable[["StudySession"], None]) -> None:
        """Register a callback run after every timer-driven state change."""
        self._listeners.append(listener)

    def get_current_question(self) -> Optional[Question]:
        if not self.started or self.closed or not self._accepting_answers():
            return None
        return self.questions[self.current_index]

    def submit_answer(self, text: str) -> AnswerRecord:
        """Evaluate an answer, record it and schedule the auto-advance."""
        self._ensure_open()
        if self.show_feedback:
            raise SessionStateError("Feedback is showing, wait for the next question")
        question = self.get_current_question()
        if question is None:
            raise SessionStateError(f"No question to answer in {self.get_phase()}")
        if text is None or not text.strip():
            raise InvalidSubmission("Please enter an answer")
        if question.is_multiple_choice and text not in question.options:
            raise InvalidSubmission(f"'{text}' is not one of the options")

        is_correct = check_answer(question, text)
        record = AnswerRecord(
            question_index=self.current_index,
            submitted_text=text,
            is_correct=is_correct,
            time_spent_ms=int((self.clock() - self._question_started_at) * 1000),
            question=question,
            hint_used=self._hint_active,
        )
        self._score_answer(record)
        self.answers.append(record)
        self.last_answer = record
        monitoring.answers_submitted.labels(
            mode=self.mode,
            kind=question.kind.value,
            outcome="correct" if is_correct else "incorrect",
        ).inc()
        logger.debug(
            f"{self.mode}: answer '{text}' for question {question.id} is "
            f"{'correct' if is_correct else 'incorrect'}"
        )

        self.audio.play_feedback(is_correct)
        self.show_feedback = True
        self._advance_handle = self._schedule(
            self._feedback_delay_ms(is_correct), self._on_feedback_elapsed
        )
        return record

    def advance(self) -> None:
        """Skip the remaining feedback wait, or continue past an interstitial state."""
        self._ensure_open()
        if self.show_feedback:
            self._finish_feedback()
        else:
            self._continue()

    def pronounce_current(self) -> None:
        question = self.get_current_question()
        if question:
            self.audio.pronounce(question.term, question.direction.prompt_language)

    def close(self) -> None:
        """Tear the session down; pending timers are cancelled and never fire."""
        if self.closed:
            return
        self._cancel_pending()
        self.closed = True
        self._listeners.clear()
        logger.debug(f"{self.mode} session closed")

    # Internals

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionStateError("Session is closed")
        if not self.started:
            raise SessionStateError("Session has not been started")

    def _schedule(self, delay_ms: int, callback: Callable[[], None]) -> CancelHandle:
        handle: Optional[CancelHandle] = None

        def guarded() -> None:
            if handle in self._pending:
                self._pending.remove(handle)
            if self.closed:
                return
            callback()

        handle = self.scheduler.schedule_once(delay_ms, guarded)
        self._pending.append(handle)
        return handle

    def _cancel(self, handle: Optional[CancelHandle]) -> None:
        if handle is None:
            return
        self.scheduler.cancel(handle)
        if handle in self._pending:
            self._pending.remove(handle)

    def _cancel_pending(self) -> None:
        for handle in list(self._pending):
            self.scheduler.cancel(handle)
        self._pending.clear()
        self._advance_handle = None
        self._pronounce_handle = None
        self.show_feedback = False

    def _on_feedback_elapsed(self) -> None:
        self._advance_handle = None
        self._finish_feedback()
        for listener in list(self._listeners):
            listener(self)

    def _finish_feedback(self) -> None:
        self._cancel(self._advance_handle)
        self._advance_handle = None
        self.show_feedback = False
        self._next_question()

    def _start_question(self) -> None:
        """Reset per-question state for the question at current_index."""
        self._hint_active = False
        self._question_started_at = self.clock()
        self._cancel(self._pronounce_handle)
        self._pronounce_handle = None
        question = self.questions[self.current_index]
        if self.pronounce_multiple_choice and question.is_multiple_choice:
            self._pronounce_handle = self._schedule(
                self.settings.pronounce_delay_ms, self.pronounce_current
            )
