"""Telegram front-end for study sessions."""
import asyncio
import html
import logging
from typing import Coroutine, List, Optional, Set, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import MessageLimit
from telegram.error import TelegramError
from telegram.ext import CallbackContext

from vocastudy import monitoring
from vocastudy.config import settings
from vocastudy.errors import InvalidSubmission, SessionStateError
from vocastudy.models.base import SessionLocal
from vocastudy.models.study_models import (
    ComprehensiveConfig,
    ComprehensiveStage,
    Direction,
    LearnConfig,
    Phase,
    StudyMode,
)
from vocastudy.services.audio_cue import AudioCue, PronunciationCache
from vocastudy.services.comprehensive_session import ComprehensiveSession
from vocastudy.services.learn_session import LearnSession
from vocastudy.services.scheduler import AsyncioScheduler
from vocastudy.services.study_service import LoadStatus, SessionLoader
from vocastudy.services.study_session import StudySession
from vocastudy.services.vocabulary_repository import SqlVocabularyRepository

# Get logger for this module
logger = logging.getLogger(__name__)

SESSION_KEY = "session"

DIRECTION_ALIASES = {
    "en-vi": Direction.ENGLISH_TO_VIETNAMESE,
    "vi-en": Direction.VIETNAMESE_TO_ENGLISH,
}

PHASE_TITLES = {
    Phase.QUIZ1: "📝 Quiz (part 1)",
    Phase.REVIEW1: "📖 Review (part 1)",
    Phase.SPELL1: "✍️ Spelling (part 1)",
    Phase.QUIZ2: "📝 Quiz (part 2)",
    Phase.REVIEW2: "📖 Review (part 2)",
    Phase.SPELL2: "✍️ Spelling (part 2)",
    Phase.COMPLETED: "🎉 Completed",
}

HELP_TEXT = (
    "Welcome! Practice your vocabulary sets:\n\n"
    "/learn <set_id> [mixed|quiz-only|spell-only] - adaptive learn mode\n"
    "/test <set_id> [en-vi|vi-en] - comprehensive test\n"
    "/stop - end the current session"
)

Keyboard = List[List[InlineKeyboardButton]]

# Sends started outside a handler; kept referenced until they finish
background_tasks: Set[asyncio.Task] = set()


def run_in_background(coro: Coroutine, description: str) -> asyncio.Task:
    """Schedule a coroutine on the running loop and log it if it fails."""
    task = asyncio.create_task(coro)
    background_tasks.add(task)
    task.add_done_callback(lambda done: _on_background_done(done, description))
    return task


def _on_background_done(task: asyncio.Task, description: str) -> None:
    background_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error:
        logger.error(f"Background task '{description}' failed: {error}")
        monitoring.error_count.labels(error_type=type(error).__name__).inc()


class ChatAudioCue(AudioCue):
    """Sends pronunciations to a chat as voice messages."""

    def __init__(self, bot, chat_id: int, cache: Optional[PronunciationCache] = None):
        self.bot = bot
        self.chat_id = chat_id
        self.cache = cache or PronunciationCache(settings.bot.pronunciations_dir)

    def pronounce(self, text: str, lang: str) -> None:
        run_in_background(self.send_pronunciation(text, lang), f"pronounce {text}")

    def play_feedback(self, correct: bool) -> None:
        # Feedback is shown in the message text
        pass

    async def send_pronunciation(self, text: str, lang: str) -> None:
        path = await asyncio.to_thread(self.cache.get, text, lang)
        if path is None:
            return
        try:
            with open(path, "rb") as audio:
                await self.bot.send_voice(chat_id=self.chat_id, voice=audio)
        except (TelegramError, OSError) as e:
            logger.error(f"Error sending pronunciation for {text}: {e}")
            monitoring.error_count.labels(error_type=type(e).__name__).inc()


def get_session(context: CallbackContext) -> Optional[StudySession]:
    return context.user_data.get(SESSION_KEY)


def close_session(context: CallbackContext) -> None:
    """Close and forget the user's current session."""
    session = context.user_data.pop(SESSION_KEY, None)
    if session:
        session.close()


def render_session(session: StudySession) -> Tuple[str, InlineKeyboardMarkup]:
    """Build the message text and buttons for the session's current state."""
    if session.show_feedback and session.last_answer:
        return render_feedback(session)
    if isinstance(session, LearnSession):
        if session.phase is Phase.COMPLETED:
            return render_summary(session)
        if session.phase.is_review:
            return render_review(session)
    if isinstance(session, ComprehensiveSession) and session.get_phase() is ComprehensiveStage.SHOW_RESULT:
        return render_summary(session)
    return render_question(session)


def render_question(session: StudySession) -> Tuple[str, InlineKeyboardMarkup]:
    question = session.get_current_question()
    header = f"Question {session.current_index + 1}/{len(session.questions)}"
    if isinstance(session, LearnSession):
        header = f"{PHASE_TITLES[session.phase]} - {header}"
    buttons: Keyboard = []
    if question.is_multiple_choice:
        text = f"{header}\n\nChoose the correct answer for:\n\n<b>{html.escape(question.prompt)}</b>"
        buttons = [
            [InlineKeyboardButton(option, callback_data=f"answer_{index}")]
            for index, option in enumerate(question.options)
        ]
        buttons.append([InlineKeyboardButton("🔊 Pronounce", callback_data="pronounce")])
    else:
        text = f"{header}\n\n<b>{html.escape(question.prompt)}</b>\n\nType your answer."
        if isinstance(session, LearnSession):
            buttons.append([InlineKeyboardButton("💡 Hint", callback_data="hint")])
    return text, InlineKeyboardMarkup(buttons)


def render_feedback(session: StudySession) -> Tuple[str, InlineKeyboardMarkup]:
    answer = session.last_answer
    question = answer.question
    if answer.is_correct:
        text = "✅ Correct! 🎉"
    else:
        text = f"❌ Wrong! The correct answer is: <b>{html.escape(question.correct_answer)}</b>"
    if question.explanation:
        text += f"\n\n<i>{html.escape(question.explanation)}</i>"
    buttons = [[InlineKeyboardButton("➡️ Next", callback_data="continue")]]
    return text, InlineKeyboardMarkup(buttons)


def render_review(session: LearnSession) -> Tuple[str, InlineKeyboardMarkup]:
    lines = [PHASE_TITLES[session.phase], ""]
    for entry in session.get_review_entries():
        line = f"<b>{html.escape(entry.english)}</b>"
        if entry.phonetic:
            line += f" {html.escape(entry.phonetic)}"
        line += f" - <i>{html.escape(entry.vietnamese)}</i>"
        lines.append(line)
    buttons = [[InlineKeyboardButton("➡️ Continue", callback_data="continue")]]
    return "\n".join(lines), InlineKeyboardMarkup(buttons)


def render_summary(session: StudySession) -> Tuple[str, InlineKeyboardMarkup]:
    summary = session.get_score_summary()
    lines = [
        "🎉 Finished!",
        "",
        f"Score: {summary.overall.correct}/{summary.overall.total} ({summary.overall.percentage}%)",
    ]
    for name, score in summary.breakdown.items():
        lines.append(f"• {name}: {score.correct}/{score.total}")
    buttons: Keyboard = []
    if isinstance(session, ComprehensiveSession) and summary.incorrect_count:
        lines.append(f"\nIncorrect answers: {summary.incorrect_count}")
        buttons.append([InlineKeyboardButton("🔁 Retry incorrect", callback_data="retry")])
    if isinstance(session, ComprehensiveSession):
        buttons.append([InlineKeyboardButton("📋 Review answers", callback_data="review_answers")])
    buttons.append([InlineKeyboardButton("🔄 Restart", callback_data="restart")])
    return "\n".join(lines), InlineKeyboardMarkup(buttons)


def render_answer_review(session: ComprehensiveSession) -> Tuple[str, InlineKeyboardMarkup]:
    """List every answer of the finished pass with its correction."""
    lines = ["📋 Answer review"]
    for number, answer in enumerate(session.get_answer_review(), start=1):
        question = answer.question
        seconds = round(answer.time_spent_ms / 1000)
        mark = "✅" if answer.is_correct else "❌"
        lines.append("")
        lines.append(f"{number}. [{question.kind.value}] <b>{html.escape(question.prompt)}</b> ({seconds}s)")
        lines.append(f"{mark} Your answer: {html.escape(answer.submitted_text)}")
        if not answer.is_correct:
            lines.append(f"Correct answer: <b>{html.escape(question.correct_answer)}</b>")
        if question.explanation:
            lines.append(f"<i>{html.escape(question.explanation)}</i>")

    text = "\n".join(lines)
    if len(text) > MessageLimit.MAX_TEXT_LENGTH:
        # Cut at an entry boundary so no HTML tag is left open
        cut = text.rfind("\n\n", 0, MessageLimit.MAX_TEXT_LENGTH - 2)
        text = text[:cut] + "\n…"
    buttons = [[InlineKeyboardButton("⬅️ Back to result", callback_data="result")]]
    return text, InlineKeyboardMarkup(buttons)


async def send_session_state(update: Update, session: StudySession) -> None:
    text, markup = render_session(session)
    if update.callback_query:
        await update.callback_query.edit_message_text(text, reply_markup=markup, parse_mode="HTML")
    else:
        await update.message.reply_text(text, reply_markup=markup, parse_mode="HTML")


def attach_session(update: Update, context: CallbackContext, session: StudySession) -> None:
    """Store the session and re-render it whenever a timer advances it."""
    close_session(context)
    context.user_data[SESSION_KEY] = session
    bot = context.bot
    chat_id = update.effective_chat.id

    def on_change(changed: StudySession) -> None:
        text, markup = render_session(changed)
        run_in_background(
            bot.send_message(chat_id=chat_id, text=text, reply_markup=markup, parse_mode="HTML"),
            f"update chat {chat_id}",
        )

    session.add_listener(on_change)


async def start_session(update: Update, context: CallbackContext, comprehensive: bool) -> None:
    if not context.args:
        await update.message.reply_text(HELP_TEXT)
        return

    set_id = context.args[0]
    option = context.args[1] if len(context.args) > 1 else None
    try:
        if comprehensive:
            direction = DIRECTION_ALIASES[option] if option else Direction.ENGLISH_TO_VIETNAMESE
        else:
            mode = StudyMode(option) if option else StudyMode.MIXED
    except (KeyError, ValueError):
        await update.message.reply_text(f"Unknown option: {option}\n\n{HELP_TEXT}")
        return

    session_kwargs = {"scheduler": AsyncioScheduler()}
    if settings.bot.pronunciation_enabled:
        session_kwargs["audio"] = ChatAudioCue(context.bot, update.effective_chat.id)

    db = SessionLocal()
    try:
        loader = SessionLoader(SqlVocabularyRepository(db), **session_kwargs)
        await update.message.reply_text("⏳ Loading...")
        if comprehensive:
            session = await loader.load_comprehensive(set_id, ComprehensiveConfig(direction=direction))
        else:
            session = await loader.load_learn(set_id, LearnConfig(mode=mode))
    finally:
        db.close()

    if loader.status is LoadStatus.FAILED:
        await update.message.reply_text(f"⚠️ {loader.error}\n\nTry again with the same command.")
        return

    attach_session(update, context, session)
    await send_session_state(update, session)


async def handle_start(update: Update, context: CallbackContext) -> None:
    """Show the list of commands."""
    await update.message.reply_text(HELP_TEXT)


async def handle_learn(update: Update, context: CallbackContext) -> None:
    """Start a learn session: /learn <set_id> [mode]."""
    await start_session(update, context, comprehensive=False)


async def handle_test(update: Update, context: CallbackContext) -> None:
    """Start a comprehensive session: /test <set_id> [direction]."""
    await start_session(update, context, comprehensive=True)


async def handle_stop(update: Update, context: CallbackContext) -> None:
    close_session(context)
    await update.message.reply_text("Session ended.")


async def handle_callback(update: Update, context: CallbackContext) -> None:
    """Handle button presses inside a session."""
    query = update.callback_query
    session = get_session(context)
    if not session:
        await query.answer("No active session. Use /learn or /test to start one.")
        return

    data = query.data
    logger.debug(f"Callback received: {data}")
    try:
        if data.startswith("answer_"):
            question = session.get_current_question()
            if question is None or not question.is_multiple_choice:
                raise SessionStateError("This question is no longer active")
            index = int(data.split("_", 1)[1])
            if not 0 <= index < len(question.options):
                raise InvalidSubmission("Unknown option")
            session.submit_answer(question.options[index])
        elif data == "continue":
            session.advance()
        elif data == "hint":
            if not isinstance(session, LearnSession):
                raise SessionStateError("Hints are only available in learn mode")
            hint = session.use_hint()
            await query.answer(f"💡 Starts with: {hint}")
            return
        elif data == "pronounce":
            session.pronounce_current()
            await query.answer()
            return
        elif data == "retry":
            if not isinstance(session, ComprehensiveSession):
                raise SessionStateError("Retry is only available in the comprehensive test")
            if not session.retry_incorrect():
                await query.answer("No incorrect words to retry!")
                return
        elif data == "review_answers":
            if not isinstance(session, ComprehensiveSession):
                raise SessionStateError("The answer review is only available in the comprehensive test")
            text, markup = render_answer_review(session)
            await query.answer()
            await query.edit_message_text(text, reply_markup=markup, parse_mode="HTML")
            return
        elif data == "result":
            pass  # Back from the answer review, redrawn below
        elif data == "restart":
            session.restart()
        else:
            logger.warning(f"Unknown callback data: {data}")
            await query.answer()
            return
    except (InvalidSubmission, SessionStateError) as e:
        logger.info(f"Rejected callback {data}: {e}")
        monitoring.error_count.labels(error_type=type(e).__name__).inc()
        await query.answer(str(e))
        return

    await query.answer()
    await send_session_state(update, session)


async def handle_message(update: Update, context: CallbackContext) -> None:
    """Treat free text as the answer to a spelling question."""
    session = get_session(context)
    if not session:
        await update.message.reply_text(HELP_TEXT)
        return

    question = session.get_current_question()
    if question is None or question.is_multiple_choice:
        await update.message.reply_text("Please use the buttons to answer.")
        return

    try:
        session.submit_answer(update.message.text)
    except (InvalidSubmission, SessionStateError) as e:
        logger.info(f"Rejected answer: {e}")
        monitoring.error_count.labels(error_type=type(e).__name__).inc()
        await update.message.reply_text(f"⚠️ {e}")
        return

    await send_session_state(update, session)
