"""Tests for Telegram bot handlers."""
import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from faker import Faker
from telegram.error import TelegramError

from vocastudy.bot import (
    HELP_TEXT,
    SESSION_KEY,
    handle_callback,
    handle_learn,
    handle_message,
    handle_start,
    handle_stop,
    handle_test,
    attach_session,
    background_tasks,
    render_session,
)
from vocastudy.models.study_models import Direction, Phase, StudyMode
from vocastudy.services.comprehensive_session import ComprehensiveSession
from vocastudy.services.learn_session import LearnSession
from vocastudy.services.study_service import LoadStatus

fake = Faker()


@pytest.fixture
def update() -> Mock:
    """Create a mock Update for a text message."""
    update = Mock()
    update.effective_chat.id = fake.random_int()
    update.message = AsyncMock()
    update.message.reply_text = AsyncMock()
    update.callback_query = None
    return update


@pytest.fixture
def callback_update(update: Mock) -> Mock:
    """Create a mock Update for a button press."""
    update.callback_query = AsyncMock()
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    return update


@pytest.fixture
def context() -> Mock:
    """Create a mock callback context."""
    context = Mock()
    context.user_data = {}
    context.args = []
    context.bot = AsyncMock()
    return context


@pytest.fixture
def learn_session(make_entries, session_kwargs) -> LearnSession:
    """Create a started learn session."""
    session = LearnSession(make_entries(4), **session_kwargs)
    session.start()
    return session


@pytest.fixture
def comprehensive_session(make_entries, session_kwargs) -> ComprehensiveSession:
    """Create a started comprehensive session."""
    session = ComprehensiveSession(make_entries(2), **session_kwargs)
    session.start()
    return session


def sent_text(mock: AsyncMock) -> str:
    return mock.call_args.args[0]


@pytest.mark.asyncio
async def test_handle_start(update, context):
    """Test the welcome message."""
    await handle_start(update, context)

    update.message.reply_text.assert_awaited_once_with(HELP_TEXT)


@pytest.mark.asyncio
async def test_learn_without_set_id(update, context):
    """Test that /learn without arguments shows the help."""
    await handle_learn(update, context)

    update.message.reply_text.assert_awaited_once_with(HELP_TEXT)


@pytest.mark.asyncio
async def test_learn_with_unknown_mode(update, context):
    """Test that an unknown mode is reported."""
    context.args = ["set-1", "sideways"]

    await handle_learn(update, context)

    assert "Unknown option: sideways" in sent_text(update.message.reply_text)


@pytest.mark.asyncio
async def test_learn_starts_session(update, context, learn_session):
    """Test that /learn loads the set and shows the first question."""
    context.args = ["set-1", "quiz-only"]
    loader = Mock(status=LoadStatus.READY, error=None)
    loader.load_learn = AsyncMock(return_value=learn_session)

    with patch("vocastudy.bot.SessionLoader", return_value=loader), patch("vocastudy.bot.SessionLocal"):
        await handle_learn(update, context)

    config = loader.load_learn.await_args.args[1]
    assert config.mode is StudyMode.QUIZ_ONLY
    assert context.user_data[SESSION_KEY] is learn_session
    assert "Choose the correct answer" in sent_text(update.message.reply_text)


@pytest.mark.asyncio
async def test_test_command_direction(update, context, comprehensive_session):
    """Test that /test passes the chosen direction."""
    context.args = ["set-1", "vi-en"]
    loader = Mock(status=LoadStatus.READY, error=None)
    loader.load_comprehensive = AsyncMock(return_value=comprehensive_session)

    with patch("vocastudy.bot.SessionLoader", return_value=loader), patch("vocastudy.bot.SessionLocal"):
        await handle_test(update, context)

    config = loader.load_comprehensive.await_args.args[1]
    assert config.direction is Direction.VIETNAMESE_TO_ENGLISH
    assert context.user_data[SESSION_KEY] is comprehensive_session


@pytest.mark.asyncio
async def test_failed_load_is_reported(update, context):
    """Test that a failed load shows the error and keeps no session."""
    context.args = ["missing"]
    loader = Mock(status=LoadStatus.FAILED, error="Vocabulary set missing not found")
    loader.load_learn = AsyncMock(return_value=None)

    with patch("vocastudy.bot.SessionLoader", return_value=loader), patch("vocastudy.bot.SessionLocal"):
        await handle_learn(update, context)

    assert "Vocabulary set missing not found" in sent_text(update.message.reply_text)
    assert SESSION_KEY not in context.user_data


@pytest.mark.asyncio
async def test_answer_button(callback_update, context, learn_session):
    """Test that pressing an option submits it and shows feedback."""
    context.user_data[SESSION_KEY] = learn_session
    callback_update.callback_query.data = "answer_0"

    await handle_callback(callback_update, context)

    assert learn_session.last_answer.is_correct
    assert sent_text(callback_update.callback_query.edit_message_text).startswith("✅ Correct!")


@pytest.mark.asyncio
async def test_answer_during_feedback(callback_update, context, learn_session):
    """Test that a second press during feedback is refused."""
    context.user_data[SESSION_KEY] = learn_session
    callback_update.callback_query.data = "answer_1"
    await handle_callback(callback_update, context)

    await handle_callback(callback_update, context)

    assert len(learn_session.answers) == 1
    assert "Feedback is showing" in callback_update.callback_query.answer.await_args.args[0]


@pytest.mark.asyncio
async def test_continue_button(callback_update, context, learn_session):
    """Test that continue skips the feedback wait."""
    context.user_data[SESSION_KEY] = learn_session
    learn_session.submit_answer(learn_session.get_current_question().correct_answer)
    callback_update.callback_query.data = "continue"

    await handle_callback(callback_update, context)

    assert learn_session.current_index == 1
    assert "Question 2/2" in sent_text(callback_update.callback_query.edit_message_text)


@pytest.mark.asyncio
async def test_hint_in_comprehensive_is_refused(callback_update, context, comprehensive_session):
    """Test that hints only exist in learn mode."""
    context.user_data[SESSION_KEY] = comprehensive_session
    callback_update.callback_query.data = "hint"

    await handle_callback(callback_update, context)

    callback_update.callback_query.answer.assert_awaited_once_with("Hints are only available in learn mode")


@pytest.mark.asyncio
async def test_retry_without_mistakes(callback_update, context, comprehensive_session, scheduler):
    """Test the retry button after a perfect pass."""
    for _ in range(2):
        comprehensive_session.submit_answer(comprehensive_session.get_current_question().correct_answer)
        scheduler.advance(1000)
    context.user_data[SESSION_KEY] = comprehensive_session
    callback_update.callback_query.data = "retry"

    await handle_callback(callback_update, context)

    callback_update.callback_query.answer.assert_awaited_once_with("No incorrect words to retry!")


@pytest.mark.asyncio
async def test_callback_without_session(callback_update, context):
    """Test pressing a button when no session exists."""
    callback_update.callback_query.data = "continue"

    await handle_callback(callback_update, context)

    assert "No active session" in callback_update.callback_query.answer.await_args.args[0]


@pytest.mark.asyncio
async def test_spelling_answer_by_message(update, context, comprehensive_session, scheduler):
    """Test that free text answers a spelling question."""
    comprehensive_session.submit_answer(comprehensive_session.get_current_question().correct_answer)
    scheduler.advance(1000)
    context.user_data[SESSION_KEY] = comprehensive_session
    update.message.text = "  WORD1 "

    await handle_message(update, context)

    assert comprehensive_session.last_answer.is_correct
    assert sent_text(update.message.reply_text).startswith("✅ Correct!")


@pytest.mark.asyncio
async def test_message_for_multiple_choice(update, context, learn_session):
    """Test that typing is refused while options are shown."""
    context.user_data[SESSION_KEY] = learn_session
    update.message.text = "từ0"

    await handle_message(update, context)

    update.message.reply_text.assert_awaited_once_with("Please use the buttons to answer.")
    assert learn_session.answers == []


@pytest.mark.asyncio
async def test_handle_stop(update, context, learn_session):
    """Test that /stop closes the session."""
    context.user_data[SESSION_KEY] = learn_session

    await handle_stop(update, context)

    assert learn_session.closed
    assert SESSION_KEY not in context.user_data


@pytest.mark.asyncio
async def test_timer_change_sends_message(update, context, learn_session, scheduler):
    """Test that an auto-advance is pushed to the chat."""
    attach_session(update, context, learn_session)
    learn_session.submit_answer(learn_session.get_current_question().correct_answer)

    scheduler.advance(1000)
    await asyncio.sleep(0)

    context.bot.send_message.assert_awaited_once()
    assert "Question 2/2" in context.bot.send_message.await_args.kwargs["text"]


@pytest.mark.asyncio
async def test_failed_timer_message_is_logged(update, context, learn_session, scheduler, caplog):
    """Test that a send failure after an auto-advance is logged, not lost."""
    context.bot.send_message.side_effect = TelegramError("boom")
    attach_session(update, context, learn_session)
    learn_session.submit_answer(learn_session.get_current_question().correct_answer)

    earlier = set(background_tasks)
    scheduler.advance(1000)
    started = background_tasks - earlier
    await asyncio.gather(*started, return_exceptions=True)
    await asyncio.sleep(0)

    assert "boom" in caplog.text
    assert "failed" in caplog.text
    assert not started & background_tasks


@pytest.mark.asyncio
async def test_timer_message_task_is_kept_until_done(update, context, learn_session, scheduler):
    """Test that a pending chat update stays referenced while it runs."""
    attach_session(update, context, learn_session)
    learn_session.submit_answer(learn_session.get_current_question().correct_answer)

    earlier = set(background_tasks)
    scheduler.advance(1000)
    started = background_tasks - earlier
    assert len(started) == 1

    await asyncio.gather(*started)
    await asyncio.sleep(0)
    assert not started & background_tasks


@pytest.mark.asyncio
async def test_review_answers_button(callback_update, context, comprehensive_session, scheduler):
    """Test the answer review opened from the result screen."""
    comprehensive_session.submit_answer("từ1")
    scheduler.advance(1000)
    comprehensive_session.submit_answer(comprehensive_session.get_current_question().correct_answer)
    scheduler.advance(1000)
    context.user_data[SESSION_KEY] = comprehensive_session
    callback_update.callback_query.data = "review_answers"

    await handle_callback(callback_update, context)

    edit = callback_update.callback_query.edit_message_text
    text = sent_text(edit)
    assert "1. [multiple-choice] <b>word0</b> (0s)" in text
    assert "❌ Your answer: từ1" in text
    assert "Correct answer: <b>từ0</b>" in text
    assert "2. [spelling]" in text
    assert "✅ Your answer: word1" in text
    assert text.count("Correct answer:") == 1
    assert edit.await_args.kwargs["reply_markup"].inline_keyboard[0][0].callback_data == "result"


@pytest.mark.asyncio
async def test_back_to_result(callback_update, context, comprehensive_session, scheduler):
    """Test returning from the answer review to the result screen."""
    for _ in range(2):
        comprehensive_session.submit_answer(comprehensive_session.get_current_question().correct_answer)
        scheduler.advance(1000)
    context.user_data[SESSION_KEY] = comprehensive_session
    callback_update.callback_query.data = "result"

    await handle_callback(callback_update, context)

    assert "Score: 2/2 (100%)" in sent_text(callback_update.callback_query.edit_message_text)


@pytest.mark.asyncio
async def test_review_answers_before_result(callback_update, context, comprehensive_session):
    """Test that the answer review waits for the result screen."""
    context.user_data[SESSION_KEY] = comprehensive_session
    callback_update.callback_query.data = "review_answers"

    await handle_callback(callback_update, context)

    callback_update.callback_query.answer.assert_awaited_once_with(
        "The answer review is available once the result is shown"
    )
    callback_update.callback_query.edit_message_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_review_answers_in_learn_mode(callback_update, context, learn_session):
    """Test that learn mode has no answer review."""
    context.user_data[SESSION_KEY] = learn_session
    callback_update.callback_query.data = "review_answers"

    await handle_callback(callback_update, context)

    callback_update.callback_query.answer.assert_awaited_once_with(
        "The answer review is only available in the comprehensive test"
    )


def test_render_review(learn_session, scheduler):
    """Test the review screen."""
    for _ in range(2):
        learn_session.submit_answer(learn_session.get_current_question().correct_answer)
        scheduler.advance(1000)
    assert learn_session.get_phase() is Phase.REVIEW1

    text, markup = render_session(learn_session)

    assert "word0" in text and "từ1" in text
    assert markup.inline_keyboard[0][0].callback_data == "continue"


def test_render_summary_offers_retry(comprehensive_session, scheduler):
    """Test that the result screen offers a retry after mistakes."""
    comprehensive_session.submit_answer("từ1")
    scheduler.advance(1000)
    comprehensive_session.submit_answer(comprehensive_session.get_current_question().correct_answer)
    scheduler.advance(1000)

    text, markup = render_session(comprehensive_session)

    assert "Score: 1/2 (50%)" in text
    callbacks = [row[0].callback_data for row in markup.inline_keyboard]
    assert callbacks == ["retry", "review_answers", "restart"]


if __name__ == "__main__":
    pytest.main([__file__])
