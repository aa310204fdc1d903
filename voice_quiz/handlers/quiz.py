"""Step 4: take the quiz, reveal answers, export PDF."""
import html
import logging
from typing import Dict, List, Optional

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.api.models import Question, Quiz, Session
from voice_quiz.handlers.common import ensure_logged_in
from voice_quiz.keyboards.wizard_kb import question_keyboard, quiz_actions_keyboard
from voice_quiz.services.grading import grade_answer, question_type_label, score_objective
from voice_quiz.services.wizard import StepFailed, load_wizard, reload_wizard, store_wizard
from voice_quiz.states.wizard import WizardStates

logger = logging.getLogger(__name__)

router = Router()

ANSWERS_KEY = "answers"
SHOW_ANSWERS_KEY = "show_answers"
SHORT_ANSWER_INDEX_KEY = "short_answer_index"
EXPORT_FAILED_MSG = "Failed to export PDF"

REVIEW_STATES = StateFilter(WizardStates.reviewing, WizardStates.answering_short)


# ============================================================================
# FORMATTING
# ============================================================================

def _method_label(method: Optional[str]) -> str:
    return "OpenAI GPT" if method == "openai" else "Local AI"


def _format_quiz_header(quiz: Quiz) -> str:
    return (
        "📋 <b>Step 4/4 · Your Generated Quiz</b>\n\n"
        f"✅ Quiz generated successfully using {_method_label(quiz.method)} model!\n\n"
        f"<b>Quiz Title:</b> {html.escape(quiz.title)}\n"
        f"<b>Difficulty:</b> {html.escape(quiz.difficulty)}\n"
        f"<b>Total Questions:</b> {quiz.total_questions}"
    )


def _format_question(
    index: int,
    question: Question,
    user_answer: Optional[str],
    show_answers: bool,
) -> str:
    """One question card; the answer key is only included when revealed."""
    lines = [
        f"<b>Question {index + 1}</b> · <i>{question_type_label(question.type)}</i>",
        html.escape(question.question),
    ]
    if question.type == "mcq" and question.options:
        lines.append("")
        lines.extend(html.escape(option) for option in question.options)
    if user_answer:
        lines.append(f"\n<b>Your answer:</b> {html.escape(user_answer)}")

    if show_answers:
        key = f"\n<b>Correct Answer:</b> {html.escape(question.correct_answer)}"
        graded = grade_answer(question, user_answer)
        if graded is True:
            key += "  ✅ Correct!"
        elif graded is False:
            key += "  ❌ Incorrect"
        lines.append(key)
        if question.explanation:
            lines.append(f"💡 <b>Explanation:</b> {html.escape(question.explanation)}")

    return "\n".join(lines)


def _format_review(quiz: Quiz, answers: Dict[str, str]) -> List[str]:
    """One message per question followed by the score line."""
    correct, graded = score_objective(quiz, answers)
    parts = [
        _format_question(i, q, answers.get(q.id), show_answers=True)
        for i, q in enumerate(quiz.questions)
    ]
    parts.append(
        f"<b>Checked answers:</b> {correct} of {graded} correct "
        "(short answers are not checked automatically)"
    )
    return parts


async def _load_quiz(state: FSMContext) -> Optional[Quiz]:
    wizard = await load_wizard(state)
    return wizard.quiz


async def _load_answers(state: FSMContext) -> Dict[str, str]:
    data = await state.get_data()
    return dict(data.get(ANSWERS_KEY) or {})


# ============================================================================
# SCREEN
# ============================================================================

async def show_quiz_step(message: Message, state: FSMContext) -> None:
    """Send the quiz header, one message per question and the action panel."""
    quiz = await _load_quiz(state)
    await state.update_data({ANSWERS_KEY: {}, SHOW_ANSWERS_KEY: False, SHORT_ANSWER_INDEX_KEY: None})

    await message.answer(_format_quiz_header(quiz), parse_mode="HTML")
    for i, question in enumerate(quiz.questions):
        await message.answer(
            _format_question(i, question, None, show_answers=False),
            reply_markup=question_keyboard(i, question),
            parse_mode="HTML",
        )
    await message.answer(
        "<b>Tip:</b> Press \"Show Answers & Check\" to see correct answers and explanations. "
        "Export the quiz as PDF for offline use or printing.",
        reply_markup=quiz_actions_keyboard(show_answers=False),
        parse_mode="HTML",
    )


# ============================================================================
# ANSWERS
# ============================================================================

async def _record_answer(state: FSMContext, question: Question, answer: str) -> Dict[str, str]:
    answers = await _load_answers(state)
    answers[question.id] = answer
    await state.update_data({ANSWERS_KEY: answers})
    return answers


@router.callback_query(REVIEW_STATES, F.data.startswith("ans:"))
async def cb_answer(callback: CallbackQuery, state: FSMContext):
    """Answer buttons of mcq / true_false questions."""
    _, raw_index, answer = callback.data.split(":", 2)
    quiz = await _load_quiz(state)
    index = int(raw_index)
    if quiz is None or not 0 <= index < len(quiz.questions):
        await callback.answer()
        return

    question = quiz.questions[index]
    await _record_answer(state, question, answer)
    data = await state.get_data()

    try:
        await callback.message.edit_text(
            _format_question(index, question, answer, bool(data.get(SHOW_ANSWERS_KEY))),
            reply_markup=question_keyboard(index, question),
            parse_mode="HTML",
        )
    except TelegramBadRequest as e:
        logger.debug("Question %d not re-rendered: %s", index, e)
    await callback.answer(f"Answer saved: {answer}")


@router.callback_query(REVIEW_STATES, F.data.startswith("quiz:sa:"))
async def cb_short_answer(callback: CallbackQuery, state: FSMContext):
    """Wait for a typed answer to a short-answer question."""
    index = int(callback.data.rsplit(":", 1)[1])
    await state.update_data({SHORT_ANSWER_INDEX_KEY: index})
    await state.set_state(WizardStates.answering_short)
    await callback.message.answer(f"✏️ Type your answer to question {index + 1}:")
    await callback.answer()


@router.message(WizardStates.answering_short)
async def process_short_answer(message: Message, state: FSMContext):
    answer = (message.text or "").strip()
    if not answer:
        await message.answer("Type your answer here as text:")
        return

    data = await state.get_data()
    index = data.get(SHORT_ANSWER_INDEX_KEY)
    quiz = await _load_quiz(state)
    await state.set_state(WizardStates.reviewing)
    if quiz is None or index is None or not 0 <= index < len(quiz.questions):
        return

    await _record_answer(state, quiz.questions[index], answer)
    await state.update_data({SHORT_ANSWER_INDEX_KEY: None})
    await message.answer(f"✅ Answer to question {index + 1} saved.")


# ============================================================================
# ACTIONS
# ============================================================================

@router.callback_query(REVIEW_STATES, F.data == "quiz:toggle")
async def cb_toggle_answers(callback: CallbackQuery, state: FSMContext):
    """Show or hide the answer key. Grading happens locally."""
    data = await state.get_data()
    show_answers = not data.get(SHOW_ANSWERS_KEY, False)
    await state.update_data({SHOW_ANSWERS_KEY: show_answers})

    try:
        await callback.message.edit_reply_markup(reply_markup=quiz_actions_keyboard(show_answers))
    except TelegramBadRequest as e:
        logger.debug("Action panel not updated: %s", e)

    if show_answers:
        quiz = await _load_quiz(state)
        answers = await _load_answers(state)
        for text in _format_review(quiz, answers):
            await callback.message.answer(text, parse_mode="HTML")
    else:
        await callback.message.answer("Answers hidden.")
    await callback.answer()


@router.callback_query(REVIEW_STATES, F.data.in_({"quiz:export:0", "quiz:export:1"}))
async def cb_export(
    callback: CallbackQuery,
    state: FSMContext,
    session: Optional[Session] = None,
):
    """Ask the API for a PDF and send it as a document."""
    if not await ensure_logged_in(callback, session):
        return
    include_answers = callback.data.endswith(":1")
    started = await load_wizard(state)
    quiz = started.quiz
    await callback.answer("Exporting...")

    client = QuizApiClient(token=session.token)
    try:
        pdf = await client.export_pdf(quiz.quiz_id, include_answers)
    except QuizAPIError as e:
        logger.error("PDF export of quiz %s failed: %r", quiz.quiz_id, e)
        wizard = await reload_wizard(state, started)
        if wizard is not None:
            wizard.dispatch(StepFailed(EXPORT_FAILED_MSG))
            await store_wizard(state, wizard)
        await callback.message.answer(f"⚠️ {EXPORT_FAILED_MSG}")
        return
    finally:
        await client.close()

    await callback.message.answer_document(
        BufferedInputFile(pdf, filename=f"quiz_{quiz.quiz_id}.pdf"),
        caption="Quiz with answers" if include_answers else "Quiz only",
    )
