"""Step 3: quiz settings and generation."""
import html
import logging
from typing import Optional

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.api.models import QuizSettings, Session
from voice_quiz.handlers.common import ensure_logged_in, error_line
from voice_quiz.handlers.quiz import show_quiz_step
from voice_quiz.keyboards.wizard_kb import settings_keyboard
from voice_quiz.services.grading import question_type_label
from voice_quiz.services.quiz_settings import (
    adjust_count, set_difficulty, settings_from_dict, settings_to_dict,
    toggle_question_type, validate_settings,
)
from voice_quiz.services.wizard import (
    QuizGenerated, StepFailed, WizardStep, begin_request, load_wizard,
    reload_wizard, store_wizard,
)
from voice_quiz.states.wizard import WizardStates

logger = logging.getLogger(__name__)

router = Router()

SETTINGS_KEY = "quiz_settings"
GENERATION_FAILED_MSG = "Quiz generation failed"
GENERATION_ERROR_MSG = "Failed to generate quiz"
GENERATION_IN_PROGRESS_MSG = "Quiz generation in progress..."

GENERATE_STATES = StateFilter(WizardStates.generating, WizardStates.entering_question_count)


def _format_settings(settings: QuizSettings, error: Optional[str] = None) -> str:
    types = ", ".join(question_type_label(t) for t in settings.question_types) or "none selected"
    return (
        "🧠 <b>Step 3/4 · Generate Quiz</b>\n\n"
        "⚙️ Configure your quiz settings below. The AI will analyze the transcript "
        "and create questions based on key concepts.\n\n"
        f"<b>Difficulty Level:</b> {settings.difficulty.capitalize()}\n"
        f"<b>Number of Questions:</b> {html.escape(str(settings.num_questions))}\n"
        f"<b>Question Types</b> (select at least one): {types}"
        + error_line(error)
    )


async def _load_settings(state: FSMContext) -> QuizSettings:
    data = await state.get_data()
    return settings_from_dict(data.get(SETTINGS_KEY))


async def _save_settings(state: FSMContext, settings: QuizSettings) -> None:
    await state.update_data({SETTINGS_KEY: settings_to_dict(settings)})


async def show_generate_step(message: Message, state: FSMContext) -> None:
    """Send the settings panel."""
    settings = await _load_settings(state)
    await _save_settings(state, settings)
    wizard = await load_wizard(state)
    await message.answer(
        _format_settings(settings, wizard.error),
        reply_markup=settings_keyboard(settings),
        parse_mode="HTML",
    )


async def _refresh_panel(callback: CallbackQuery, settings: QuizSettings) -> None:
    try:
        await callback.message.edit_text(
            _format_settings(settings),
            reply_markup=settings_keyboard(settings),
            parse_mode="HTML",
        )
    except TelegramBadRequest as e:
        # "message is not modified" when a count is already at its limit
        logger.debug("Settings panel not updated: %s", e)


@router.callback_query(GENERATE_STATES, F.data.startswith("gen:diff:"))
async def cb_difficulty(callback: CallbackQuery, state: FSMContext):
    settings = set_difficulty(await _load_settings(state), callback.data.rsplit(":", 1)[1])
    await _save_settings(state, settings)
    await _refresh_panel(callback, settings)
    await callback.answer()


@router.callback_query(GENERATE_STATES, F.data.startswith("gen:type:"))
async def cb_question_type(callback: CallbackQuery, state: FSMContext):
    settings = toggle_question_type(await _load_settings(state), callback.data.split(":", 2)[2])
    await _save_settings(state, settings)
    await _refresh_panel(callback, settings)
    await callback.answer()


@router.callback_query(GENERATE_STATES, F.data.in_({"gen:count:-1", "gen:count:+1"}))
async def cb_adjust_count(callback: CallbackQuery, state: FSMContext):
    delta = int(callback.data.rsplit(":", 1)[1])
    settings = adjust_count(await _load_settings(state), delta)
    await _save_settings(state, settings)
    await _refresh_panel(callback, settings)
    await callback.answer()


@router.callback_query(GENERATE_STATES, F.data == "gen:count:type")
async def cb_type_count(callback: CallbackQuery, state: FSMContext):
    await state.set_state(WizardStates.entering_question_count)
    await callback.message.answer("Type the number of questions (1-50):")
    await callback.answer()


@router.message(WizardStates.entering_question_count)
async def process_question_count(message: Message, state: FSMContext):
    """Keep the count exactly as typed; it is checked when generating."""
    settings = await _load_settings(state)
    settings.num_questions = (message.text or "").strip()
    await _save_settings(state, settings)
    await state.set_state(WizardStates.generating)
    await show_generate_step(message, state)


@router.callback_query(GENERATE_STATES, F.data == "gen:go")
async def cb_generate(
    callback: CallbackQuery,
    state: FSMContext,
    session: Optional[Session] = None,
):
    """Check the settings locally, then ask the API for a quiz."""
    if not await ensure_logged_in(callback, session):
        return

    settings = await _load_settings(state)
    error = validate_settings(settings)
    if error:
        await callback.answer()
        wizard = await load_wizard(state)
        wizard.dispatch(StepFailed(error))
        await store_wizard(state, wizard)
        await callback.message.answer(f"⚠️ {error}")
        return

    # At most one generation in flight per run
    started = await begin_request(state, WizardStep.GENERATE)
    if started is None:
        await callback.answer(GENERATION_IN_PROGRESS_MSG)
        return
    await callback.answer()

    busy = await callback.message.answer(
        "⏳ Generating quiz questions with AI...\n"
        f"Analyzing transcript and creating {int(settings.num_questions)} questions."
    )

    client = QuizApiClient(token=session.token)
    try:
        quiz = await client.generate_quiz(
            started.transcript.text,
            started.audio.display_name,
            settings,
        )
    except QuizAPIError as e:
        logger.error("Quiz generation failed for user_id=%d: %r", callback.from_user.id, e)
        wizard = await reload_wizard(state, started)
        if wizard is None:
            await busy.delete()
            return
        fallback = GENERATION_FAILED_MSG if e.status and e.status < 300 else GENERATION_ERROR_MSG
        error = e.user_message(fallback)
        wizard.dispatch(StepFailed(error))
        await store_wizard(state, wizard)
        await busy.edit_text(f"⚠️ Error: {error}")
        return
    finally:
        await client.close()

    wizard = await reload_wizard(state, started)
    if wizard is None:
        logger.info("Quiz %s arrived after the wizard was left, result dropped", quiz.quiz_id)
        await busy.delete()
        return

    wizard.dispatch(QuizGenerated(quiz))
    await store_wizard(state, wizard)
    await busy.delete()
    await show_quiz_step(callback.message, state)
