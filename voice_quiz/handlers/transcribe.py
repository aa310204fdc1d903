"""Step 2: automatic transcription plus a manual "looks good" checkpoint."""
import html
import logging
from typing import Optional

from aiogram import Router, F
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.api.models import Session, Transcript, to_dict
from voice_quiz.config import settings
from voice_quiz.handlers.common import ensure_logged_in, split_text
from voice_quiz.handlers.generate import show_generate_step
from voice_quiz.keyboards.wizard_kb import transcript_failed_keyboard, transcript_keyboard
from voice_quiz.services.wizard import (
    StepFailed, TranscriptAccepted, TranscriptionRequested, WizardStep,
    load_wizard, reload_wizard, store_wizard,
)
from voice_quiz.states.wizard import WizardStates

logger = logging.getLogger(__name__)

router = Router()

PENDING_TRANSCRIPT_KEY = "pending_transcript"
TRANSCRIPTION_FAILED_MSG = "Transcription failed"
TRANSCRIPTION_ERROR_MSG = (
    "Failed to transcribe audio. Try a different audio file with clearer speech."
)


def _format_duration(seconds: float) -> str:
    """125.4 -> '2:05 minutes'."""
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}:{secs:02d} minutes"


def _format_transcript_info(transcript: Transcript) -> str:
    lines = [
        "✅ <b>Transcription completed successfully!</b>\n",
        f"<b>Language Detected:</b> {html.escape(transcript.language or 'English')}",
        f"<b>Word Count:</b> {transcript.word_count}",
    ]
    if transcript.duration:
        lines.append(f"<b>Audio Duration:</b> {_format_duration(transcript.duration)}")
    return "\n".join(lines)


async def start_transcription(message: Message, state: FSMContext, session: Session) -> None:
    """Transcribe the uploaded audio. Runs once per wizard run."""
    wizard = await load_wizard(state)
    if wizard.step != WizardStep.TRANSCRIBE or wizard.transcription_requested:
        return
    wizard.dispatch(TranscriptionRequested())
    await store_wizard(state, wizard)
    started = wizard

    busy = await message.answer(
        "📄 <b>Step 2/4 · Audio Transcription</b>\n\n"
        "⏳ Transcribing audio...\n"
        "<i>This may take a few moments depending on the audio length.</i>",
        parse_mode="HTML",
    )

    client = QuizApiClient(token=session.token)
    try:
        transcript = await client.transcribe(started.audio.filename, settings.TRANSCRIBE_LANGUAGE)
    except QuizAPIError as e:
        logger.error("Transcription of %s failed: %r", started.audio.filename, e)
        wizard = await reload_wizard(state, started)
        if wizard is None:
            await busy.delete()
            return
        fallback = TRANSCRIPTION_FAILED_MSG if e.status and e.status < 300 else TRANSCRIPTION_ERROR_MSG
        error = e.user_message(fallback)
        wizard.dispatch(StepFailed(error))
        await store_wizard(state, wizard)
        await busy.edit_text(
            f"⚠️ <b>Error:</b> {html.escape(error)}\n\n"
            "If the transcript keeps failing, try uploading a clearer audio file.",
            reply_markup=transcript_failed_keyboard(),
            parse_mode="HTML",
        )
        return
    finally:
        await client.close()

    if await reload_wizard(state, started) is None:
        logger.info("Transcript of %s arrived after the wizard was left, result dropped", started.audio.filename)
        await busy.delete()
        return

    await state.update_data({PENDING_TRANSCRIPT_KEY: to_dict(transcript)})
    await busy.edit_text(_format_transcript_info(transcript), parse_mode="HTML")

    for chunk in split_text(transcript.text) or ["(empty transcript)"]:
        await message.answer(chunk)

    await message.answer(
        "📝 <b>Review Your Transcript:</b> Please check the transcript above for accuracy. "
        "If it looks good, proceed to generate quiz questions. If there are errors, "
        "try uploading a clearer audio file.",
        reply_markup=transcript_keyboard(),
        parse_mode="HTML",
    )


@router.callback_query(WizardStates.transcribing, F.data == "transcript:ok")
async def cb_transcript_ok(
    callback: CallbackQuery,
    state: FSMContext,
    session: Optional[Session] = None,
):
    """The user confirmed the transcript; only this advances the wizard."""
    if not await ensure_logged_in(callback, session):
        return

    data = await state.get_data()
    pending = data.get(PENDING_TRANSCRIPT_KEY)
    if not pending:
        await callback.answer("The transcript is not ready yet.")
        return

    wizard = await load_wizard(state)
    wizard.dispatch(TranscriptAccepted(Transcript(**pending)))
    await store_wizard(state, wizard)
    await state.update_data({PENDING_TRANSCRIPT_KEY: None})

    await callback.answer()
    await show_generate_step(callback.message, state)
