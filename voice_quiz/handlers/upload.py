"""Step 1: pick an audio file, check it locally, upload it."""
import html
import logging
from dataclasses import asdict
from typing import Optional

from aiogram import Bot, Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.api.models import Session
from voice_quiz.handlers.common import ensure_logged_in, error_line
from voice_quiz.handlers.transcribe import start_transcription
from voice_quiz.keyboards.wizard_kb import nav_keyboard, upload_keyboard
from voice_quiz.services.audio_validator import (
    AudioFile, audio_file_from_message, validate_audio_file,
)
from voice_quiz.services.wizard import (
    AudioUploaded, ErrorCleared, StepFailed, WizardController, WizardStep,
    begin_request, load_wizard, reload_wizard, store_wizard,
)
from voice_quiz.states.wizard import WizardStates

logger = logging.getLogger(__name__)

router = Router()

PENDING_FILE_KEY = "pending_file"
NO_FILE_MSG = "Please select a file first."
UPLOAD_FAILED_MSG = "Upload failed"
UPLOAD_ERROR_MSG = "Failed to upload audio file"
UPLOAD_IN_PROGRESS_MSG = "Upload in progress..."


def _format_file_info(audio: AudioFile) -> str:
    return (
        f"🎵 <b>File Name:</b> {html.escape(audio.filename)}\n"
        f"<b>File Size:</b> {audio.size_mb} MB\n"
        f"<b>File Type:</b> {html.escape(audio.mime_type or 'Unknown')}"
    )


async def show_upload_step(message: Message, state: FSMContext) -> None:
    """Render step 1 for the wizard stored in the FSM."""
    wizard = await load_wizard(state)
    await store_wizard(state, wizard)
    await message.answer(
        "☁️ <b>Step 1/4 · Upload Lecture Audio</b>\n\n"
        "Send an audio file, a voice message or a document.\n"
        "Supported formats: MP3, WAV, M4A, OGG (Max: 50MB)\n\n"
        "<i>Note: For best results, use clear audio recordings of lectures "
        "with minimal background noise.</i>"
        + error_line(wizard.error),
        reply_markup=nav_keyboard(),
        parse_mode="HTML",
    )


async def _fail(
    state: FSMContext,
    message: Message,
    error: str,
    wizard: Optional[WizardController] = None,
) -> None:
    """Put the error into the wizard's error slot and show it."""
    if wizard is None:
        wizard = await load_wizard(state)
    wizard.dispatch(StepFailed(error))
    await store_wizard(state, wizard)
    await message.answer(f"⚠️ {error}")


@router.message(WizardStates.uploading, F.audio | F.voice | F.document)
async def process_audio_file(message: Message, state: FSMContext):
    """Validate the attachment; nothing is sent to the API here."""
    audio = audio_file_from_message(message)
    if audio is None:
        await message.answer("Please send an audio file.")
        return

    error = validate_audio_file(audio.filename, audio.mime_type, audio.size)
    if error:
        await _fail(state, message, error)
        return

    wizard = await load_wizard(state)
    wizard.dispatch(ErrorCleared())
    await store_wizard(state, wizard)
    await state.update_data({PENDING_FILE_KEY: asdict(audio)})

    await message.answer(
        _format_file_info(audio),
        reply_markup=upload_keyboard(),
        parse_mode="HTML",
    )


@router.message(WizardStates.uploading)
async def process_not_audio(message: Message):
    await message.answer(
        "Please send an audio file (MP3, WAV, M4A or OGG).",
        reply_markup=nav_keyboard(),
    )


@router.callback_query(WizardStates.uploading, F.data == "upload:go")
async def cb_upload(
    callback: CallbackQuery,
    state: FSMContext,
    bot: Bot,
    session: Optional[Session] = None,
):
    """Download the picked file from Telegram and post it to /upload."""
    if not await ensure_logged_in(callback, session):
        return

    data = await state.get_data()
    pending = data.get(PENDING_FILE_KEY)
    if not pending:
        await callback.answer()
        await _fail(state, callback.message, NO_FILE_MSG)
        return

    # Marked busy before the first await: a second tap finds it taken
    started = await begin_request(state, WizardStep.UPLOAD)
    if started is None:
        await callback.answer(UPLOAD_IN_PROGRESS_MSG)
        return
    await callback.answer()
    audio = AudioFile(**pending)

    busy = await callback.message.answer("⏳ Uploading audio file...")

    try:
        downloaded = await bot.download(audio.file_id)
        content = downloaded.read()
    except TelegramAPIError as e:
        logger.error("Download of %s from Telegram failed: %s", audio.filename, e)
        await busy.delete()
        wizard = await reload_wizard(state, started)
        if wizard is not None:
            await _fail(state, callback.message, UPLOAD_ERROR_MSG, wizard)
        return

    client = QuizApiClient(token=session.token)
    try:
        handle = await client.upload_audio(audio.filename, content, audio.mime_type)
    except QuizAPIError as e:
        logger.error("Upload failed for user_id=%d: %r", callback.from_user.id, e)
        fallback = UPLOAD_FAILED_MSG if e.status and e.status < 300 else UPLOAD_ERROR_MSG
        await busy.delete()
        wizard = await reload_wizard(state, started)
        if wizard is not None:
            await _fail(state, callback.message, e.user_message(fallback), wizard)
        return
    finally:
        await client.close()

    wizard = await reload_wizard(state, started)
    if wizard is None:
        logger.info("Upload of %s finished after the wizard was left, result dropped", handle.filename)
        await busy.delete()
        return

    wizard.dispatch(AudioUploaded(handle))
    await store_wizard(state, wizard)
    await state.update_data({PENDING_FILE_KEY: None})

    await busy.edit_text(f"✅ Uploaded: {handle.display_name}")
    await start_transcription(callback.message, state, session)
