"""Start command, help, logout and every "back to the beginning" action."""
import logging
from typing import Optional

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.models import Session
from voice_quiz.handlers.auth import show_auth_screen
from voice_quiz.handlers.common import ensure_logged_in
from voice_quiz.handlers.dashboard import show_dashboard
from voice_quiz.handlers.upload import show_upload_step
from voice_quiz.services.wizard import reset_wizard, store_wizard
from voice_quiz.utils.session_store import SessionStore

logger = logging.getLogger(__name__)

router = Router()

HELP_TEXT = (
    "🎙️ <b>Voice-to-Quiz</b>\n\n"
    "Turn a lecture recording into a quiz in four steps: "
    "upload the audio, check the transcript, pick the quiz settings, take the quiz.\n\n"
    "Commands:\n"
    "/start - Login or open the dashboard\n"
    "/dashboard - Quiz history and statistics\n"
    "/newquiz - Create a quiz from an audio file\n"
    "/logout - Log out\n"
    "/help - This help"
)


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext, session: Optional[Session] = None):
    """
    Handle /start command.

    With a cached session the dashboard is shown, otherwise the login form.
    """
    await reset_wizard(state)
    if session is not None:
        await show_dashboard(message, state, session)
    else:
        await show_auth_screen(message, state)


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(HELP_TEXT, parse_mode="HTML")


# ============================================================================
# LOGOUT
# ============================================================================

async def _logout(message: Message, user_id: int, state: FSMContext, session_store: SessionStore):
    """Forget the session and every piece of in-flight work."""
    await session_store.clear(user_id)
    await reset_wizard(state)
    logger.info("User %d logged out", user_id)
    await message.answer("👋 You have been logged out.")
    await show_auth_screen(message, state)


@router.message(Command("logout"))
async def cmd_logout(message: Message, state: FSMContext, session_store: SessionStore):
    await _logout(message, message.from_user.id, state, session_store)


@router.callback_query(F.data.in_({"wiz:logout", "dash:logout"}))
async def cb_logout(callback: CallbackQuery, state: FSMContext, session_store: SessionStore):
    await callback.answer()
    await _logout(callback.message, callback.from_user.id, state, session_store)


# ============================================================================
# DASHBOARD
# ============================================================================

@router.message(Command("dashboard"))
async def cmd_dashboard(message: Message, state: FSMContext, session: Optional[Session] = None):
    if not await ensure_logged_in(message, session):
        return
    await reset_wizard(state)
    await show_dashboard(message, state, session)


@router.callback_query(F.data.in_({"wiz:dashboard", "quiz:new"}))
async def cb_dashboard(callback: CallbackQuery, state: FSMContext, session: Optional[Session] = None):
    """Leaving the wizard discards it; "Start New Quiz" lands here as well."""
    if not await ensure_logged_in(callback, session):
        return
    await callback.answer()
    await reset_wizard(state)
    await show_dashboard(callback.message, state, session)


# ============================================================================
# NEW QUIZ
# ============================================================================

async def _new_wizard(message: Message, state: FSMContext) -> None:
    wizard = await reset_wizard(state)
    await store_wizard(state, wizard)
    await show_upload_step(message, state)


@router.message(Command("newquiz"))
async def cmd_new_quiz(message: Message, state: FSMContext, session: Optional[Session] = None):
    if not await ensure_logged_in(message, session):
        return
    await _new_wizard(message, state)


@router.callback_query(F.data.in_({"dash:new", "transcript:reupload"}))
async def cb_new_quiz(callback: CallbackQuery, state: FSMContext, session: Optional[Session] = None):
    """Open step 1 with a fresh wizard."""
    if not await ensure_logged_in(callback, session):
        return
    await callback.answer()
    await _new_wizard(callback.message, state)
