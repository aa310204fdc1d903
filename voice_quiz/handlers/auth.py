"""Auth screen: login and signup."""
import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.handlers.dashboard import show_dashboard
from voice_quiz.keyboards.auth_kb import auth_mode_keyboard
from voice_quiz.states.auth import AuthStates
from voice_quiz.utils.session_store import SessionStore

logger = logging.getLogger(__name__)

router = Router()

MIN_PASSWORD_LENGTH = 6
AUTH_FAILED_MSG = "Authentication failed"
SHORT_PASSWORD_MSG = f"Password must be at least {MIN_PASSWORD_LENGTH} characters. Try again:"


async def show_auth_screen(message: Message, state: FSMContext, mode: str = "login") -> None:
    """Start the auth form from scratch in the given mode."""
    await state.clear()
    await state.update_data(auth_mode=mode, auth_error=None)

    if mode == "signup":
        text = "🎙️ <b>Voice-to-Quiz</b>\n<b>Sign Up</b>\n\nEnter a username:"
        await state.set_state(AuthStates.waiting_for_username)
    else:
        text = "🎙️ <b>Voice-to-Quiz</b>\n<b>Login</b>\n\nEnter your email:"
        await state.set_state(AuthStates.waiting_for_email)

    await message.answer(text, reply_markup=auth_mode_keyboard(mode), parse_mode="HTML")


@router.callback_query(F.data.in_({"auth:mode:login", "auth:mode:signup"}))
async def cb_switch_mode(callback: CallbackQuery, state: FSMContext):
    """Switching mode drops every entered field and the error."""
    mode = callback.data.rsplit(":", 1)[1]
    await show_auth_screen(callback.message, state, mode)
    await callback.answer()


@router.message(AuthStates.waiting_for_username)
async def process_username(message: Message, state: FSMContext):
    username = (message.text or "").strip()
    await state.update_data(auth_error=None)

    if not username:
        await message.answer("Username cannot be empty. Try again:")
        return

    await state.update_data(username=username)
    await message.answer("Enter your email:")
    await state.set_state(AuthStates.waiting_for_email)


@router.message(AuthStates.waiting_for_email)
async def process_email(message: Message, state: FSMContext):
    email = (message.text or "").strip()
    await state.update_data(auth_error=None)

    if "@" not in email or " " in email:
        await message.answer("Please enter a valid email address:")
        return

    await state.update_data(email=email)
    await message.answer(f"Enter your password (min {MIN_PASSWORD_LENGTH} characters):")
    await state.set_state(AuthStates.waiting_for_password)


@router.message(AuthStates.waiting_for_password)
async def process_password(message: Message, state: FSMContext, session_store: SessionStore):
    """Validate the password, call login/signup and open the dashboard."""
    password = message.text or ""

    # Delete message with password for security
    try:
        await message.delete()
    except TelegramAPIError as e:
        logger.debug("Password message not deleted: %s", e)

    await state.update_data(auth_error=None)
    if len(password) < MIN_PASSWORD_LENGTH:
        await message.answer(SHORT_PASSWORD_MSG)
        return

    data = await state.get_data()
    mode = data.get("auth_mode", "login")
    email = data.get("email")
    if not email:
        await show_auth_screen(message, state, mode)
        return

    wait_msg = await message.answer("Please wait...")

    client = QuizApiClient()
    try:
        if mode == "signup":
            session = await client.signup(data.get("username", ""), email, password)
        else:
            session = await client.login(email, password)
    except QuizAPIError as e:
        error = e.user_message(AUTH_FAILED_MSG)
        logger.warning("%s failed for user_id=%d: %r", mode, message.from_user.id, e)
        await state.update_data(auth_error=error)
        await wait_msg.edit_text(
            f"❌ {error}\n\nEnter your password again, or /start to start over:",
            reply_markup=auth_mode_keyboard(mode),
        )
        return
    finally:
        await client.close()

    await session_store.save(message.from_user.id, session.user, session.token)
    await state.clear()
    await wait_msg.delete()
    await show_dashboard(message, state, session)
