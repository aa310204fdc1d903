"""Dashboard: quiz history, statistics and quiz deletion."""
import html
import logging
from datetime import datetime
from typing import List, Optional

from aiogram import Router, F
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.exceptions import QuizAPIError
from voice_quiz.api.models import (
    QuizHistoryEntry, Session, Statistics, history_from_dicts, to_dict,
)
from voice_quiz.handlers.common import ensure_logged_in
from voice_quiz.keyboards.dashboard_kb import confirm_delete_keyboard, dashboard_keyboard
from voice_quiz.services.dashboard import (
    HISTORY_KEY, STATISTICS_KEY, load_dashboard, remove_entry,
)

logger = logging.getLogger(__name__)

router = Router()

DELETE_FAILED_MSG = "Failed to delete quiz"
ALREADY_DELETED_MSG = "This quiz was already deleted."
STALE_DASHBOARD_MSG = "Quiz deleted. Open /dashboard to see your updated list."


# ============================================================================
# FORMATTING
# ============================================================================

def _format_date(value: Optional[str]) -> str:
    """'2026-10-19T14:05:00Z' -> '2026-10-19 14:05'; unknown formats are shown as is."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


def _format_statistics(statistics: Statistics) -> str:
    return (
        f"📚 Total Quizzes: {statistics.total_quizzes}\n"
        f"✅ Completed: {statistics.completed_quizzes}\n"
        f"⭐ Average Score: {statistics.average_score}%"
    )


def _format_history_entry(number: int, entry: QuizHistoryEntry) -> str:
    details = [html.escape(entry.difficulty), f"{entry.question_count} questions"]
    if entry.completed and entry.score is not None:
        details.append(f"Score: {entry.score}%")
    line = f"{number}. 🎵 {html.escape(entry.audio_filename)}\n   {' · '.join(details)}"
    created = _format_date(entry.created_at)
    if created:
        line += f"\n   🕒 {html.escape(created)}"
    return line


def _format_dashboard(
    session: Session,
    history: List[QuizHistoryEntry],
    statistics: Optional[Statistics],
) -> str:
    user = session.user
    lines = [f"<b>Welcome, {html.escape(user.username)}! 👋</b>"]
    if user.email:
        lines.append(html.escape(user.email))
    lines.append("")

    if statistics is not None:
        lines.append(_format_statistics(statistics))
        lines.append("")

    lines.append("<b>Recent Quizzes</b>")
    if not history:
        lines.append("📝 No quizzes yet")
        lines.append("Create your first quiz by uploading an audio file!")
    else:
        for i, entry in enumerate(history, 1):
            lines.append(_format_history_entry(i, entry))

    return "\n".join(lines)


# ============================================================================
# SCREEN
# ============================================================================

async def show_dashboard(message: Message, state: FSMContext, session: Session) -> None:
    """Fetch history and statistics, then render the dashboard."""
    loading = await message.answer("⏳ Loading your dashboard...")

    client = QuizApiClient(token=session.token)
    try:
        data = await load_dashboard(client, message.chat.id)
    finally:
        await client.close()

    await state.update_data({
        HISTORY_KEY: [to_dict(e) for e in data.history],
        STATISTICS_KEY: to_dict(data.statistics) if data.statistics else None,
    })
    await loading.edit_text(
        _format_dashboard(session, data.history, data.statistics),
        reply_markup=dashboard_keyboard(data.history),
        parse_mode="HTML",
    )


async def _stored_dashboard(state: FSMContext):
    """Cached history (None when nothing is cached) and statistics."""
    data = await state.get_data()
    stored_history = data.get(HISTORY_KEY)
    history = history_from_dicts(stored_history) if stored_history is not None else None
    stored = data.get(STATISTICS_KEY)
    return history, Statistics(**stored) if stored else None


async def _already_deleted(state: FSMContext, quiz_id: str) -> bool:
    """True when the cached list is known and no longer holds the quiz."""
    history, _ = await _stored_dashboard(state)
    return history is not None and all(entry.id != quiz_id for entry in history)


# ============================================================================
# DELETE
# ============================================================================

@router.callback_query(F.data.startswith("dash:del:"))
async def cb_delete_quiz(
    callback: CallbackQuery,
    state: FSMContext,
    session: Optional[Session] = None,
):
    """Ask for confirmation before anything is deleted."""
    if not await ensure_logged_in(callback, session):
        return
    quiz_id = callback.data.split(":", 2)[2]
    if await _already_deleted(state, quiz_id):
        await callback.answer(ALREADY_DELETED_MSG, show_alert=True)
        return

    await callback.message.answer(
        "Are you sure you want to delete this quiz?",
        reply_markup=confirm_delete_keyboard(quiz_id),
    )
    await callback.answer()


@router.callback_query(F.data == "dash:delno")
async def cb_delete_cancelled(callback: CallbackQuery):
    await callback.message.edit_text("Deletion cancelled.")
    await callback.answer()


@router.callback_query(F.data.startswith("dash:delok:"))
async def cb_delete_confirmed(
    callback: CallbackQuery,
    state: FSMContext,
    session: Optional[Session] = None,
):
    """Delete on the server, then drop the entry from the local list."""
    if not await ensure_logged_in(callback, session):
        return
    quiz_id = callback.data.split(":", 2)[2]
    if await _already_deleted(state, quiz_id):
        await callback.message.edit_text(ALREADY_DELETED_MSG)
        await callback.answer()
        return

    client = QuizApiClient(token=session.token)
    try:
        await client.delete_quiz(quiz_id)
    except QuizAPIError as e:
        logger.error("Delete of quiz %s failed for user_id=%d: %s", quiz_id, callback.from_user.id, e)
        await callback.answer(DELETE_FAILED_MSG, show_alert=True)
        return
    finally:
        await client.close()

    history, statistics = await _stored_dashboard(state)
    if history is None:
        # nothing cached (e.g. after a restart): do not render an empty list
        await callback.message.edit_text(STALE_DASHBOARD_MSG)
        await callback.answer("Quiz deleted")
        return

    history = remove_entry(history, quiz_id)
    await state.update_data({HISTORY_KEY: [to_dict(e) for e in history]})

    await callback.message.edit_text(
        _format_dashboard(session, history, statistics),
        reply_markup=dashboard_keyboard(history),
        parse_mode="HTML",
    )
    await callback.answer("Quiz deleted")
