"""Inline keyboards for the dashboard and quiz deletion."""
from typing import List

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from voice_quiz.api.models import QuizHistoryEntry


def dashboard_keyboard(history: List[QuizHistoryEntry]) -> InlineKeyboardMarkup:
    buttons = [[InlineKeyboardButton(text="➕ New Quiz", callback_data="dash:new")]]
    for i, entry in enumerate(history, 1):
        buttons.append([InlineKeyboardButton(
            text=f"🗑️ Delete #{i} ({entry.audio_filename})",
            callback_data=f"dash:del:{entry.id}",
        )])
    buttons.append([InlineKeyboardButton(text="Logout", callback_data="dash:logout")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def confirm_delete_keyboard(quiz_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="✅ Yes, delete", callback_data=f"dash:delok:{quiz_id}"),
            InlineKeyboardButton(text="❌ Cancel", callback_data="dash:delno"),
        ],
    ])
