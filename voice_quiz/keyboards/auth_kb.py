"""Inline keyboards for the login and sign-up screens."""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def auth_mode_keyboard(mode: str) -> InlineKeyboardMarkup:
    """Link to the other auth mode."""
    if mode == "login":
        button = InlineKeyboardButton(text="Don't have an account? Sign Up", callback_data="auth:mode:signup")
    else:
        button = InlineKeyboardButton(text="Already have an account? Login", callback_data="auth:mode:login")
    return InlineKeyboardMarkup(inline_keyboard=[[button]])
