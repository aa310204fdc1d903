"""Helpers shared by the handlers."""
import html
from typing import List, Optional, Union

from aiogram.types import CallbackQuery, Message

from voice_quiz.api.models import Session

LOGIN_REQUIRED_MSG = "🔐 Please log in first: /start"

# Telegram rejects messages above 4096 characters
MESSAGE_LIMIT = 3500


async def ensure_logged_in(event: Union[Message, CallbackQuery], session: Optional[Session]) -> bool:
    """Tell the user to log in when there is no session."""
    if session is not None:
        return True
    if isinstance(event, CallbackQuery):
        await event.answer(LOGIN_REQUIRED_MSG, show_alert=True)
    else:
        await event.answer(LOGIN_REQUIRED_MSG)
    return False


def error_line(error: Optional[str]) -> str:
    """Rendered error slot (empty when there is no error)."""
    if not error:
        return ""
    return f"\n\n⚠️ <b>Error:</b> {html.escape(error)}"


def split_text(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """Split long text into message-sized chunks, preferring line and word breaks."""
    chunks = []
    rest = text.strip()
    while len(rest) > limit:
        cut = rest.rfind("\n", 0, limit)
        if cut <= 0:
            cut = rest.rfind(" ", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(rest[:cut].rstrip())
        rest = rest[cut:].lstrip()
    if rest:
        chunks.append(rest)
    return chunks
