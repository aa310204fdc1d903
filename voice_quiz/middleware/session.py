"""Middleware that puts the stored session into handler data."""
import logging
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from voice_quiz.utils.session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseMiddleware):
    """Restore the cached session and hand it to handlers.

    Handlers receive `session` (Session or None) and `session_store`.
    """

    def __init__(self, store: SessionStore):
        self.store = store

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        data["session_store"] = self.store

        user = getattr(event, "from_user", None)
        if user is None:
            data["session"] = None
            return await handler(event, data)

        data["session"] = await self.store.restore(user.id)
        return await handler(event, data)
