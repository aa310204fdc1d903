"""Session store: bearer token and user record cached in local storage."""
import json
import logging
from typing import Optional

from cryptography.fernet import InvalidToken

from voice_quiz.api.models import Session, User, to_dict
from voice_quiz.core.encryption import encrypt, decrypt
from voice_quiz.database import crud

logger = logging.getLogger(__name__)

# Fixed storage keys, cleared together on logout
TOKEN_KEY = "token"
USER_KEY = "user"


class SessionStore:
    """Persist, restore and clear the session of a chat user.

    The token and the user record are written and removed together, so a
    restored session is either complete or absent.
    """

    async def restore(self, user_id: int) -> Optional[Session]:
        """
        Read the cached session. The token is not validated against the API.

        Args:
            user_id: Telegram user ID

        Returns:
            Session if both items are stored, otherwise None
        """
        items = await crud.get_items(user_id, (TOKEN_KEY, USER_KEY))
        stored_token = items.get(TOKEN_KEY)
        stored_user = items.get(USER_KEY)

        if not stored_token or not stored_user:
            if items:
                logger.warning("Partial session for user_id=%d, discarding", user_id)
                await self.clear(user_id)
            return None

        try:
            token = decrypt(stored_token)
            user = User(**json.loads(stored_user))
        except (InvalidToken, ValueError, TypeError) as e:
            logger.warning("Unreadable session for user_id=%d: %s", user_id, e)
            await self.clear(user_id)
            return None

        return Session(user=user, token=token)

    async def save(self, user_id: int, user: User, token: str) -> Session:
        """Persist both items in one transaction and return the session."""
        await crud.set_items(user_id, {
            TOKEN_KEY: encrypt(token),
            USER_KEY: json.dumps(to_dict(user)),
        })
        logger.info("Session saved for user_id=%d (%s)", user_id, user.username)
        return Session(user=user, token=token)

    async def clear(self, user_id: int) -> None:
        """Remove both items. Safe to call when nothing is stored."""
        await crud.remove_items(user_id, (TOKEN_KEY, USER_KEY))
