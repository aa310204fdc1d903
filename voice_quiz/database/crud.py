"""CRUD operations for per-user local storage items."""
from typing import Dict, Iterable

from voice_quiz.core.database import get_db


async def set_items(user_id: int, items: Dict[str, str]) -> None:
    """Write several storage items in one transaction."""
    db = get_db()
    query = """
        INSERT INTO session_storage (user_id, storage_key, value, updated_at)
        VALUES (?, ?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(user_id, storage_key)
        DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
    """
    await db.execute_many((query, (user_id, key, value)) for key, value in items.items())


async def get_items(user_id: int, keys: Iterable[str]) -> Dict[str, str]:
    """Read storage items; missing keys are absent from the result."""
    db = get_db()
    keys = list(keys)
    placeholders = ", ".join("?" for _ in keys)
    query = f"""
        SELECT storage_key, value FROM session_storage
        WHERE user_id = ? AND storage_key IN ({placeholders})
    """
    rows = await db.fetchall(query, (user_id, *keys))
    return {row[0]: row[1] for row in rows}


async def remove_items(user_id: int, keys: Iterable[str]) -> None:
    """Delete storage items in one transaction."""
    db = get_db()
    query = "DELETE FROM session_storage WHERE user_id = ? AND storage_key = ?"
    await db.execute_many((query, (user_id, key)) for key in keys)
