"""Database initialization and connection management."""
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS session_storage (
    user_id      INTEGER NOT NULL,
    storage_key  TEXT NOT NULL,
    value        TEXT NOT NULL,
    updated_at   TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, storage_key)
);
"""


class Database:
    """Database connection manager."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> aiosqlite.Connection:
        """Establish database connection."""
        if self._conn is None:
            # Ensure data directory exists
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self.db_path)
        return self._conn

    async def close(self):
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def execute_many(self, statements: Iterable[Tuple[str, tuple]]):
        """Execute several statements in one transaction."""
        conn = await self.connect()
        try:
            for query, params in statements:
                await conn.execute(query, params)
        except Exception:
            await conn.rollback()
            raise
        await conn.commit()

    async def fetchall(self, query: str, params: tuple = ()):
        """Fetch all results."""
        conn = await self.connect()
        async with conn.execute(query, params) as cursor:
            return await cursor.fetchall()


async def init_database(db_path: str = "data/voice_quiz.db") -> Database:
    """Open the database and create the schema if needed."""
    db = Database(db_path)
    conn = await db.connect()
    await conn.executescript(SCHEMA)
    await conn.commit()

    logger.info("Database initialized at %s", db_path)
    return db


# Global database instance (will be initialized in bot.py)
db: Optional[Database] = None


def get_db() -> Database:
    """Get global database instance."""
    if db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return db
