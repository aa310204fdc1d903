"""Dashboard reads: history and statistics, fetched best-effort."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from voice_quiz.api.client import QuizApiClient
from voice_quiz.api.models import QuizHistoryEntry, Statistics

logger = logging.getLogger(__name__)

# FSM data keys of the cached dashboard; kept when the wizard is reset
HISTORY_KEY = "history"
STATISTICS_KEY = "statistics"
DASHBOARD_KEYS = (HISTORY_KEY, STATISTICS_KEY)


@dataclass
class DashboardData:
    history: List[QuizHistoryEntry] = field(default_factory=list)
    statistics: Optional[Statistics] = None


async def load_dashboard(client: QuizApiClient, user_id: int) -> DashboardData:
    """
    Fetch history and statistics concurrently.

    A failed read leaves its section empty; the failure is only logged.
    """
    history, statistics = await asyncio.gather(
        client.get_history(),
        client.get_statistics(),
        return_exceptions=True,
    )

    data = DashboardData()
    if isinstance(history, Exception):
        logger.warning("History fetch failed for user_id=%d: %s", user_id, history)
    else:
        data.history = history
    if isinstance(statistics, Exception):
        logger.warning("Statistics fetch failed for user_id=%d: %s", user_id, statistics)
    else:
        data.statistics = statistics
    return data


def remove_entry(history: List[QuizHistoryEntry], quiz_id: str) -> List[QuizHistoryEntry]:
    """Local list without the deleted quiz (no refetch)."""
    return [entry for entry in history if entry.id != quiz_id]
