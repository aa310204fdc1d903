"""Shared fixtures for the voice quiz bot tests."""
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from voice_quiz.api.models import (
    AudioHandle, Question, Quiz, QuizHistoryEntry, Session, Statistics, Transcript, User,
)
from voice_quiz.core import database
from voice_quiz.core.encryption import TokenEncryption, generate_key, set_encryptor

USER_ID = 12345


@pytest.fixture(autouse=True)
def encryptor():
    """Fresh Fernet key for every test."""
    enc = TokenEncryption(generate_key())
    set_encryptor(enc)
    yield enc
    set_encryptor(None)


@pytest_asyncio.fixture
async def db(tmp_path):
    """Temporary SQLite database installed as the global instance."""
    instance = await database.init_database(str(tmp_path / "test.db"))
    database.db = instance
    yield instance
    await instance.close()
    database.db = None


@pytest.fixture
def state():
    """Real FSM context on in-memory storage."""
    return FSMContext(
        storage=MemoryStorage(),
        key=StorageKey(bot_id=1, chat_id=USER_ID, user_id=USER_ID),
    )


@pytest.fixture
def sample_user():
    return User(username="alice", email="alice@example.com", id="u1")


@pytest.fixture
def sample_session(sample_user):
    return Session(user=sample_user, token="jwt-token")


@pytest.fixture
def sample_audio():
    return AudioHandle(
        filename="1700000000-lecture.mp3",
        original_filename="lecture.mp3",
        size=1024,
        type="audio/mpeg",
    )


@pytest.fixture
def sample_transcript():
    return Transcript(
        text="Photosynthesis turns light into chemical energy.",
        word_count=7,
        language="en",
        duration=125.4,
    )


@pytest.fixture
def sample_quiz():
    """One question of every type."""
    return Quiz(
        quiz_id="q1",
        title="Photosynthesis",
        difficulty="medium",
        total_questions=3,
        questions=[
            Question(
                id="1",
                type="mcq",
                question="What does photosynthesis produce?",
                correct_answer="B",
                options=["A) Salt", "B) Glucose", "C) Iron", "D) Sand"],
                explanation="Plants store energy as glucose.",
            ),
            Question(
                id="2",
                type="true_false",
                question="Photosynthesis needs light.",
                correct_answer="True",
            ),
            Question(
                id="3",
                type="short_answer",
                question="Name the green pigment.",
                correct_answer="Chlorophyll",
            ),
        ],
        method="openai",
    )


@pytest.fixture
def sample_history():
    return [
        QuizHistoryEntry(
            id="h1",
            audio_filename="biology.mp3",
            difficulty="easy",
            question_count=5,
            completed=True,
            score=80,
            created_at="2026-10-01T09:30:00Z",
        ),
        QuizHistoryEntry(
            id="h2",
            audio_filename="chemistry.wav",
            difficulty="hard",
            question_count=10,
        ),
    ]


@pytest.fixture
def sample_statistics():
    return Statistics(total_quizzes=2, completed_quizzes=1, average_score=80)


def make_mock_message(user_id: int = USER_ID, text: str = "") -> AsyncMock:
    """Create a mock aiogram Message."""
    message = AsyncMock()
    message.from_user = MagicMock()
    message.from_user.id = user_id
    message.chat = MagicMock()
    message.chat.id = user_id
    message.text = text
    message.answer = AsyncMock()
    return message


def make_mock_callback(data: str, user_id: int = USER_ID) -> AsyncMock:
    """Create a mock aiogram CallbackQuery."""
    callback = AsyncMock()
    callback.from_user = MagicMock()
    callback.from_user.id = user_id
    callback.data = data
    callback.message = make_mock_message(user_id)
    callback.message.edit_text = AsyncMock()
    callback.answer = AsyncMock()
    return callback


def make_mock_client(**methods) -> AsyncMock:
    """QuizApiClient stand-in; keyword args become method return values."""
    client = AsyncMock()
    for name, value in methods.items():
        getattr(client, name).return_value = value
    return client
