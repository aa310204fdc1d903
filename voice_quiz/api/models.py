"""Data models for lecture-to-quiz API responses."""
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


DIFFICULTIES = ("easy", "medium", "hard")
QUESTION_TYPES = ("mcq", "true_false", "short_answer")

MIN_QUESTIONS = 1
MAX_QUESTIONS = 50


@dataclass
class User:
    """Authenticated user as returned by /auth/*."""
    username: str
    email: str = ""
    id: Optional[str] = None


@dataclass
class Session:
    """User identity plus bearer token. Both are always present together."""
    user: User
    token: str


@dataclass
class AudioHandle:
    """Server-side reference to an uploaded audio file."""
    filename: str
    original_filename: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.original_filename or self.filename


@dataclass
class Transcript:
    """Result of a transcription call."""
    text: str
    word_count: int = 0
    language: Optional[str] = None
    duration: Optional[float] = None


@dataclass
class QuizSettings:
    """User-editable generation options.

    num_questions keeps whatever the user typed until the request is built.
    """
    difficulty: str = "medium"
    num_questions: Any = 10
    question_types: List[str] = field(default_factory=lambda: list(QUESTION_TYPES))


@dataclass
class Question:
    """Single quiz question."""
    id: str
    type: str
    question: str
    correct_answer: str
    options: List[str] = field(default_factory=list)
    explanation: Optional[str] = None


@dataclass
class Quiz:
    """Generated quiz."""
    quiz_id: str
    title: str
    difficulty: str
    total_questions: int
    questions: List[Question] = field(default_factory=list)
    method: Optional[str] = None


@dataclass
class QuizHistoryEntry:
    """Past quiz shown on the dashboard."""
    id: str
    audio_filename: str
    difficulty: str
    question_count: int
    completed: bool = False
    score: Optional[float] = None
    created_at: Optional[str] = None


@dataclass
class Statistics:
    """Aggregate numbers shown on the dashboard."""
    total_quizzes: int = 0
    completed_quizzes: int = 0
    average_score: float = 0


# ============================================================================
# CONVERTERS: API payloads -> dataclasses
# ============================================================================

def user_from_payload(payload: Dict[str, Any]) -> User:
    """Build a User from the `user` object of an auth response."""
    user_id = payload.get("id", payload.get("_id"))
    return User(
        username=payload.get("username") or "",
        email=payload.get("email") or "",
        id=str(user_id) if user_id is not None else None,
    )


def audio_handle_from_payload(payload: Dict[str, Any]) -> AudioHandle:
    """Build an AudioHandle from an /upload response."""
    return AudioHandle(
        filename=payload["filename"],
        original_filename=payload.get("original_filename"),
        size=payload.get("size"),
        type=payload.get("type") or payload.get("content_type"),
    )


def transcript_from_payload(payload: Dict[str, Any]) -> Transcript:
    """Build a Transcript from a /transcribe response."""
    text = payload.get("text") or ""
    word_count = payload.get("word_count")
    return Transcript(
        text=text,
        word_count=int(word_count) if word_count is not None else len(text.split()),
        language=payload.get("language"),
        duration=payload.get("duration"),
    )


def question_from_payload(payload: Dict[str, Any], index: int = 0) -> Question:
    """Build a Question; questions without an id are numbered by position."""
    question_id = payload.get("id")
    return Question(
        id=str(question_id) if question_id is not None else str(index + 1),
        type=payload.get("type") or "short_answer",
        question=payload.get("question") or "",
        correct_answer=str(payload.get("correct_answer") or ""),
        options=list(payload.get("options") or []),
        explanation=payload.get("explanation"),
    )


def quiz_from_payload(payload: Dict[str, Any]) -> Quiz:
    """Build a Quiz from a /generate-quiz response ({quiz_id, quiz, method})."""
    body = payload.get("quiz") or {}
    questions = [
        question_from_payload(q, i) for i, q in enumerate(body.get("questions") or [])
    ]
    return Quiz(
        quiz_id=str(payload.get("quiz_id") or body.get("quiz_id") or ""),
        title=body.get("title") or "Untitled quiz",
        difficulty=body.get("difficulty") or "",
        total_questions=int(body.get("total_questions") or len(questions)),
        questions=questions,
        method=payload.get("method"),
    )


def history_entry_from_payload(payload: Dict[str, Any]) -> QuizHistoryEntry:
    """Build a QuizHistoryEntry from one element of /history `quizzes`."""
    return QuizHistoryEntry(
        id=str(payload.get("_id") or payload.get("id") or ""),
        audio_filename=payload.get("audio_filename") or "",
        difficulty=payload.get("difficulty") or "",
        question_count=int(payload.get("question_count") or 0),
        completed=bool(payload.get("completed")),
        score=payload.get("score"),
        created_at=payload.get("created_at"),
    )


def statistics_from_payload(payload: Dict[str, Any]) -> Statistics:
    """Build Statistics from the `statistics` object of /statistics."""
    return Statistics(
        total_quizzes=int(payload.get("total_quizzes") or 0),
        completed_quizzes=int(payload.get("completed_quizzes") or 0),
        average_score=payload.get("average_score") or 0,
    )


# ============================================================================
# FSM STORAGE: dataclasses <-> plain dicts
# ============================================================================

def to_dict(obj) -> Dict[str, Any]:
    """Plain-dict form of any model, for FSM storage."""
    return asdict(obj)


def quiz_from_dict(data: Dict[str, Any]) -> Quiz:
    """Inverse of to_dict() for Quiz."""
    questions = [Question(**q) for q in data.get("questions", [])]
    return Quiz(**{**data, "questions": questions})


def history_from_dicts(items: List[Dict[str, Any]]) -> List[QuizHistoryEntry]:
    return [QuizHistoryEntry(**item) for item in items]
