"""Quiz generation settings: defaults, edits and local validation."""
from dataclasses import asdict
from typing import Any, Dict, Optional

from voice_quiz.api.models import (
    DIFFICULTIES, MAX_QUESTIONS, MIN_QUESTIONS, QUESTION_TYPES, QuizSettings,
)

NO_TYPES_MSG = "Please select at least one question type."
BAD_COUNT_MSG = f"Number of questions must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}."


def settings_from_dict(data: Optional[Dict[str, Any]]) -> QuizSettings:
    if not data:
        return QuizSettings()
    return QuizSettings(**data)


def settings_to_dict(settings: QuizSettings) -> Dict[str, Any]:
    return asdict(settings)


def set_difficulty(settings: QuizSettings, difficulty: str) -> QuizSettings:
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {difficulty}")
    settings.difficulty = difficulty
    return settings


def toggle_question_type(settings: QuizSettings, question_type: str) -> QuizSettings:
    """Flip one type on or off. Selected types stay in canonical order."""
    if question_type not in QUESTION_TYPES:
        raise ValueError(f"Unknown question type: {question_type}")
    selected = set(settings.question_types)
    selected ^= {question_type}
    settings.question_types = [t for t in QUESTION_TYPES if t in selected]
    return settings


def parse_count(value: Any) -> Optional[int]:
    """Integer value of a typed count, or None if it is not one."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def adjust_count(settings: QuizSettings, delta: int) -> QuizSettings:
    """+/- buttons; the result is clamped to the allowed range."""
    current = parse_count(settings.num_questions)
    if current is None:
        current = QuizSettings().num_questions
    settings.num_questions = max(MIN_QUESTIONS, min(MAX_QUESTIONS, current + delta))
    return settings


def validate_settings(settings: QuizSettings) -> Optional[str]:
    """
    Checks done before any generation request is sent.

    Returns:
        Error text, or None when the settings may be submitted
    """
    if not settings.question_types:
        return NO_TYPES_MSG
    count = parse_count(settings.num_questions)
    if count is None or not MIN_QUESTIONS <= count <= MAX_QUESTIONS:
        return BAD_COUNT_MSG
    if settings.difficulty not in DIFFICULTIES:
        return f"Unknown difficulty: {settings.difficulty}"
    return None
