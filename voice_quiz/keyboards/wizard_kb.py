"""Inline keyboards for the wizard steps and quiz review."""
from typing import List

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from voice_quiz.api.models import DIFFICULTIES, QUESTION_TYPES, Question, QuizSettings
from voice_quiz.services.grading import option_letter, question_type_label


def _nav_row() -> List[InlineKeyboardButton]:
    """Header actions available at every step."""
    return [
        InlineKeyboardButton(text="← Dashboard", callback_data="wiz:dashboard"),
        InlineKeyboardButton(text="Logout", callback_data="wiz:logout"),
    ]


def nav_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[_nav_row()])


def upload_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⬆️ Upload & Continue", callback_data="upload:go")],
        _nav_row(),
    ])


def transcript_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text="✓ Transcript Looks Good - Continue",
            callback_data="transcript:ok",
        )],
        [InlineKeyboardButton(text="🎙️ Upload another file", callback_data="transcript:reupload")],
        _nav_row(),
    ])


def transcript_failed_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🎙️ Upload another file", callback_data="transcript:reupload")],
        _nav_row(),
    ])


def settings_keyboard(settings: QuizSettings) -> InlineKeyboardMarkup:
    difficulty_row = [
        InlineKeyboardButton(
            text=("● " if d == settings.difficulty else "") + d.capitalize(),
            callback_data=f"gen:diff:{d}",
        )
        for d in DIFFICULTIES
    ]
    type_rows = [
        [InlineKeyboardButton(
            text=("☑ " if t in settings.question_types else "☐ ") + question_type_label(t),
            callback_data=f"gen:type:{t}",
        )]
        for t in QUESTION_TYPES
    ]
    count_row = [
        InlineKeyboardButton(text="➖", callback_data="gen:count:-1"),
        InlineKeyboardButton(text=f"{settings.num_questions} questions", callback_data="gen:count:type"),
        InlineKeyboardButton(text="➕", callback_data="gen:count:+1"),
    ]
    return InlineKeyboardMarkup(inline_keyboard=[
        difficulty_row,
        *type_rows,
        count_row,
        [InlineKeyboardButton(text="🧠 Generate Quiz", callback_data="gen:go")],
        _nav_row(),
    ])


def question_keyboard(index: int, question: Question) -> InlineKeyboardMarkup:
    """Answer buttons for one question; callback carries the question position."""
    if question.type == "mcq":
        rows = [
            [InlineKeyboardButton(text=option, callback_data=f"ans:{index}:{option_letter(option)}")]
            for option in question.options
        ]
    elif question.type == "true_false":
        rows = [[
            InlineKeyboardButton(text="True", callback_data=f"ans:{index}:True"),
            InlineKeyboardButton(text="False", callback_data=f"ans:{index}:False"),
        ]]
    else:
        rows = [[InlineKeyboardButton(text="✏️ Answer", callback_data=f"quiz:sa:{index}")]]
    return InlineKeyboardMarkup(inline_keyboard=rows)


def quiz_actions_keyboard(show_answers: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(
            text="Hide Answers" if show_answers else "Show Answers & Check",
            callback_data="quiz:toggle",
        )],
        [
            InlineKeyboardButton(text="⬇️ Export with Answers", callback_data="quiz:export:1"),
            InlineKeyboardButton(text="⬇️ Export (Quiz Only)", callback_data="quiz:export:0"),
        ],
        [InlineKeyboardButton(text="🔄 Start New Quiz", callback_data="quiz:new")],
        _nav_row(),
    ])
