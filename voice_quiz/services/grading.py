"""Local grading of objective questions and their labels."""
from typing import Dict, Optional, Tuple

from voice_quiz.api.models import Question, Quiz

OBJECTIVE_TYPES = ("mcq", "true_false")

QUESTION_TYPE_LABELS = {
    "mcq": "Multiple Choice",
    "true_false": "True/False",
    "short_answer": "Short Answer",
}


def question_type_label(question_type: str) -> str:
    return QUESTION_TYPE_LABELS.get(question_type, question_type)


def option_letter(option: str) -> str:
    """MCQ options look like 'B) text'; the answer is the leading letter."""
    return option.strip()[:1]


def grade_answer(question: Question, user_answer: Optional[str]) -> Optional[bool]:
    """
    Compare a user's answer with the correct one, ignoring case.

    Returns:
        True/False for answered objective questions, None when there is
        nothing to grade (no answer, or a free-text short answer)
    """
    if not user_answer:
        return None
    if question.type not in OBJECTIVE_TYPES:
        return None
    return user_answer.lower() == question.correct_answer.lower()


def score_objective(quiz: Quiz, answers: Dict[str, str]) -> Tuple[int, int]:
    """Correct and graded counts over the objective questions."""
    correct = graded = 0
    for question in quiz.questions:
        result = grade_answer(question, answers.get(question.id))
        if result is None:
            continue
        graded += 1
        if result:
            correct += 1
    return correct, graded
