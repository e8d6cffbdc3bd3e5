"""Quiz engine: builds per-chapter quiz sessions and scores answers."""
import random
from typing import Iterable, Optional

from cpp_tutor.models import Question, QuizQuestion, QuizSession

QUESTIONS_PER_QUIZ = 50
OPTION_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def option_letter(index: int) -> str:
    return OPTION_LETTERS[index]


def to_quiz_question(question: Question) -> QuizQuestion:
    """Convert a bank record, ordering options by key.

    The correct answer is located by key in the sorted key order. A key that is
    not among the options falls back to index 0.
    """
    keys = sorted(question.options)
    options = [question.options[k] for k in keys]
    try:
        correct_index = keys.index(question.correct_answer)
    except ValueError:
        correct_index = 0
    return QuizQuestion(
        id=question.id,
        question=question.question,
        options=options,
        correct_answer_index=correct_index,
        explanation=question.explanation,
    )


def get_questions_for_chapter(pool: Iterable[Question], chapter_number: int) -> list[QuizQuestion]:
    return [to_quiz_question(q) for q in pool if q.chapter_number == chapter_number]


def generate_quiz(
    pool: Iterable[Question],
    chapter_number: int,
    count: int = QUESTIONS_PER_QUIZ,
    rng: Optional[random.Random] = None,
) -> QuizSession:
    """Shuffle a chapter's questions and keep at most ``count`` of them.

    A chapter without questions yields a session with an empty question list.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError(f"count must be a positive integer, got {count!r}")
    questions = get_questions_for_chapter(pool, chapter_number)
    (rng or random).shuffle(questions)
    return QuizSession(chapter_number=chapter_number, questions=questions[:count])


def select_answer(session: QuizSession, question_index: int, answer_index: int) -> bool:
    """Record an answer for one question and return whether it was correct."""
    if session.completed:
        raise ValueError("quiz is already completed")
    if not 0 <= question_index < len(session.questions):
        raise IndexError(f"no question at index {question_index}")
    question = session.questions[question_index]
    if question.is_answered:
        raise ValueError(f"question {question.id} was already answered")
    if not 0 <= answer_index < len(question.options):
        raise ValueError(f"answer index {answer_index} out of range for question {question.id}")
    question.selected_answer_index = answer_index
    if question.is_correct:
        session.score += 1
    return question.is_correct


def finish_quiz(session: QuizSession) -> QuizSession:
    session.score = sum(1 for q in session.questions if q.is_answered and q.is_correct)
    session.completed = True
    return session


def get_score_color(percentage: float) -> str:
    if percentage >= 90:
        return "green"
    elif percentage >= 70:
        return "blue"
    elif percentage >= 50:
        return "dark_orange"
    return "red"


def get_performance_message(percentage: float) -> str:
    if percentage >= 90:
        return "Excellent! You've mastered this chapter!"
    elif percentage >= 70:
        return "Good job! You're on the right track."
    elif percentage >= 50:
        return "Keep practicing! You're getting there."
    return "More review needed. Don't give up!"
