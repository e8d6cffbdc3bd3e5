import json

import pytest
from loguru import logger

from cpp_tutor.models import Chapter, Flashcard


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


def _question(number, domain, correct="B"):
    return {
        "number": number,
        "domain": domain,
        "question": f"Question {number}?",
        "options": {"D": "delta", "A": "alpha", "C": "charlie", "B": "bravo"},
        "correct_answer": correct,
        "explanation": f"Because {number}.",
    }


@pytest.fixture
def bank_document():
    """3 questions in Domain 2 and 2 in Domain 5."""
    return {
        "total_questions": 5,
        "questions_by_domain": {"Domain 2": 3, "Domain 5": 2},
        "questions": [
            _question(1, "Domain 2"),
            _question(2, "Domain 5", correct="A"),
            _question(3, "Domain 2", correct="D"),
            _question(4, "Domain 2"),
            _question(5, "Domain 5", correct="C"),
        ],
    }


@pytest.fixture
def bank_file(tmp_path, bank_document):
    path = tmp_path / "quiz_questions.json"
    path.write_text(json.dumps(bank_document))
    return path


@pytest.fixture
def sample_chapters():
    return [
        Chapter(number=1, title="One", flashcards=[
            Flashcard("q1", "a1", id="1-01"),
            Flashcard("q2", "a2", id="1-02"),
        ]),
        Chapter(number=2, title="Two", flashcards=[
            Flashcard("q3", "a3", id="2-01"),
            Flashcard("q4", "a4", id="2-02"),
            Flashcard("q5", "a5", id="2-03"),
        ]),
        Chapter(number=3, title="Empty", flashcards=[]),
    ]


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
