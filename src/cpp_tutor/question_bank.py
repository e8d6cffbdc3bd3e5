"""Loading the bundled question bank into an immutable question pool."""
import json
from collections import Counter
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from cpp_tutor.content import DEFAULT_BANK_PATH
from cpp_tutor.errors import LoadError, QuestionBankMalformed, QuestionBankNotFound
from cpp_tutor.models import Question, QuizQuestion, QuizSession
from cpp_tutor.quiz import QUESTIONS_PER_QUIZ, generate_quiz, get_questions_for_chapter

REQUIRED_FIELDS = ("number", "domain", "question", "options", "correct_answer", "explanation")
TEXT_FIELDS = ("domain", "question", "correct_answer", "explanation")


def read_bank_document(path: Path) -> dict:
    path = Path(path)
    if not path.exists():
        raise QuestionBankNotFound(f"question bank not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise QuestionBankMalformed(f"{path.name} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise QuestionBankNotFound(f"could not read question bank {path}: {e}") from e
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise QuestionBankMalformed(f"could not parse {path.name}: {e}") from e
    if not isinstance(data, dict):
        raise QuestionBankMalformed(f"{path.name}: top level must be a mapping")
    return data


def _parse_record(index: int, raw) -> Question:
    if not isinstance(raw, dict):
        raise QuestionBankMalformed(f"question #{index}: expected a mapping")
    missing = [f for f in REQUIRED_FIELDS if f not in raw]
    if missing:
        raise QuestionBankMalformed(f"question #{index}: missing {', '.join(missing)}")
    if not isinstance(raw["options"], dict):
        raise QuestionBankMalformed(f"question #{index}: options must be a mapping")
    for name in TEXT_FIELDS:
        if not isinstance(raw[name], str):
            raise QuestionBankMalformed(f"question #{index}: {name} must be text, got {raw[name]!r}")
    for key, value in raw["options"].items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise QuestionBankMalformed(f"question #{index}: option {key!r} must map text to text")
    try:
        number = int(raw["number"])
    except (TypeError, ValueError) as e:
        raise QuestionBankMalformed(f"question #{index}: bad number {raw['number']!r}") from e
    return Question(
        number=number,
        domain=raw["domain"],
        question=raw["question"],
        options=dict(raw["options"]),
        correct_answer=raw["correct_answer"],
        explanation=raw["explanation"],
    )


def parse_questions(data: dict) -> list[Question]:
    """Turn a bank document into questions, in source order. All or nothing."""
    records = data.get("questions")
    if not isinstance(records, list):
        raise QuestionBankMalformed("'questions' must be a list")
    questions = [_parse_record(i, raw) for i, raw in enumerate(records, 1)]

    declared_total = data.get("total_questions")
    if declared_total is not None and declared_total != len(questions):
        logger.warning("Question bank declares {} questions but contains {}", declared_total, len(questions))
    declared_by_domain = data.get("questions_by_domain")
    if isinstance(declared_by_domain, dict):
        actual = Counter(q.domain for q in questions)
        for domain, count in declared_by_domain.items():
            if actual.get(domain, 0) != count:
                logger.warning("{} declares {} questions but contains {}", domain, count, actual.get(domain, 0))
    return questions


def load_questions(path: Path = DEFAULT_BANK_PATH) -> list[Question]:
    return parse_questions(read_bank_document(path))


class QuestionBank:
    """The question pool for the process lifetime.

    A bank that fails to load stays empty; every consumer treats "no questions"
    as a normal state.
    """

    def __init__(self, path: Path = DEFAULT_BANK_PATH):
        self.path = Path(path)
        self._questions: tuple = ()
        self.last_error: Optional[LoadError] = None

    def load(self) -> int:
        try:
            questions = load_questions(self.path)
        except LoadError as e:
            logger.error("Error loading questions: {}", e)
            self._questions = ()
            self.last_error = e
            return 0
        self._questions = tuple(questions)
        self.last_error = None
        logger.info("Question bank loaded: {} questions from {}", len(self._questions), self.path.name)
        for chapter, count in sorted(self.chapter_counts().items()):
            logger.debug("Chapter {}: {} questions", chapter, count)
        return len(self._questions)

    @property
    def questions(self) -> tuple:
        return self._questions

    @property
    def is_loaded(self) -> bool:
        return bool(self._questions)

    def chapter_counts(self) -> dict[int, int]:
        return dict(Counter(q.chapter_number for q in self._questions))

    def questions_for_chapter(self, chapter_number: int) -> list[QuizQuestion]:
        return get_questions_for_chapter(self._questions, chapter_number)

    def generate_quiz(self, chapter_number: int, count: int = QUESTIONS_PER_QUIZ, rng=None) -> QuizSession:
        session = generate_quiz(self._questions, chapter_number, count=count, rng=rng)
        logger.debug("Generated quiz with {} questions for chapter {}", len(session.questions), chapter_number)
        return session
