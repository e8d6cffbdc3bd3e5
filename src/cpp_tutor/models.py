"""Data classes for the tutor domain model."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional


def chapter_number_from_domain(domain: str) -> int:
    """Chapter number from a domain label such as "Domain 3"; 0 if there is none."""
    parts = domain.split()
    if not parts:
        return 0
    try:
        return int(parts[-1])
    except ValueError:
        return 0


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Question:
    """One raw record from the question bank."""
    number: int
    domain: str
    question: str
    options: dict = field(hash=False)
    correct_answer: str
    explanation: str = ""

    @property
    def id(self) -> str:
        return str(self.number)

    @property
    def chapter_number(self) -> int:
        return chapter_number_from_domain(self.domain)


@dataclass
class QuizQuestion:
    id: str
    question: str
    options: list
    correct_answer_index: int
    explanation: str = ""
    selected_answer_index: Optional[int] = None

    @property
    def is_answered(self) -> bool:
        return self.selected_answer_index is not None

    @property
    def is_correct(self) -> bool:
        return self.selected_answer_index == self.correct_answer_index


@dataclass
class QuizSession:
    chapter_number: int
    questions: list = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    score: int = 0
    date_taken: datetime = field(default_factory=datetime.now)
    completed: bool = False

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.is_answered)

    @property
    def percentage_score(self) -> float:
        if not self.questions:
            return 0.0
        return self.score / len(self.questions) * 100


@dataclass
class Flashcard:
    question: str
    answer: str
    id: str = field(default_factory=_new_id)
    is_reviewed: bool = False
    is_mastered: bool = False
    last_review_date: Optional[datetime] = None
    attempt_count: int = 0
    is_favorite: bool = False

    def reset(self) -> None:
        self.is_reviewed = False
        self.is_mastered = False
        self.last_review_date = None
        self.attempt_count = 0
        self.is_favorite = False


@dataclass
class Chapter:
    number: int
    title: str
    flashcards: list = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.flashcards)

    @property
    def reviewed_count(self) -> int:
        return sum(1 for c in self.flashcards if c.is_reviewed)

    @property
    def mastered_count(self) -> int:
        return sum(1 for c in self.flashcards if c.is_mastered)

    @property
    def favorite_count(self) -> int:
        return sum(1 for c in self.flashcards if c.is_favorite)

    @property
    def progress_percentage(self) -> float:
        """Reviewed cards as a percentage of all cards, always within [0, 100]."""
        if not self.flashcards:
            return 0.0
        pct = self.reviewed_count / self.total_count * 100
        return min(max(pct, 0.0), 100.0)

    @property
    def is_mastered(self) -> bool:
        return bool(self.flashcards) and all(c.is_mastered for c in self.flashcards)


@dataclass
class CardState:
    """The persisted part of a flashcard."""
    id: str
    is_reviewed: bool = False
    is_mastered: bool = False
    is_favorite: bool = False
    attempt_count: int = 0
    last_review_date: Optional[datetime] = None

    @classmethod
    def from_card(cls, card: Flashcard) -> "CardState":
        return cls(
            id=card.id,
            is_reviewed=card.is_reviewed,
            is_mastered=card.is_mastered,
            is_favorite=card.is_favorite,
            attempt_count=card.attempt_count,
            last_review_date=card.last_review_date,
        )

    def apply_to(self, card: Flashcard) -> None:
        card.is_mastered = self.is_mastered
        # Mastered implies reviewed, even for state written by an older build
        card.is_reviewed = self.is_reviewed or self.is_mastered
        card.is_favorite = self.is_favorite
        card.attempt_count = max(self.attempt_count, 0)
        card.last_review_date = self.last_review_date


@dataclass
class ChapterState:
    number: int
    cards: list = field(default_factory=list)

    @classmethod
    def from_chapter(cls, chapter: Chapter) -> "ChapterState":
        return cls(number=chapter.number, cards=[CardState.from_card(c) for c in chapter.flashcards])


@dataclass
class StudyStats:
    """Running study totals, kept separately from per-card progress."""
    total_cards_reviewed: int = 0
    study_streak: int = 0
    last_study_date: Optional[date] = None

    def record_review(self, when: datetime) -> None:
        day = when.date()
        self.total_cards_reviewed += 1
        if self.last_study_date == day:
            return
        if self.last_study_date is not None and day - self.last_study_date == timedelta(days=1):
            self.study_streak += 1
        else:
            self.study_streak = 1
        self.last_study_date = day

    def current_streak(self, today: date) -> int:
        """The streak as seen on ``today``: a missed day means it has lapsed."""
        if self.last_study_date is None or (today - self.last_study_date).days > 1:
            return 0
        return self.study_streak
