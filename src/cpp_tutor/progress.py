"""In-memory study progress with write-through persistence.

ProgressStore owns the chapter list. Screens read ``chapters`` and change
state only through the mutation methods, each of which saves the full state
through the gateway and then notifies subscribers.
"""
from datetime import datetime
from typing import Callable, Iterable, Optional

from loguru import logger

from cpp_tutor.content import load_default_chapters
from cpp_tutor.errors import NotFoundError, PersistError
from cpp_tutor.models import Chapter, ChapterState, Flashcard, StudyStats
from cpp_tutor.persistence import ProgressGateway, StatsGateway

Listener = Callable[[tuple], None]


class ProgressStore:
    def __init__(
        self,
        chapters: Iterable[Chapter],
        gateway: Optional[ProgressGateway] = None,
        clock: Callable[[], datetime] = datetime.now,
        stats: Optional[StudyStats] = None,
        stats_gateway: Optional[StatsGateway] = None,
    ):
        self._chapters = list(chapters)
        self.gateway = gateway
        self.clock = clock
        self.stats = stats if stats is not None else StudyStats()
        self.stats_gateway = stats_gateway
        self._listeners: list[Listener] = []

    @classmethod
    def from_defaults(
        cls,
        gateway: Optional[ProgressGateway] = None,
        stats_gateway: Optional[StatsGateway] = None,
        **kwargs,
    ) -> "ProgressStore":
        """Store seeded from the bundled dataset, rehydrated from saved progress if any."""
        stats = stats_gateway.load() if stats_gateway is not None else None
        store = cls(load_default_chapters(), gateway=gateway, stats=stats, stats_gateway=stats_gateway, **kwargs)
        if gateway is not None:
            states = gateway.load()
            if states:
                store.restore(states)
        return store

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def chapters(self) -> tuple:
        return tuple(self._chapters)

    def chapter(self, chapter_index: int) -> Chapter:
        if not 0 <= chapter_index < len(self._chapters):
            raise NotFoundError(f"no chapter at index {chapter_index}")
        return self._chapters[chapter_index]

    def card(self, chapter_index: int, card_id: str) -> Flashcard:
        chapter = self.chapter(chapter_index)
        for card in chapter.flashcards:
            if card.id == card_id:
                return card
        raise NotFoundError(f"no card {card_id!r} in chapter {chapter.number}")

    def find_chapter_index(self, number: int) -> int:
        for i, chapter in enumerate(self._chapters):
            if chapter.number == number:
                return i
        raise NotFoundError(f"no chapter numbered {number}")

    def progress_percentage(self, chapter_index: int) -> float:
        return self.chapter(chapter_index).progress_percentage

    def favorite_cards(self) -> list[tuple[int, Flashcard]]:
        return [
            (i, card)
            for i, chapter in enumerate(self._chapters)
            for card in chapter.flashcards
            if card.is_favorite
        ]

    def unmastered_cards(self) -> list[tuple[int, Flashcard]]:
        return [
            (i, card)
            for i, chapter in enumerate(self._chapters)
            for card in chapter.flashcards
            if not card.is_mastered
        ]

    def next_unmastered_index(self, chapter_index: int, after: int = -1) -> Optional[int]:
        """Position of the next unmastered card after ``after``, wrapping to the start.

        None when every card in the chapter is mastered.
        """
        cards = self.chapter(chapter_index).flashcards
        pending = [i for i, c in enumerate(cards) if not c.is_mastered]
        if not pending:
            return None
        for i in pending:
            if i > after:
                return i
        return pending[0]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mark_reviewed(self, chapter_index: int, card_id: str) -> Flashcard:
        card = self.card(chapter_index, card_id)
        self._record_review(card)
        self._commit()
        return card

    def mark_mastered(self, chapter_index: int, card_id: str, mastered: bool = True) -> Flashcard:
        card = self.card(chapter_index, card_id)
        card.is_mastered = mastered
        if mastered:
            card.is_reviewed = True
        self._commit()
        return card

    def mark_for_review(self, chapter_index: int, card_id: str) -> Flashcard:
        """Record a review that the learner did not feel confident about."""
        card = self.card(chapter_index, card_id)
        self._record_review(card)
        card.is_mastered = False
        self._commit()
        return card

    def toggle_favorite(self, chapter_index: int, card_id: str) -> bool:
        card = self.card(chapter_index, card_id)
        card.is_favorite = not card.is_favorite
        self._commit()
        return card.is_favorite

    def reset_all_progress(self) -> None:
        for chapter in self._chapters:
            for card in chapter.flashcards:
                card.reset()
        self.stats = StudyStats()
        self._commit()

    def restore(self, states: Iterable[ChapterState]) -> None:
        """Apply saved state to matching chapters and cards. Unknown ids are skipped."""
        by_number = {c.number: c for c in self._chapters}
        for state in states:
            chapter = by_number.get(state.number)
            if chapter is None:
                continue
            cards = {c.id: c for c in chapter.flashcards}
            for card_state in state.cards:
                card = cards.get(card_state.id)
                if card is not None:
                    card_state.apply_to(card)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_review(self, card: Flashcard) -> None:
        card.is_reviewed = True
        card.attempt_count += 1
        card.last_review_date = self.clock()
        self.stats.record_review(card.last_review_date)

    def _commit(self) -> None:
        if self.gateway is not None:
            try:
                self.gateway.save(self._chapters)
            except PersistError as e:
                logger.error("Progress not saved: {}", e)
        if self.stats_gateway is not None:
            try:
                self.stats_gateway.save(self.stats)
            except PersistError as e:
                logger.error("Study stats not saved: {}", e)
        snapshot = self.chapters
        for listener in list(self._listeners):
            listener(snapshot)
