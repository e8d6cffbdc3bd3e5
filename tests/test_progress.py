import copy
from datetime import date, datetime

import pytest

from cpp_tutor.content import load_default_chapters
from cpp_tutor.db import init_db
from cpp_tutor.errors import NotFoundError, PersistError
from cpp_tutor.models import ChapterState, StudyStats
from cpp_tutor.persistence import ProgressGateway, StatsGateway
from cpp_tutor.progress import ProgressStore

NOW = datetime(2024, 6, 1, 9, 0)


class RecordingGateway:
    def __init__(self, fail=False):
        self.saves = []
        self.fail = fail

    def save(self, chapters):
        if self.fail:
            raise PersistError("disk full")
        self.saves.append([ChapterState.from_chapter(c) for c in chapters])

    def load(self):
        return self.saves[-1] if self.saves else None


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def store(sample_chapters, gateway):
    return ProgressStore(sample_chapters, gateway=gateway, clock=lambda: NOW)


def test_mark_reviewed(store, gateway):
    card = store.mark_reviewed(0, "1-02")
    assert card.is_reviewed
    assert card.attempt_count == 1
    assert card.last_review_date == NOW
    store.mark_reviewed(0, "1-02")
    assert card.is_reviewed
    assert card.attempt_count == 2
    assert len(gateway.saves) == 2


def test_mark_mastered_implies_reviewed(store):
    card = store.mark_mastered(1, "2-01")
    assert card.is_mastered
    assert card.is_reviewed


def test_unmastering_keeps_reviewed(store):
    store.mark_mastered(1, "2-01")
    card = store.mark_mastered(1, "2-01", mastered=False)
    assert not card.is_mastered
    assert card.is_reviewed


def test_unmastering_unreviewed_card_stays_unreviewed(store):
    card = store.mark_mastered(1, "2-02", mastered=False)
    assert not card.is_reviewed


def test_mark_for_review(store):
    store.mark_mastered(1, "2-03")
    card = store.mark_for_review(1, "2-03")
    assert card.is_reviewed
    assert not card.is_mastered
    assert card.attempt_count == 1


def test_toggle_favorite(store, gateway):
    assert store.toggle_favorite(0, "1-01") is True
    assert store.toggle_favorite(0, "1-01") is False
    assert len(gateway.saves) == 2


def test_progress_percentage_monotonic(store):
    seen = [store.progress_percentage(1)]
    for card_id in ("2-01", "2-02", "2-02", "2-03"):
        store.mark_reviewed(1, card_id)
        seen.append(store.progress_percentage(1))
    assert seen == sorted(seen)
    assert seen[0] == 0.0
    assert seen[-1] == 100.0


def test_progress_percentage_empty_chapter(store):
    assert store.progress_percentage(2) == 0.0


@pytest.mark.parametrize("chapter_index", [3, -1, 99])
def test_bad_chapter_index(store, gateway, chapter_index):
    with pytest.raises(NotFoundError):
        store.mark_reviewed(chapter_index, "1-01")
    with pytest.raises(NotFoundError):
        store.progress_percentage(chapter_index)
    assert gateway.saves == []


def test_unknown_card(store, gateway):
    with pytest.raises(NotFoundError):
        store.toggle_favorite(0, "2-01")
    with pytest.raises(NotFoundError):
        store.mark_mastered(2, "anything")
    assert gateway.saves == []


def test_not_found_is_lookup_error():
    assert issubclass(NotFoundError, LookupError)


def test_write_through_saves_current_state(store, gateway):
    store.mark_mastered(0, "1-01")
    saved = gateway.saves[-1][0].cards[0]
    assert saved.is_mastered and saved.is_reviewed


def test_persist_failure_keeps_memory_state(sample_chapters, log_messages):
    store = ProgressStore(sample_chapters, gateway=RecordingGateway(fail=True))
    card = store.mark_reviewed(0, "1-01")
    assert card.is_reviewed
    assert any("disk full" in m for m in log_messages)


def test_store_without_gateway(sample_chapters):
    store = ProgressStore(sample_chapters)
    assert store.toggle_favorite(1, "2-02")


def test_chapters_is_read_only_snapshot(store):
    chapters = store.chapters
    assert isinstance(chapters, tuple)
    with pytest.raises(AttributeError):
        chapters.append(None)


def test_subscribe_and_unsubscribe(store):
    calls = []
    unsubscribe = store.subscribe(calls.append)
    store.mark_reviewed(0, "1-01")
    assert len(calls) == 1
    assert calls[0][0].flashcards[0].is_reviewed
    unsubscribe()
    unsubscribe()
    store.mark_reviewed(0, "1-01")
    assert len(calls) == 1


def test_listeners_not_called_on_bad_reference(store):
    calls = []
    store.subscribe(calls.append)
    with pytest.raises(NotFoundError):
        store.mark_reviewed(0, "missing")
    assert calls == []


def test_favorite_and_unmastered_cards(store):
    store.toggle_favorite(1, "2-02")
    store.toggle_favorite(0, "1-01")
    assert [(i, c.id) for i, c in store.favorite_cards()] == [(0, "1-01"), (1, "2-02")]
    store.mark_mastered(0, "1-01")
    assert [(i, c.id) for i, c in store.unmastered_cards()] == [(0, "1-02"), (1, "2-01"), (1, "2-02"), (1, "2-03")]


def test_next_unmastered_index(store):
    assert store.next_unmastered_index(1) == 0
    store.mark_mastered(1, "2-02")
    assert store.next_unmastered_index(1, after=0) == 2
    assert store.next_unmastered_index(1, after=2) == 0
    store.mark_mastered(1, "2-01")
    store.mark_mastered(1, "2-03")
    assert store.next_unmastered_index(1) is None
    assert store.next_unmastered_index(2) is None


def test_find_chapter_index(store):
    assert store.find_chapter_index(2) == 1
    with pytest.raises(NotFoundError):
        store.find_chapter_index(42)


def test_reset_all_progress(store, gateway):
    store.mark_mastered(0, "1-01")
    store.toggle_favorite(1, "2-01")
    store.reset_all_progress()
    for chapter in store.chapters:
        for card in chapter.flashcards:
            assert not (card.is_reviewed or card.is_mastered or card.is_favorite)
            assert card.attempt_count == 0
    assert not any(c.is_reviewed for s in gateway.saves[-1] for c in s.cards)


def test_restore_ignores_unknown_chapters_and_cards(sample_chapters, gateway):
    store = ProgressStore(sample_chapters, gateway=gateway)
    store.mark_mastered(1, "2-02")
    states = copy.deepcopy(gateway.saves[-1])
    states[1].cards[0].id = "gone"
    states.append(ChapterState(number=99, cards=[]))

    fresh = ProgressStore(copy.deepcopy(sample_chapters))
    for card in fresh.chapter(1).flashcards:
        card.reset()
    fresh.restore(states)
    assert fresh.card(1, "2-02").is_mastered
    assert not fresh.card(1, "2-01").is_reviewed


def test_round_trip_through_real_gateway(tmp_db):
    init_db(tmp_db)
    gateway = ProgressGateway(tmp_db)
    store = ProgressStore.from_defaults(gateway, clock=lambda: NOW)
    store.mark_reviewed(0, "1-01")
    store.mark_reviewed(0, "1-01")
    store.mark_mastered(2, "3-02")
    store.toggle_favorite(6, "7-04")

    reloaded = ProgressStore.from_defaults(ProgressGateway(tmp_db))
    for before, after in zip(store.chapters, reloaded.chapters):
        assert before.title == after.title
        for a, b in zip(before.flashcards, after.flashcards):
            assert (a.id, a.question, a.answer) == (b.id, b.question, b.answer)
            assert (a.is_reviewed, a.is_mastered, a.is_favorite, a.attempt_count, a.last_review_date) == \
                   (b.is_reviewed, b.is_mastered, b.is_favorite, b.attempt_count, b.last_review_date)
    assert reloaded.card(0, "1-01").attempt_count == 2


def test_from_defaults_without_saved_progress(tmp_db):
    init_db(tmp_db)
    store = ProgressStore.from_defaults(ProgressGateway(tmp_db))
    assert len(store.chapters) == len(load_default_chapters())
    assert all(not c.is_reviewed for ch in store.chapters for c in ch.flashcards)


class RecordingStatsGateway:
    def __init__(self, fail=False):
        self.saves = []
        self.fail = fail

    def save(self, stats):
        if self.fail:
            raise PersistError("disk full")
        self.saves.append(copy.copy(stats))

    def load(self):
        return self.saves[-1] if self.saves else StudyStats()


def test_reviews_update_study_stats(sample_chapters):
    stats_gateway = RecordingStatsGateway()
    store = ProgressStore(sample_chapters, clock=lambda: NOW, stats_gateway=stats_gateway)
    store.mark_reviewed(0, "1-01")
    store.mark_for_review(0, "1-02")
    store.toggle_favorite(1, "2-01")
    assert store.stats == StudyStats(total_cards_reviewed=2, study_streak=1, last_study_date=date(2024, 6, 1))
    assert stats_gateway.saves[-1] == store.stats


def test_mastering_alone_is_not_a_review(store):
    store.mark_mastered(1, "2-01")
    assert store.stats.total_cards_reviewed == 0


def test_reset_clears_study_stats(store):
    store.mark_reviewed(0, "1-01")
    store.reset_all_progress()
    assert store.stats == StudyStats()


def test_stats_save_failure_keeps_memory(sample_chapters, log_messages):
    store = ProgressStore(sample_chapters, clock=lambda: NOW, stats_gateway=RecordingStatsGateway(fail=True))
    store.mark_reviewed(0, "1-01")
    assert store.stats.total_cards_reviewed == 1
    assert any("Study stats not saved" in m for m in log_messages)


def test_study_stats_survive_restart(tmp_db):
    init_db(tmp_db)
    store = ProgressStore.from_defaults(ProgressGateway(tmp_db), stats_gateway=StatsGateway(tmp_db), clock=lambda: NOW)
    store.mark_reviewed(0, "1-01")
    store.mark_reviewed(1, "2-01")

    reloaded = ProgressStore.from_defaults(ProgressGateway(tmp_db), stats_gateway=StatsGateway(tmp_db))
    assert reloaded.stats.total_cards_reviewed == 2
    assert reloaded.stats.last_study_date == date(2024, 6, 1)
