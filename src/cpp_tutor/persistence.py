"""Saving and restoring per-card progress under a single key-value entry.

Only review state is stored. Titles and card text always come from the
bundled dataset, so new content in a release is never masked by old saves.

Stored layout (JSON):

    [{"number": 1,
      "cards": [{"id": "1-01", "isReviewed": true, "isMastered": false,
                 "isFavorite": false, "attemptCount": 2,
                 "lastReviewDate": "2024-05-01T10:00:00"}]}]
"""
import json
import sqlite3
from datetime import date, datetime
from typing import Iterable, Optional

from loguru import logger

from cpp_tutor.db import DEFAULT_DB_PATH, delete_value, get_value, set_value
from cpp_tutor.errors import PersistError
from cpp_tutor.models import CardState, Chapter, ChapterState, StudyStats

PROGRESS_KEY = "ChapterProgress"
STATS_KEY = "StudyStats"


def _card_to_dict(state: CardState) -> dict:
    return {
        "id": state.id,
        "isReviewed": state.is_reviewed,
        "isMastered": state.is_mastered,
        "isFavorite": state.is_favorite,
        "attemptCount": state.attempt_count,
        "lastReviewDate": state.last_review_date.isoformat() if state.last_review_date else None,
    }


def _card_from_dict(raw: dict) -> CardState:
    last = raw.get("lastReviewDate")
    return CardState(
        id=str(raw["id"]),
        is_reviewed=bool(raw.get("isReviewed", False)),
        is_mastered=bool(raw.get("isMastered", False)),
        is_favorite=bool(raw.get("isFavorite", False)),
        attempt_count=int(raw.get("attemptCount", 0)),
        last_review_date=datetime.fromisoformat(last) if last else None,
    )


def encode_progress(chapters: Iterable[Chapter]) -> str:
    states = [ChapterState.from_chapter(c) for c in chapters]
    return json.dumps([
        {"number": s.number, "cards": [_card_to_dict(c) for c in s.cards]}
        for s in states
    ])


def decode_progress(blob: str) -> list[ChapterState]:
    """Parse a stored blob. Raises ValueError, KeyError or TypeError on bad data."""
    data = json.loads(blob)
    if not isinstance(data, list):
        raise ValueError("progress blob must be a list")
    return [
        ChapterState(number=int(entry["number"]), cards=[_card_from_dict(c) for c in entry["cards"]])
        for entry in data
    ]


class ProgressGateway:
    def __init__(self, db_path: str = DEFAULT_DB_PATH, key: str = PROGRESS_KEY):
        self.db_path = db_path
        self.key = key

    def save(self, chapters: Iterable[Chapter]) -> None:
        blob = encode_progress(chapters)
        try:
            set_value(self.db_path, self.key, blob)
        except sqlite3.Error as e:
            raise PersistError(f"could not save progress: {e}") from e

    def load(self) -> Optional[list[ChapterState]]:
        """Stored progress, or None when there is nothing usable."""
        try:
            blob = get_value(self.db_path, self.key)
        except sqlite3.Error as e:
            logger.warning("Could not read saved progress: {}", e)
            return None
        if blob is None:
            return None
        try:
            return decode_progress(blob)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring corrupt saved progress: {}", e)
            return None

    def clear(self) -> None:
        try:
            delete_value(self.db_path, self.key)
        except sqlite3.Error as e:
            raise PersistError(f"could not clear progress: {e}") from e


def encode_stats(stats: StudyStats) -> str:
    return json.dumps({
        "totalCardsReviewed": stats.total_cards_reviewed,
        "studyStreak": stats.study_streak,
        "lastStudyDate": stats.last_study_date.isoformat() if stats.last_study_date else None,
    })


def decode_stats(blob: str) -> StudyStats:
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError("study stats must be an object")
    last = data.get("lastStudyDate")
    return StudyStats(
        total_cards_reviewed=int(data.get("totalCardsReviewed", 0)),
        study_streak=int(data.get("studyStreak", 0)),
        last_study_date=date.fromisoformat(last[:10]) if last else None,
    )


class StatsGateway:
    """Study totals under their own key, next to the progress blob."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH, key: str = STATS_KEY):
        self.db_path = db_path
        self.key = key

    def save(self, stats: StudyStats) -> None:
        try:
            set_value(self.db_path, self.key, encode_stats(stats))
        except sqlite3.Error as e:
            raise PersistError(f"could not save study stats: {e}") from e

    def load(self) -> StudyStats:
        """Saved totals, or zeroed totals when there is nothing usable."""
        try:
            blob = get_value(self.db_path, self.key)
        except sqlite3.Error as e:
            logger.warning("Could not read study stats: {}", e)
            return StudyStats()
        if blob is None:
            return StudyStats()
        try:
            return decode_stats(blob)
        except (ValueError, TypeError) as e:
            logger.warning("Ignoring corrupt study stats: {}", e)
            return StudyStats()
