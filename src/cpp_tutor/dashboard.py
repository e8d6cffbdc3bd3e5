"""Dashboard statistics over the chapter list."""
from datetime import date, timedelta
from typing import Iterable

from cpp_tutor.models import Chapter


def _pct(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return part / whole * 100


def get_overall_stats(chapters: Iterable[Chapter]) -> dict:
    chapters = list(chapters)
    total = sum(c.total_count for c in chapters)
    reviewed = sum(c.reviewed_count for c in chapters)
    mastered = sum(c.mastered_count for c in chapters)
    favorites = sum(c.favorite_count for c in chapters)
    return {
        "total_cards": total,
        "reviewed_cards": reviewed,
        "mastered_cards": mastered,
        "favorite_cards": favorites,
        "overall_progress": round(_pct(reviewed, total), 1),
        "overall_mastery": round(_pct(mastered, total), 1),
    }


def get_chapter_rows(chapters: Iterable[Chapter]) -> list[dict]:
    return [
        {
            "number": c.number,
            "title": c.title,
            "reviewed": c.reviewed_count,
            "mastered": c.mastered_count,
            "total": c.total_count,
            "progress": round(c.progress_percentage, 1),
        }
        for c in chapters
    ]


def get_motivational_message(mastery: float) -> str:
    if mastery <= 0:
        return "Ready to start your CPP journey? Let's begin!"
    elif mastery < 20:
        return "Great start! Keep building your knowledge."
    elif mastery < 40:
        return "You're making steady progress. Keep it up!"
    elif mastery < 60:
        return "Halfway there! Your dedication is showing."
    elif mastery < 80:
        return "Impressive progress! The finish line is in sight."
    elif mastery < 100:
        return "Almost there! You're mastering the material."
    return "Outstanding! You've mastered all the content!"


def get_progress_color(pct: float) -> str:
    if pct >= 80:
        return "green"
    elif pct >= 50:
        return "yellow"
    elif pct > 0:
        return "dark_orange"
    return "red"


def get_weekly_activity(chapters: Iterable[Chapter], today: date) -> list[tuple[date, float]]:
    """Seven (day, pct) pairs ending at ``today``, oldest first.

    pct is the share of all cards that are mastered and were last reviewed on
    that day.
    """
    cards = [card for c in chapters for card in c.flashcards]
    per_day = {}
    for card in cards:
        if card.is_mastered and card.last_review_date is not None:
            day = card.last_review_date.date()
            per_day[day] = per_day.get(day, 0) + 1
    days = [today - timedelta(days=n) for n in range(6, -1, -1)]
    return [(day, round(_pct(per_day.get(day, 0), len(cards)), 1)) for day in days]
