"""Bundled study content: the default chapter dataset and app metadata."""
import json
from pathlib import Path

from cpp_tutor.models import Chapter, Flashcard

CONTENT_DIR = Path(__file__).parent / "data"
DEFAULT_CHAPTERS_PATH = CONTENT_DIR / "chapters.json"
DEFAULT_BANK_PATH = CONTENT_DIR / "quiz_questions.json"

APP_NAME = "Certified Protection Professional (CPP)"
APP_VERSION = "1.0.0"

LEGAL_DISCLAIMER = (
    "This app is an unofficial study aid for the Certified Protection Professional (CPP) "
    "certification. CPP® is a registered certification mark. All content is intended for "
    "self-study purposes only."
)

ATTRIBUTION = (
    "Content is based on publicly available Certified Protection Professional (CPP) "
    "certification materials. This is a study aid created by independent developers to "
    "help certification candidates."
)

DATA_PRIVACY_INFO = (
    "This app stores all data locally on your device. "
    "No personal information is collected or transmitted."
)


def parse_chapters(data: dict) -> list[Chapter]:
    """Build chapters from a {"chapters": [...]} document, in document order."""
    chapters = []
    for entry in data["chapters"]:
        cards = []
        for card in entry.get("flashcards", []):
            kwargs = {"question": card["question"], "answer": card["answer"]}
            if card.get("id"):
                kwargs["id"] = str(card["id"])
            cards.append(Flashcard(**kwargs))
        chapters.append(Chapter(number=int(entry["number"]), title=entry["title"], flashcards=cards))
    return chapters


def load_default_chapters(path: Path = DEFAULT_CHAPTERS_PATH) -> list[Chapter]:
    """Fresh chapters from the bundled dataset with every flag at its zero value."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_chapters(data)
