"""User preferences stored alongside progress in the key-value table."""
import sqlite3
from dataclasses import dataclass

from loguru import logger
from rich.theme import Theme

from cpp_tutor.db import DEFAULT_DB_PATH, get_value, set_value
from cpp_tutor.errors import PersistError

DARK_MODE_KEY = "isDarkMode"

LIGHT_THEME = Theme({
    "accent": "blue",
    "muted": "grey46",
    "card": "cyan",
    "answer": "green",
    "warning": "dark_orange",
})

DARK_THEME = Theme({
    "accent": "bright_cyan",
    "muted": "grey62",
    "card": "bright_blue",
    "answer": "bright_green",
    "warning": "yellow",
})


@dataclass
class Settings:
    dark_mode: bool = False

    @property
    def theme(self) -> Theme:
        return DARK_THEME if self.dark_mode else LIGHT_THEME


def load_settings(db_path: str = DEFAULT_DB_PATH) -> Settings:
    """Saved preferences, or the defaults when the store cannot be read."""
    try:
        raw = get_value(db_path, DARK_MODE_KEY, "false")
    except sqlite3.Error as e:
        logger.warning("Could not read settings, using defaults: {}", e)
        return Settings()
    return Settings(dark_mode=(raw or "").strip().lower() == "true")


def save_settings(db_path: str, settings: Settings) -> None:
    try:
        set_value(db_path, DARK_MODE_KEY, "true" if settings.dark_mode else "false")
    except sqlite3.Error as e:
        raise PersistError(f"could not save settings: {e}") from e
