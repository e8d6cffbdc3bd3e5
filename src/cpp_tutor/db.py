"""SQLite-backed key-value store and connection management."""
import os
import sqlite3
from datetime import datetime
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".cpp_tutor" / "tutor.db")
DB_PATH_ENV = "CPP_TUTOR_DB"

SCHEMA = """
CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT,
    updated_at TEXT
);
"""


def resolve_db_path() -> str:
    """Database path from the environment, falling back to the default."""
    return os.environ.get(DB_PATH_ENV) or DEFAULT_DB_PATH


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()


def get_value(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    return row["value"] if row else default


def set_value(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    now = datetime.now().isoformat()
    try:
        conn.execute(
            "INSERT INTO user_settings (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=?, updated_at=?",
            (key, value, now, value, now),
        )
        conn.commit()
    finally:
        conn.close()


def delete_value(db_path: str, key: str) -> None:
    conn = get_connection(db_path)
    try:
        conn.execute("DELETE FROM user_settings WHERE key = ?", (key,))
        conn.commit()
    finally:
        conn.close()
