"""SQLite user store."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT,
    steam_id TEXT UNIQUE,
    steam_username TEXT,
    avatar_url TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    last_login DATETIME
);
CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_users_steam_id ON users(steam_id);
"""


class UserStore:
    """Thin wrapper over the ``users`` table; rows come back as dicts.

    ``sqlite3.IntegrityError`` from the UNIQUE columns is left for the
    caller to turn into a conflict response.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(
            self.path,
            check_same_thread=False,
            isolation_level=None,
        )
        self.conn.row_factory = sqlite3.Row
        if self.path != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(_SCHEMA)
        log.info("User store ready at %s", self.path)

    def close(self) -> None:
        self.conn.close()

    def _one(self, sql: str, *args) -> dict | None:
        row = self.conn.execute(sql, args).fetchone()
        return dict(row) if row else None

    def find_by_id(self, user_id: int) -> dict | None:
        return self._one("SELECT * FROM users WHERE id = ?", user_id)

    def find_by_email(self, email: str) -> dict | None:
        return self._one("SELECT * FROM users WHERE email = ?", email)

    def find_by_steam_id(self, steam_id: str) -> dict | None:
        return self._one("SELECT * FROM users WHERE steam_id = ?", steam_id)

    def create(self, username: str, email: str, password_hash: str) -> dict:
        cur = self.conn.execute(
            "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
            (username, email, password_hash),
        )
        return self.find_by_id(cur.lastrowid)

    def create_with_steam(
        self,
        username: str,
        email: str,
        steam_id: str,
        steam_username: str,
        avatar_url: str | None,
    ) -> dict:
        cur = self.conn.execute(
            "INSERT INTO users (username, email, steam_id, steam_username, avatar_url)"
            " VALUES (?, ?, ?, ?, ?)",
            (username, email, steam_id, steam_username, avatar_url),
        )
        return self.find_by_id(cur.lastrowid)

    def link_steam(
        self,
        user_id: int,
        steam_id: str,
        steam_username: str,
        avatar_url: str | None,
    ) -> dict | None:
        self.conn.execute(
            "UPDATE users SET steam_id = ?, steam_username = ?, avatar_url = ? WHERE id = ?",
            (steam_id, steam_username, avatar_url, user_id),
        )
        return self.find_by_id(user_id)

    def update_last_login(self, user_id: int) -> None:
        self.conn.execute(
            "UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?", (user_id,)
        )
