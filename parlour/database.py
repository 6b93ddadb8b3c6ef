"""SQLite-backed storage for users, chats, messages and chat events."""

from __future__ import annotations

import sqlite3
import threading
from os import PathLike
from typing import Optional, Union

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    username      TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS chats (
    chat_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    is_group  INTEGER NOT NULL,
    chat_name TEXT
);
CREATE TABLE IF NOT EXISTS chat_members (
    chat_id INTEGER NOT NULL REFERENCES chats(chat_id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    PRIMARY KEY (chat_id, user_id)
);
CREATE TABLE IF NOT EXISTS messages (
    msg_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id    INTEGER NOT NULL REFERENCES chats(chat_id) ON DELETE CASCADE,
    sender_id  INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    content    TEXT NOT NULL,
    created_at TEXT NOT NULL
        DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now', 'localtime')),
    deleted    INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS user_deleted_messages (
    msg_id  INTEGER NOT NULL REFERENCES messages(msg_id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    PRIMARY KEY (msg_id, user_id)
);
CREATE TABLE IF NOT EXISTS chat_events (
    event_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id    INTEGER NOT NULL,
    user_id    INTEGER NOT NULL,
    event_type TEXT NOT NULL,
    event_ts   TEXT NOT NULL
);
"""

_TS_FORMAT = "%Y-%m-%d %H:%M"


class Database:
    """Thread-safe access to the messenger's tables.

    Lookups return ``None`` where nothing matches; mutations return ``True``
    on success and ``False`` where the change could not be made.
    """

    def __init__(self, path: Union[str, PathLike]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fetch_one_value(self, sql: str, params: tuple):
        rows = self._conn.execute(sql, params).fetchall()
        return rows[0][0] if len(rows) == 1 else None

    def _write(self, sql: str, params: tuple) -> Optional[sqlite3.Cursor]:
        try:
            with self._conn:
                return self._conn.execute(sql, params)
        except sqlite3.IntegrityError:
            return None

    # Users -----------------------------------------------------------------

    def register_user(self, username: str, password_hash: str) -> bool:
        """Add a user; ``False`` if the name is already taken."""
        with self._lock:
            exists = self._conn.execute(
                "SELECT 1 FROM users WHERE username = ?", (username,)
            ).fetchone()
            if exists:
                return False
            cursor = self._write(
                "INSERT INTO users(username, password_hash) VALUES(?, ?)",
                (username, password_hash),
            )
            return cursor is not None

    def authenticate_user(self, username: str, password_hash: str) -> Optional[int]:
        """Return the user id for matching credentials, else ``None``."""
        with self._lock:
            return self._fetch_one_value(
                "SELECT user_id FROM users WHERE username = ? AND password_hash = ?",
                (username, password_hash),
            )

    def user_id_by_name(self, username: str) -> Optional[int]:
        with self._lock:
            return self._fetch_one_value(
                "SELECT user_id FROM users WHERE username = ?", (username,)
            )

    def username(self, user_id: int) -> str:
        """Return the user's name, or an empty string if unknown."""
        with self._lock:
            name = self._fetch_one_value(
                "SELECT username FROM users WHERE user_id = ?", (user_id,)
            )
            return name if name is not None else ""

    # Chats -----------------------------------------------------------------

    def find_private_chat(self, user1: int, user2: int) -> Optional[int]:
        """Return the private chat shared by two users, if exactly one exists."""
        with self._lock:
            return self._fetch_one_value(
                """
                SELECT c.chat_id
                  FROM chats c
                  JOIN chat_members m1 ON c.chat_id = m1.chat_id AND m1.user_id = ?
                  JOIN chat_members m2 ON c.chat_id = m2.chat_id AND m2.user_id = ?
                 WHERE c.is_group = 0
                 GROUP BY c.chat_id
                """,
                (user1, user2),
            )

    def create_chat(self, is_group: bool, chat_name: str) -> Optional[int]:
        """Create a chat and return its id; private chats get no name."""
        with self._lock:
            cursor = self._write(
                "INSERT INTO chats(is_group, chat_name) VALUES(?, ?)",
                (1 if is_group else 0, chat_name if is_group else None),
            )
            return cursor.lastrowid if cursor is not None else None

    def add_user_to_chat(self, chat_id: int, user_id: int) -> bool:
        with self._lock:
            return (
                self._write(
                    "INSERT INTO chat_members(chat_id, user_id) VALUES(?, ?)",
                    (chat_id, user_id),
                )
                is not None
            )

    def is_user_in_chat(self, chat_id: int, user_id: int) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM chat_members WHERE chat_id = ? AND user_id = ?",
                (chat_id, user_id),
            ).fetchone()
            return row is not None

    def list_user_chats(self, user_id: int) -> list[tuple[int, bool, str]]:
        """Return ``(chat_id, is_group, chat_name)`` for each of the user's chats."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT c.chat_id, c.is_group, c.chat_name
                  FROM chats c
                  JOIN chat_members m ON c.chat_id = m.chat_id
                 WHERE m.user_id = ?
                 ORDER BY c.chat_id
                """,
                (user_id,),
            ).fetchall()
        return [(cid, bool(group), name or "") for cid, group, name in rows]

    def chat_members(self, chat_id: int) -> list[str]:
        """Return the names of everyone in a chat."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT u.username
                  FROM users u
                  JOIN chat_members m ON u.user_id = m.user_id
                 WHERE m.chat_id = ?
                 ORDER BY u.user_id
                """,
                (chat_id,),
            ).fetchall()
        return [name for (name,) in rows]

    def remove_user_from_chat(self, chat_id: int, user_id: int) -> bool:
        """Drop a member and record a ``LEFT`` event for the chat."""
        with self._lock:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM chat_members WHERE chat_id = ? AND user_id = ?",
                    (chat_id, user_id),
                )
            return (
                self._write(
                    """
                    INSERT INTO chat_events(chat_id, user_id, event_type, event_ts)
                    VALUES(?, ?, 'LEFT',
                           strftime('%Y-%m-%d %H:%M:%f', 'now', 'localtime'))
                    """,
                    (chat_id, user_id),
                )
                is not None
            )

    def chat_events(self, chat_id: int) -> list[tuple[str, int, str]]:
        """Return ``(timestamp, user_id, event_type)`` in time order."""
        with self._lock:
            return [
                tuple(row)
                for row in self._conn.execute(
                    f"""
                    SELECT strftime('{_TS_FORMAT}', event_ts), user_id, event_type
                      FROM chat_events
                     WHERE chat_id = ?
                     ORDER BY event_ts, event_id
                    """,
                    (chat_id,),
                )
            ]

    # Messages --------------------------------------------------------------

    def store_message(self, chat_id: int, sender_id: int, content: str) -> Optional[int]:
        """Save a message and return its id."""
        with self._lock:
            cursor = self._write(
                "INSERT INTO messages(chat_id, sender_id, content) VALUES(?, ?, ?)",
                (chat_id, sender_id, content),
            )
            return cursor.lastrowid if cursor is not None else None

    def chat_history(self, chat_id: int, user_id: int) -> list[tuple[int, str, str, str]]:
        """Return ``(msg_id, timestamp, username, content)`` visible to a user."""
        with self._lock:
            return [
                tuple(row)
                for row in self._conn.execute(
                    f"""
                    SELECT m.msg_id,
                           strftime('{_TS_FORMAT}', m.created_at),
                           u.username,
                           m.content
                      FROM messages m
                      JOIN users u ON m.sender_id = u.user_id
                      LEFT JOIN user_deleted_messages d
                        ON d.msg_id = m.msg_id AND d.user_id = ?
                     WHERE m.chat_id = ?
                       AND NOT m.deleted
                       AND d.msg_id IS NULL
                     ORDER BY m.created_at, m.msg_id
                    """,
                    (user_id, chat_id),
                )
            ]

    def message_sender(self, msg_id: int) -> Optional[int]:
        with self._lock:
            return self._fetch_one_value(
                "SELECT sender_id FROM messages WHERE msg_id = ?", (msg_id,)
            )

    def chat_id_by_message(self, msg_id: int) -> Optional[int]:
        with self._lock:
            return self._fetch_one_value(
                "SELECT chat_id FROM messages WHERE msg_id = ?", (msg_id,)
            )

    def delete_message_for_user(self, msg_id: int, user_id: int) -> bool:
        """Hide a message from one user; repeating it is harmless."""
        with self._lock:
            return (
                self._write(
                    "INSERT OR IGNORE INTO user_deleted_messages(msg_id, user_id) "
                    "VALUES(?, ?)",
                    (msg_id, user_id),
                )
                is not None
            )

    def delete_message_global(self, msg_id: int) -> bool:
        """Mark a message deleted for everyone."""
        with self._lock:
            return (
                self._write(
                    "UPDATE messages SET deleted = 1 WHERE msg_id = ?", (msg_id,)
                )
                is not None
            )

    def delete_everything(self) -> bool:
        """Empty every table."""
        with self._lock:
            with self._conn:
                for table in (
                    "user_deleted_messages",
                    "messages",
                    "chat_members",
                    "chat_events",
                    "chats",
                    "users",
                ):
                    self._conn.execute(f"DELETE FROM {table}")
            return True