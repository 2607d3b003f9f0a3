"""SQLite persistence layer."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

SCHEMA_VERSION = 1

Clock = Callable[[], datetime]


class Database:
    """Small SQLite wrapper with explicit schema management.

    Holds the per-chat thread log, stored prompt entries, the gif inventory and
    the durable state and pending alarm of every conversation actor.
    """

    def __init__(self, path: Path, clock: Clock | None = None) -> None:
        self._path = path
        self._clock = clock or _utc_now

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def now(self) -> datetime:
        return self._clock()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS threads (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                chat_id INTEGER NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_threads_chat ON threads(chat_id, created_at);

            CREATE TABLE IF NOT EXISTS prompts (
                id TEXT PRIMARY KEY,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                position INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS gifs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                file_id TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS conversation_states (
                chat_id INTEGER PRIMARY KEY,
                state_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS alarms (
                chat_id INTEGER PRIMARY KEY,
                due_at TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )

    # Thread log

    def append_thread(self, chat_id: int, role: str, content: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO threads(chat_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                (chat_id, role, content, _iso(self._clock())),
            )

    def get_thread(self, chat_id: int) -> list[dict[str, str]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT role, content FROM threads WHERE chat_id = ? ORDER BY id ASC",
                (chat_id,),
            ).fetchall()
        return [{"role": row["role"], "content": row["content"]} for row in rows]

    def is_active(self, chat_id: int, staleness_seconds: int) -> bool:
        """True when the chat has a message newer than the staleness window."""

        threshold = self._clock() - timedelta(seconds=staleness_seconds)
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM threads WHERE chat_id = ? AND created_at > ?",
                (chat_id, _iso(threshold)),
            ).fetchone()
        return bool(row and row["count"] > 0)

    def clear_thread(self, chat_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM threads WHERE chat_id = ?", (chat_id,))

    # Prompts

    def upsert_prompt(self, prompt_id: str, content: str, role: str = "system") -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO prompts(id, role, content, position)
                VALUES(?, ?, ?, (SELECT COALESCE(MAX(position), 0) + 1 FROM prompts))
                ON CONFLICT(id) DO UPDATE SET
                    role=excluded.role,
                    content=excluded.content
                """,
                (prompt_id, role, content),
            )

    def list_prompts(self) -> list[dict[str, str]]:
        with self._connect() as conn:
            rows = conn.execute("SELECT role, content FROM prompts ORDER BY position ASC").fetchall()
        return [{"role": row["role"], "content": row["content"]} for row in rows]

    # Gifs

    def upsert_gif(self, file_id: str, description: str) -> int:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gifs(file_id, description) VALUES (?, ?)
                ON CONFLICT(file_id) DO UPDATE SET description=excluded.description
                """,
                (file_id, description),
            )
            row = conn.execute("SELECT id FROM gifs WHERE file_id = ?", (file_id,)).fetchone()
        return int(row["id"])

    def get_gif(self, gif_id: int) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, file_id, description FROM gifs WHERE id = ?", (gif_id,)
            ).fetchone()
        return dict(row) if row else None

    def list_gifs(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, file_id, description FROM gifs ORDER BY id ASC").fetchall()
        return [dict(row) for row in rows]

    # Actor state

    def save_state(self, chat_id: int, state: dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO conversation_states(chat_id, state_json, updated_at)
                VALUES(?, ?, ?)
                ON CONFLICT(chat_id) DO UPDATE SET
                    state_json=excluded.state_json,
                    updated_at=excluded.updated_at
                """,
                (chat_id, json.dumps(state), _iso(self._clock())),
            )

    def load_state(self, chat_id: int) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT state_json FROM conversation_states WHERE chat_id = ?", (chat_id,)
            ).fetchone()
        return json.loads(row["state_json"]) if row else None

    def delete_state(self, chat_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM conversation_states WHERE chat_id = ?", (chat_id,))

    # Alarms

    def get_alarm(self, chat_id: int) -> datetime | None:
        with self._connect() as conn:
            row = conn.execute("SELECT due_at FROM alarms WHERE chat_id = ?", (chat_id,)).fetchone()
        return datetime.fromisoformat(row["due_at"]) if row else None

    def set_alarm(self, chat_id: int, due_at: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO alarms(chat_id, due_at, created_at) VALUES (?, ?, ?)
                ON CONFLICT(chat_id) DO UPDATE SET due_at=excluded.due_at
                """,
                (chat_id, _iso(due_at), _iso(self._clock())),
            )

    def delete_alarm(self, chat_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM alarms WHERE chat_id = ?", (chat_id,))

    def get_due_alarms(self, now: datetime) -> list[int]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT chat_id FROM alarms WHERE due_at <= ? ORDER BY due_at ASC",
                (_iso(now),),
            ).fetchall()
        return [int(row["chat_id"]) for row in rows]

    def claim_alarm(self, chat_id: int, now: datetime) -> bool:
        """Delete the alarm if it is due; return whether it was removed."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM alarms WHERE chat_id = ? AND due_at <= ?",
                (chat_id, _iso(now)),
            )
            return cur.rowcount > 0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")
