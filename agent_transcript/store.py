#!/usr/bin/env python3
"""SQLite-backed transcript store for conversations and their messages."""

import json
import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, List, Optional

from .migrations.runner import run_migrations
from .models import (
    AppendResult,
    Conversation,
    ConversationMessage,
    TEXT_MESSAGE_KIND,
)

logger = logging.getLogger(__name__)

DB_PATH_ENV_VAR = "AGENT_TRANSCRIPT_DB_PATH"
VALID_ROLES = ("user", "assistant")


class TranscriptStoreError(Exception):
    """The store could not be read or written.

    Retryable: the caller decides whether and when to try again.
    """

    retryable = True


# ========== Path Configuration ==========


def get_default_db_path() -> Path:
    """Get the default database location in the user's home directory."""
    return Path.home() / ".agent-transcript" / "transcripts.db"


def get_db_path() -> Path:
    """Get database path, respecting AGENT_TRANSCRIPT_DB_PATH env var.

    Priority: AGENT_TRANSCRIPT_DB_PATH env var > default location.
    """
    env_path = os.getenv(DB_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)
    return get_default_db_path()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ========== Transcript Store ==========


class TranscriptStore:
    """Persists conversations and returns their messages in creation order."""

    def __init__(self, db_path: Optional[Path] = None):
        """Open (and migrate) the transcript database.

        Args:
            db_path: Optional explicit path to the database. If not provided,
                uses AGENT_TRANSCRIPT_DB_PATH env var or the default location.
        """
        self.db_path = db_path or get_db_path()
        self._init_database()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper settings.

        Transactions are managed explicitly (isolation_level=None).
        """
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None)
        except sqlite3.Error as e:
            raise TranscriptStoreError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            raise TranscriptStoreError(f"Transcript store failure: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _write_transaction(
        self, conn: sqlite3.Connection
    ) -> Generator[sqlite3.Connection, None, None]:
        """Run a block holding the database write lock, committing on success.

        BEGIN IMMEDIATE takes the write lock before the first read, so a
        read-check-insert inside the block can't race another writer.
        """
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    def _init_database(self) -> None:
        """Create the database directory and schema if needed."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            applied = run_migrations(self.db_path)
            # WAL is persistent, so set it once rather than on every connection
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            try:
                conn.execute("PRAGMA journal_mode = WAL")
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise TranscriptStoreError(
                f"Cannot initialise transcript store at {self.db_path}: {e}"
            ) from e
        if applied:
            logger.debug("Applied %d migrations to %s", applied, self.db_path)

    # ========== Serialization ==========

    def _row_to_message(self, row: sqlite3.Row) -> ConversationMessage:
        raw_events: Any = row["raw_events"]
        if raw_events is not None:
            try:
                decoded = json.loads(raw_events)
            except json.JSONDecodeError:
                logger.warning("Message %s has undecodable raw events", row["id"])
            else:
                if isinstance(decoded, list):
                    raw_events = decoded

        return ConversationMessage(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"],
            content=row["content"],
            raw_events=raw_events,
            message_kind=row["message_kind"],
            created_at=row["created_at"],
        )

    def _fetch_messages(
        self, conn: sqlite3.Connection, conversation_id: str
    ) -> List[ConversationMessage]:
        rows = conn.execute(
            """
            SELECT id, conversation_id, role, content, raw_events, message_kind, created_at
            FROM messages WHERE conversation_id = ?
            ORDER BY created_at, seq
            """,
            (conversation_id,),
        ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def _has_message(
        self, conn: sqlite3.Connection, conversation_id: str, role: str, content: str
    ) -> bool:
        # SQLite's default BINARY collation makes this exact, case-sensitive equality
        row = conn.execute(
            """
            SELECT 1 FROM messages
            WHERE conversation_id = ? AND role = ? AND content = ?
            LIMIT 1
            """,
            (conversation_id, role, content),
        ).fetchone()
        return row is not None

    # ========== Conversations ==========

    def create_conversation(
        self,
        name: str,
        description: str = "",
        directory_path: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        """Create a conversation and return its id."""
        conversation_id = conversation_id or str(uuid.uuid4())
        now = _now()
        with self._get_connection() as conn:
            with self._write_transaction(conn):
                conn.execute(
                    """
                    INSERT INTO conversations
                    (id, name, description, directory_path, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (conversation_id, name, description, directory_path, now, now),
                )
        return conversation_id

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        return Conversation(**dict(row)) if row else None

    def list_conversations(self) -> List[Conversation]:
        """List conversations, most recently updated first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM conversations ORDER BY updated_at DESC"
            ).fetchall()
        return [Conversation(**dict(row)) for row in rows]

    # ========== Messages ==========

    def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        raw_events: Optional[List[Any]] = None,
        message_kind: Optional[str] = None,
    ) -> AppendResult:
        """Persist a message unless it duplicates one already stored.

        The duplicate check and the insert run in one write transaction, so
        concurrent appends of the same message store it once.

        Args:
            conversation_id: Conversation the message belongs to (created if missing)
            role: "user" or "assistant"
            content: Flattened human-readable content
            raw_events: Optional raw agent events, stored as JSON
            message_kind: Optional kind tag, defaults to "text"

        Returns:
            AppendResult with the new message id, or duplicate=True

        Raises:
            ValueError: If role is not "user" or "assistant", or raw_events
                can't be serialized as JSON
            TranscriptStoreError: If the database can't be read or written
        """
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid role: {role!r}")

        serialized_events = None
        if raw_events is not None:
            try:
                serialized_events = json.dumps(raw_events, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Raw events are not JSON serializable: {e}") from e

        with self._get_connection() as conn:
            with self._write_transaction(conn):
                if self._has_message(conn, conversation_id, role, content):
                    logger.info(
                        "Duplicate message detected, skipping save: %s %r",
                        role,
                        content[:100],
                    )
                    return AppendResult(duplicate=True)

                now = _now()
                message_id = str(uuid.uuid4())
                conn.execute(
                    """
                    INSERT INTO conversations
                    (id, name, description, directory_path, created_at, updated_at)
                    VALUES (?, ?, '', NULL, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET updated_at = excluded.updated_at
                    """,
                    (conversation_id, conversation_id, now, now),
                )
                conn.execute(
                    """
                    INSERT INTO messages
                    (id, conversation_id, role, content, raw_events, message_kind, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        message_id,
                        conversation_id,
                        role,
                        content,
                        serialized_events,
                        message_kind or TEXT_MESSAGE_KIND,
                        now,
                    ),
                )

        return AppendResult(message_id=message_id)

    def list_messages(self, conversation_id: str) -> List[ConversationMessage]:
        """Return a conversation's messages ordered by creation time ascending."""
        with self._get_connection() as conn:
            return self._fetch_messages(conn, conversation_id)
