#!/usr/bin/env python3
"""Tests for the SQLite transcript store."""

import sqlite3
import threading
from pathlib import Path

import pytest

from agent_transcript.models import AGENT_RESPONSE_KIND
from agent_transcript.store import (
    DB_PATH_ENV_VAR,
    TranscriptStore,
    TranscriptStoreError,
    get_db_path,
)


class TestDbPath:
    def test_env_var_overrides_default(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(DB_PATH_ENV_VAR, str(tmp_path / "env.db"))
        assert get_db_path() == tmp_path / "env.db"

    def test_default_location(self, monkeypatch):
        monkeypatch.delenv(DB_PATH_ENV_VAR, raising=False)
        assert get_db_path() == Path.home() / ".agent-transcript" / "transcripts.db"

    def test_store_uses_env_var(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(DB_PATH_ENV_VAR, str(tmp_path / "nested" / "env.db"))
        store = TranscriptStore()
        assert store.db_path == tmp_path / "nested" / "env.db"
        assert store.db_path.exists()


class TestAppend:
    """Test appending messages with duplicate protection."""

    def test_append_and_list(self, store: TranscriptStore):
        first = store.append("c1", "user", "Make a landing page")
        second = store.append("c1", "assistant", "Done")

        messages = store.list_messages("c1")

        assert first.accepted and second.accepted
        assert [m.id for m in messages] == [first.message_id, second.message_id]
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[0].message_kind == "text"
        assert messages[0].raw_events is None

    def test_deduplication_idempotence(self, store: TranscriptStore):
        """The same user message appended twice is stored once."""
        first = store.append("c1", "user", "X")
        second = store.append("c1", "user", "X")

        assert first.accepted
        assert second.duplicate
        assert second.message_id is None
        assert len(store.list_messages("c1")) == 1

    def test_same_content_other_role_is_stored(self, store: TranscriptStore):
        store.append("c1", "user", "X")
        assert store.append("c1", "assistant", "X").accepted
        assert len(store.list_messages("c1")) == 2

    def test_duplicates_are_per_conversation(self, store: TranscriptStore):
        store.append("c1", "user", "X")
        assert store.append("c2", "user", "X").accepted

    def test_raw_events_round_trip(self, store: TranscriptStore, agent_turn_events):
        store.append(
            "c1",
            "assistant",
            "content",
            raw_events=agent_turn_events,
            message_kind=AGENT_RESPONSE_KIND,
        )
        message = store.list_messages("c1")[0]
        assert message.raw_events == agent_turn_events
        assert message.message_kind == AGENT_RESPONSE_KIND

    def test_undecodable_raw_events_are_returned_as_text(self, store: TranscriptStore):
        store.append("c1", "assistant", "content", raw_events=[])
        with sqlite3.connect(store.db_path) as conn:
            conn.execute("UPDATE messages SET raw_events = '{broken'")
        assert store.list_messages("c1")[0].raw_events == "{broken"

    def test_invalid_role_rejected(self, store: TranscriptStore):
        with pytest.raises(ValueError):
            store.append("c1", "system", "X")

    def test_unserializable_raw_events_rejected(self, store: TranscriptStore):
        """Events that can't be stored as JSON raise ValueError and store nothing."""
        with pytest.raises(ValueError, match="not JSON serializable"):
            store.append("c1", "assistant", "content", raw_events=[{"at": object()}])
        assert store.list_messages("c1") == []

    def test_duplicate_check_is_case_sensitive(self, store: TranscriptStore):
        store.append("c1", "user", "Make a page")
        assert store.append("c1", "user", "make a page").accepted
        assert store.append("c1", "user", "Make a page ").accepted
        assert store.append("c1", "user", "Make a page").duplicate

    def test_concurrent_duplicate_appends_store_once(self, store: TranscriptStore):
        """Racing appends of the same message leave exactly one row."""
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(store.append("c1", "user", "same"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for r in results if r.accepted) == 1
        assert len(store.list_messages("c1")) == 1

    def test_list_unknown_conversation(self, store: TranscriptStore):
        assert store.list_messages("missing") == []


class TestConversations:
    def test_create_and_get(self, store: TranscriptStore):
        conversation_id = store.create_conversation(
            "Todo app", "A small todo list", directory_path="/apps/todo"
        )
        conversation = store.get_conversation(conversation_id)

        assert conversation is not None
        assert conversation.name == "Todo app"
        assert conversation.directory_path == "/apps/todo"

    def test_append_creates_missing_conversation(self, store: TranscriptStore):
        store.append("c9", "user", "hello")
        conversation = store.get_conversation("c9")
        assert conversation is not None
        assert conversation.name == "c9"

    def test_append_bumps_updated_at(self, store: TranscriptStore):
        older = store.create_conversation("older")
        newer = store.create_conversation("newer")
        store.append(older, "user", "hello again")

        conversations = store.list_conversations()

        assert [c.id for c in conversations][:2] == [older, newer]
        assert conversations[0].updated_at >= conversations[0].created_at

    def test_get_missing_conversation(self, store: TranscriptStore):
        assert store.get_conversation("nope") is None


class TestStoreErrors:
    def test_unopenable_database_raises_store_error(self, tmp_path: Path):
        """Failures surface as retryable TranscriptStoreError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(TranscriptStoreError) as exc_info:
            TranscriptStore(blocker / "transcripts.db")
        assert exc_info.value.retryable

    def test_corrupt_database_raises_store_error(self, tmp_path: Path):
        db_path = tmp_path / "corrupt.db"
        db_path.write_bytes(b"this is not a sqlite database" * 100)

        with pytest.raises(TranscriptStoreError):
            TranscriptStore(db_path)
