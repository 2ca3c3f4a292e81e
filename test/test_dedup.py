#!/usr/bin/env python3
"""Tests for duplicate message detection."""

from agent_transcript.dedup import (
    TranscriptBuffer,
    deduplicate_messages,
    is_duplicate,
)
from agent_transcript.models import ConversationMessage


def _stored(message_id: str, role: str, content: str) -> ConversationMessage:
    return ConversationMessage(
        id=message_id,
        conversation_id="c1",
        role=role,
        content=content,
        created_at=f"2025-01-01T00:00:0{message_id[-1]}+00:00",
    )


class TestIsDuplicate:
    """Test the (role, content) equality rule."""

    def test_same_role_and_content(self):
        existing = [_stored("m1", "user", "X")]
        assert is_duplicate({"role": "user", "content": "X"}, existing)

    def test_different_role_is_not_duplicate(self):
        existing = [_stored("m1", "assistant", "X")]
        assert not is_duplicate({"role": "user", "content": "X"}, existing)

    def test_exact_equality_without_normalisation(self):
        """Case and whitespace differences make distinct messages."""
        existing = [_stored("m1", "user", "Make a page")]
        assert not is_duplicate({"role": "user", "content": "make a page"}, existing)
        assert not is_duplicate({"role": "user", "content": "Make a page "}, existing)

    def test_accepts_objects_and_mappings(self):
        candidate = _stored("m2", "user", "X")
        assert is_duplicate(candidate, [{"role": "user", "content": "X"}])

    def test_empty_existing(self):
        assert not is_duplicate({"role": "user", "content": "X"}, [])


class TestDeduplicateMessages:
    def test_keeps_first_occurrence_in_order(self):
        messages = [
            _stored("m1", "user", "hello"),
            _stored("m2", "assistant", "hi"),
            _stored("m3", "user", "hello"),
            _stored("m4", "user", "bye"),
        ]
        assert [m.id for m in deduplicate_messages(messages)] == ["m1", "m2", "m4"]


class TestTranscriptBuffer:
    """Test the in-memory transcript guard."""

    def test_load_drops_duplicates(self):
        buffer = TranscriptBuffer(
            "c1",
            [_stored("m1", "user", "X"), _stored("m2", "user", "X")],
        )
        assert [m.id for m in buffer.messages] == ["m1"]

    def test_append_accepts_new_message(self):
        buffer = TranscriptBuffer("c1")
        result = buffer.append("user", "X")

        assert result.accepted
        assert result.message_id == buffer.messages[0].id
        assert buffer.messages[0].conversation_id == "c1"

    def test_append_skips_duplicate(self):
        buffer = TranscriptBuffer("c1")
        buffer.append("user", "X")
        result = buffer.append("user", "X")

        assert result.duplicate
        assert not result.accepted
        assert result.message_id is None
        assert len(buffer) == 1

    def test_append_reuses_given_id(self):
        buffer = TranscriptBuffer("c1")
        result = buffer.append("assistant", "Y", message_id="stored-id")
        assert result.message_id == "stored-id"
        assert buffer.messages[0].message_kind == "text"
