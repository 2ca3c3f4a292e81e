#!/usr/bin/env python3
"""Tests for flattening and recording agent turns."""

import json

import pytest

from agent_transcript.dedup import TranscriptBuffer
from agent_transcript.factories import RawEventsError
from agent_transcript.heuristics import classify_text
from agent_transcript.ingest import (
    flatten_agent_events,
    record_agent_turn,
    record_user_message,
)
from agent_transcript.models import AGENT_RESPONSE_KIND, SectionKind
from agent_transcript.store import TranscriptStore

FLATTENED_TURN = (
    "I'll create a simple HTML page for you.\n[object Object]"
    "\n\nThe page `index.html` is ready."
    "\n\n--- Summary ---\nCreated index.html with a heading."
)


class TestFlattenAgentEvents:
    """Test the flattened content written alongside raw events."""

    def test_full_turn(self, agent_turn_events):
        assert flatten_agent_events(agent_turn_events) == FLATTENED_TURN

    def test_flattened_turn_classifies_heuristically(self, agent_turn_events):
        """The stored content still reads sensibly without the events."""
        sections = classify_text(flatten_agent_events(agent_turn_events))

        assert [s.kind for s in sections] == [
            SectionKind.TEXT,
            SectionKind.FILE,
            SectionKind.SUMMARY,
        ]
        assert sections[1].metadata["file_path"] == "index.html"
        assert sections[2].content == "Created index.html with a heading."

    def test_result_only(self):
        events = [{"type": "result", "result": "All done"}]
        assert flatten_agent_events(events) == "All done"

    def test_string_content_and_top_level_text(self):
        events = [
            {"type": "assistant", "message": {"content": "plain"}, "content": "extra"},
        ]
        assert flatten_agent_events(events) == "plain\n\nextra"

    def test_events_with_non_string_type_are_ignored(self):
        events = [
            {"type": ["assistant"], "message": {"content": "hidden"}},
            {"type": "result", "result": "All done"},
        ]
        assert flatten_agent_events(events) == "All done"

    def test_no_text(self):
        events = [
            {"type": "system", "subtype": "init"},
            {"type": "assistant", "message": {"content": []}},
            {"type": "result", "result": "   "},
        ]
        assert flatten_agent_events(events) == ""


class TestRecordAgentTurn:
    """Test persisting agent turns."""

    def test_records_content_and_events(self, store: TranscriptStore, agent_turn_events):
        result = record_agent_turn(store, "c1", agent_turn_events)

        assert result is not None and result.accepted
        message = store.list_messages("c1")[0]
        assert message.role == "assistant"
        assert message.content == FLATTENED_TURN
        assert message.raw_events == agent_turn_events
        assert message.message_kind == AGENT_RESPONSE_KIND

    def test_accepts_json_text(self, store: TranscriptStore, agent_turn_events):
        result = record_agent_turn(store, "c1", json.dumps(agent_turn_events))
        assert result is not None and result.accepted

    def test_same_turn_twice_is_duplicate(
        self, store: TranscriptStore, agent_turn_events
    ):
        record_agent_turn(store, "c1", agent_turn_events)
        second = record_agent_turn(store, "c1", agent_turn_events)

        assert second is not None and second.duplicate
        assert len(store.list_messages("c1")) == 1

    def test_empty_turn_is_not_recorded(self, store: TranscriptStore):
        assert record_agent_turn(store, "c1", [{"type": "system"}]) is None
        assert store.list_messages("c1") == []

    def test_malformed_payload_raises(self, store: TranscriptStore):
        with pytest.raises(RawEventsError):
            record_agent_turn(store, "c1", '{"type": "result"}')

    def test_buffer_is_kept_in_step(self, store: TranscriptStore, agent_turn_events):
        buffer = TranscriptBuffer("c1")
        result = record_agent_turn(store, "c1", agent_turn_events, buffer=buffer)

        assert result is not None
        assert [m.id for m in buffer.messages] == [result.message_id]
        assert buffer.messages[0].message_kind == AGENT_RESPONSE_KIND

    def test_buffer_duplicate_skips_store(
        self, store: TranscriptStore, agent_turn_events
    ):
        """A turn already shown is not written again."""
        buffer = TranscriptBuffer("c1")
        buffer.append("assistant", FLATTENED_TURN)

        result = record_agent_turn(store, "c1", agent_turn_events, buffer=buffer)

        assert result is not None and result.duplicate
        assert store.list_messages("c1") == []


class TestRecordUserMessage:
    def test_records_and_mirrors(self, store: TranscriptStore):
        buffer = TranscriptBuffer("c1")
        result = record_user_message(store, "c1", "Make a landing page", buffer)

        assert result.accepted
        assert store.list_messages("c1")[0].content == "Make a landing page"
        assert buffer.messages[0].id == result.message_id

    def test_duplicate_not_mirrored(self, store: TranscriptStore):
        buffer = TranscriptBuffer("c1")
        record_user_message(store, "c1", "X", buffer)
        result = record_user_message(store, "c1", "X", buffer)

        assert result.duplicate
        assert len(buffer) == 1
