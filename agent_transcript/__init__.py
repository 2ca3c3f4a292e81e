"""Classify and persist agent conversation transcripts."""

from .classifier import classify_raw_events
from .dedup import TranscriptBuffer, deduplicate_messages, is_duplicate
from .heuristics import classify_text
from .ingest import flatten_agent_events, record_agent_turn, record_user_message
from .models import (
    AGENT_RESPONSE_KIND,
    AppendResult,
    ConversationMessage,
    Section,
    SectionKind,
)
from .router import MIN_SECTION_LENGTH, classify_content, classify_message
from .store import TranscriptStore, TranscriptStoreError

__all__ = [
    "AGENT_RESPONSE_KIND",
    "AppendResult",
    "ConversationMessage",
    "MIN_SECTION_LENGTH",
    "Section",
    "SectionKind",
    "TranscriptBuffer",
    "TranscriptStore",
    "TranscriptStoreError",
    "classify_content",
    "classify_message",
    "classify_raw_events",
    "classify_text",
    "deduplicate_messages",
    "flatten_agent_events",
    "is_duplicate",
    "record_agent_turn",
    "record_user_message",
]
