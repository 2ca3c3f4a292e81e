#!/usr/bin/env python3
"""Turn agent output into stored conversation messages.

An agent turn is persisted as its flattened content (assistant text joined by
blank lines, non-text items as OBJECT_PLACEHOLDER, and the final result after
SUMMARY_MARKER) together with the raw events, so it can be re-classified
structurally later and heuristically when the events are missing.
"""

import logging
from typing import Any, Optional, cast

from .dedup import TranscriptBuffer, is_duplicate
from .factories import match_events, parse_raw_events
from .heuristics import CHUNK_SEPARATOR, OBJECT_PLACEHOLDER, SUMMARY_MARKER
from .models import AGENT_RESPONSE_KIND, AppendResult, AssistantEvent, ResultEvent
from .store import TranscriptStore

logger = logging.getLogger(__name__)


def _flatten_assistant_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for item in cast(list[Any], content):
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict) and cast(dict[str, Any], item).get("text"):
            parts.append(str(item["text"]))
        else:
            parts.append(OBJECT_PLACEHOLDER)
    return "\n".join(parts)


def flatten_agent_events(raw_events: list[Any]) -> str:
    """Flatten an agent turn into the human-readable content string.

    Assistant blocks come first in event order, then the final result text,
    separated from them by the summary marker.

    Args:
        raw_events: Deserialized agent events for one turn

    Returns:
        The flattened content, empty when the turn produced no text
    """
    events = match_events(raw_events)
    content = ""

    for event in events:
        if isinstance(event, AssistantEvent):
            texts = [_flatten_assistant_content(event.message.content)]
            # Some SDK versions also put plain text directly on the event
            extra_content = (event.model_extra or {}).get("content")
            if isinstance(extra_content, str):
                texts.append(extra_content)
            for text in texts:
                if text.strip():
                    content += (CHUNK_SEPARATOR if content else "") + text

    for event in events:
        if isinstance(event, ResultEvent) and event.result and event.result.strip():
            separator = f"{CHUNK_SEPARATOR}{SUMMARY_MARKER}\n" if content else ""
            content += separator + event.result

    return content


def record_user_message(
    store: TranscriptStore,
    conversation_id: str,
    content: str,
    buffer: Optional[TranscriptBuffer] = None,
) -> AppendResult:
    """Persist a user message, mirroring it into buffer when given."""
    result = store.append(conversation_id, "user", content)
    if buffer is not None and result.accepted:
        buffer.append("user", content, message_id=result.message_id)
    return result


def record_agent_turn(
    store: TranscriptStore,
    conversation_id: str,
    raw_events: Any,
    buffer: Optional[TranscriptBuffer] = None,
) -> Optional[AppendResult]:
    """Flatten and persist one agent turn with its raw events.

    When a buffer is given it is checked first, so a turn already on screen is
    neither stored nor shown again.

    Args:
        store: Transcript store to write to
        conversation_id: Conversation the turn belongs to
        raw_events: Event list or its JSON text
        buffer: Optional in-memory transcript to keep in step with the store

    Returns:
        The append outcome, or None when the turn had no content to record

    Raises:
        RawEventsError: If raw_events is not a list of events
        TranscriptStoreError: If the store can't be written
    """
    events = parse_raw_events(raw_events)
    content = flatten_agent_events(events)
    if not content:
        logger.debug("Agent turn for %s produced no content", conversation_id)
        return None

    candidate = {"role": "assistant", "content": content}
    if buffer is not None and is_duplicate(candidate, buffer.messages):
        logger.info("Assistant message already exists, skipping: %r", content[:100])
        return AppendResult(duplicate=True)

    result = store.append(
        conversation_id,
        "assistant",
        content,
        raw_events=events,
        message_kind=AGENT_RESPONSE_KIND,
    )
    if buffer is not None and result.accepted:
        buffer.append(
            "assistant",
            content,
            raw_events=events,
            message_kind=AGENT_RESPONSE_KIND,
            message_id=result.message_id,
        )
    return result
