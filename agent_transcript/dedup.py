"""Duplicate detection for conversation messages.

A message is identified by its (role, content) pair: exact, case-sensitive
string equality with no normalization. The in-memory transcript applies it
before appending, and TranscriptStore applies the same rule in SQL before
persisting, so the stored and displayed transcripts never diverge.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from .models import AppendResult, ConversationMessage, Role, TEXT_MESSAGE_KIND

logger = logging.getLogger(__name__)

M = TypeVar("M")


def dedup_key(message: Any) -> tuple[Any, Any]:
    """Return the (role, content) key of a message object or mapping."""
    if isinstance(message, Mapping):
        return message.get("role"), message.get("content")
    return getattr(message, "role", None), getattr(message, "content", None)


def is_duplicate(candidate: Any, existing: Iterable[Any]) -> bool:
    """Check whether candidate repeats a message already in existing.

    Args:
        candidate: Object or mapping with role and content
        existing: Messages of the same conversation

    Returns:
        True iff some existing message has the same role and exactly equal content
    """
    key = dedup_key(candidate)
    return any(dedup_key(message) == key for message in existing)


def deduplicate_messages(messages: Iterable[M]) -> list[M]:
    """Drop repeated (role, content) pairs, keeping the first occurrence in order."""
    seen: set[tuple[Any, Any]] = set()
    deduplicated: list[M] = []
    for message in messages:
        key = dedup_key(message)
        if key in seen:
            continue
        seen.add(key)
        deduplicated.append(message)
    return deduplicated


class TranscriptBuffer:
    """In-memory transcript of one conversation as shown to the user.

    Messages loaded from the store are filtered for duplicates, and local
    appends are skipped when they repeat a buffered message.
    """

    def __init__(
        self,
        conversation_id: str,
        messages: Optional[Iterable[ConversationMessage]] = None,
    ):
        self.conversation_id = conversation_id
        self.messages: list[ConversationMessage] = []
        if messages is not None:
            self.load(messages)

    def __len__(self) -> int:
        return len(self.messages)

    def load(self, messages: Iterable[ConversationMessage]) -> None:
        """Replace the buffer with messages, dropping duplicates."""
        loaded = list(messages)
        self.messages = deduplicate_messages(loaded)
        if len(self.messages) != len(loaded):
            logger.info(
                "Loaded %d messages for %s, %d after dedup",
                len(loaded),
                self.conversation_id,
                len(self.messages),
            )

    def append(
        self,
        role: Role,
        content: str,
        raw_events: Optional[list[Any]] = None,
        message_kind: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> AppendResult:
        """Append a message unless it is a duplicate.

        message_id is reused when the message was already persisted.
        """
        candidate = {"role": role, "content": content}
        if is_duplicate(candidate, self.messages):
            logger.info(
                "Message already in transcript, skipping: %s %r",
                role,
                content[:100],
            )
            return AppendResult(duplicate=True)

        message = ConversationMessage(
            id=message_id or str(uuid.uuid4()),
            conversation_id=self.conversation_id,
            role=role,
            content=content,
            raw_events=raw_events,
            message_kind=message_kind or TEXT_MESSAGE_KIND,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.messages.append(message)
        return AppendResult(message_id=message.id)
