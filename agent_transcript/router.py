#!/usr/bin/env python3
"""Choose between structured and heuristic classification for a message."""

import logging
from typing import Any, Optional

from .classifier import classify_raw_events
from .factories import RawEventsError, parse_raw_events
from .heuristics import classify_text
from .models import AGENT_RESPONSE_KIND, ConversationMessage, Section, SectionKind

logger = logging.getLogger(__name__)

# Sections shorter than this (after stripping) carry too little to show on
# their own. Tunable; kept at 10 for compatibility with stored transcripts.
MIN_SECTION_LENGTH = 10


def is_sufficient(
    sections: list[Section], min_section_length: int = MIN_SECTION_LENGTH
) -> bool:
    """Return True unless sections is empty or every section is too short."""
    return any(
        len(section.content.strip()) >= min_section_length for section in sections
    )


def classify_content(
    role: str,
    content: str,
    raw_events: Any = None,
    message_kind: Optional[str] = None,
    min_section_length: int = MIN_SECTION_LENGTH,
) -> list[Section]:
    """Classify one message given its parts.

    User messages are never classified: they become a single text Section.
    Assistant messages stored with raw events and the agent response kind go
    through the structured classifier, falling back to heuristics over content
    when the payload can't be read or the result is insufficient.
    """
    if role == "user":
        return [Section(SectionKind.TEXT, content)] if content else []

    if raw_events is not None and message_kind == AGENT_RESPONSE_KIND:
        try:
            events = parse_raw_events(raw_events)
        except RawEventsError as e:
            logger.debug("Falling back to text classification: %s", e)
        else:
            sections = classify_raw_events(events)
            if is_sufficient(sections, min_section_length):
                return sections
            logger.debug(
                "Structured classification gave %d thin sections, using text heuristics",
                len(sections),
            )

    return classify_text(content)


def classify_message(
    message: ConversationMessage, min_section_length: int = MIN_SECTION_LENGTH
) -> list[Section]:
    """Classify a stored message into Sections for display."""
    return classify_content(
        message.role,
        message.content,
        message.raw_events,
        message.message_kind,
        min_section_length=min_section_length,
    )
