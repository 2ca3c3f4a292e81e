#!/usr/bin/env python3
"""Classify a raw agent event list into ordered Sections.

This is the structured path: every recognised event contributes Sections in
event order, unknown events are skipped. The function is pure and total.
"""

import logging
from typing import Any, cast

from .factories import (
    create_final_result_section,
    create_object_section,
    create_system_section,
    create_text_section,
    create_tool_result_section,
    create_tool_use_section,
    create_usage_section,
    match_event,
)
from .models import (
    AssistantEvent,
    InitEvent,
    ResultEvent,
    Section,
    UnknownEvent,
    UserToolResultEvent,
)

logger = logging.getLogger(__name__)


def _assistant_sections(event: AssistantEvent) -> list[Section]:
    sections: list[Section] = []
    content = event.message.content

    if isinstance(content, str):
        items: list[Any] = [content]
    else:
        items = content

    for item in items:
        if isinstance(item, str):
            section = create_text_section(item)
            if section:
                sections.append(section)
        elif isinstance(item, dict):
            item_dict = cast(dict[str, Any], item)
            item_type = item_dict.get("type")
            if item_type == "text":
                text = item_dict.get("text")
                section = create_text_section(text if isinstance(text, str) else "")
                if section:
                    sections.append(section)
            elif item_type == "tool_use":
                sections.append(create_tool_use_section(item_dict))
            else:
                sections.append(create_object_section(item_dict))
        # Scalars and nulls carry nothing renderable

    if event.message.usage is not None:
        sections.append(create_usage_section(event.message.usage))

    return sections


def classify_raw_events(raw_events: list[Any]) -> list[Section]:
    """Classify the raw events of one assistant turn.

    Args:
        raw_events: Deserialized agent events in the order they were produced

    Returns:
        Sections in event order; empty when nothing was recognised
    """
    sections: list[Section] = []
    if not isinstance(raw_events, list):
        return sections

    for index, raw in enumerate(raw_events):
        event = match_event(raw)

        if isinstance(event, InitEvent):
            sections.append(create_system_section(event))
        elif isinstance(event, AssistantEvent):
            sections.extend(_assistant_sections(event))
        elif isinstance(event, UserToolResultEvent):
            sections.extend(
                create_tool_result_section(item) for item in event.message.content
            )
        elif isinstance(event, ResultEvent):
            sections.append(create_final_result_section(event))
        elif isinstance(event, UnknownEvent):
            logger.debug("Skipping unrecognised event at index %d", index)

    return sections
