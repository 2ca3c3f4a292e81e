"""Factory for matching raw agent SDK events onto typed event models.

This module turns the loosely typed dictionaries streamed by the agent SDK into:
- InitEvent: session initialization (type="system", subtype="init")
- AssistantEvent: assistant content (text, tool_use, other blocks)
- UserToolResultEvent: tool results relayed back as a user turn
- ResultEvent: the final result of the turn
- UnknownEvent: anything else, including malformed input

Matching never raises: shapes that don't fit degrade to UnknownEvent.
"""

import json
import logging
from typing import Any, Callable, Optional, cast

from pydantic import ValidationError

from ..models import (
    AgentEvent,
    AssistantEvent,
    InitEvent,
    ResultEvent,
    ToolResultItem,
    UnknownEvent,
    UserToolResultEvent,
)

logger = logging.getLogger(__name__)


class RawEventsError(ValueError):
    """The raw event payload as a whole could not be read as a list of events."""


# =============================================================================
# Per-type Matchers
# =============================================================================


def _message_content(data: dict[str, Any]) -> Any:
    message = data.get("message")
    if not isinstance(message, dict):
        return None
    return cast(dict[str, Any], message).get("content")


def _match_system(data: dict[str, Any]) -> Optional[AgentEvent]:
    if data.get("subtype") != "init":
        return None
    return InitEvent.model_validate(data)


def _match_assistant(data: dict[str, Any]) -> Optional[AgentEvent]:
    content = _message_content(data)
    if not content or not isinstance(content, (str, list)):
        return None
    return AssistantEvent.model_validate(data)


def _match_user(data: dict[str, Any]) -> Optional[AgentEvent]:
    content = _message_content(data)
    if not content or not isinstance(content, list):
        return None
    # Only tool results matter here; plain user text is the user's own message.
    # Malformed items are skipped individually
    tool_results: list[ToolResultItem] = []
    for item in cast(list[Any], content):
        if not isinstance(item, dict) or item.get("type") != "tool_result":
            continue
        try:
            tool_results.append(ToolResultItem.model_validate(item))
        except ValidationError as e:
            logger.debug("Skipping malformed tool result: %s", e)
    message_copy = dict(data["message"])
    message_copy["content"] = tool_results
    return UserToolResultEvent.model_validate({**data, "message": message_copy})


def _match_result(data: dict[str, Any]) -> Optional[AgentEvent]:
    return ResultEvent.model_validate(data)


# Registry mapping event types to their matcher functions
EVENT_MATCHERS: dict[str, Callable[[dict[str, Any]], Optional[AgentEvent]]] = {
    "system": _match_system,
    "assistant": _match_assistant,
    "user": _match_user,
    "result": _match_result,
}


# =============================================================================
# Event Matching
# =============================================================================


def match_event(raw: Any) -> AgentEvent:
    """Match one raw event onto its typed model.

    Uses a registry-based dispatch on the 'type' field. Missing or unrecognised
    types, missing sub-fields and validation failures all yield UnknownEvent.

    Args:
        raw: One deserialized event (normally a dict, but anything is accepted)

    Returns:
        The matching AgentEvent variant
    """
    if not isinstance(raw, dict):
        return UnknownEvent(raw=raw)

    data = cast(dict[str, Any], raw)
    event_type = data.get("type")
    if not isinstance(event_type, str):
        return UnknownEvent(raw=raw)
    matcher = EVENT_MATCHERS.get(event_type)
    if matcher is None:
        return UnknownEvent(raw=raw)

    try:
        event = matcher(data)
    except ValidationError as e:
        logger.debug("Event of type %r did not match its model: %s", data["type"], e)
        event = None
    return event if event is not None else UnknownEvent(raw=raw)


def match_events(raw_events: list[Any]) -> list[AgentEvent]:
    """Match every event of a list, preserving order."""
    return [match_event(raw) for raw in raw_events]


def parse_raw_events(payload: Any) -> list[Any]:
    """Read a raw event payload into a list of events.

    Accepts an already deserialized list, or the JSON text form used for storage.

    Raises:
        RawEventsError: If the payload is not (or does not decode to) a list
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RawEventsError(f"Raw events are not valid JSON: {e}") from e

    if not isinstance(payload, list):
        raise RawEventsError(
            f"Raw events must be a list, got {type(payload).__name__}"
        )
    return cast(list[Any], payload)
