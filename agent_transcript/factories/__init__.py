"""Factory modules for creating typed objects from raw data."""

from .event_factory import (
    # Event matching
    match_event,
    match_events,
    # Payload parsing
    parse_raw_events,
    RawEventsError,
    # Matcher registry
    EVENT_MATCHERS,
)
from .section_factory import (
    # Section creation
    create_final_result_section,
    create_object_section,
    create_system_section,
    create_text_section,
    create_tool_result_section,
    create_tool_use_section,
    create_usage_section,
    # Formatting helpers
    format_token_usage,
    tool_result_text,
    # Fixed labels
    FINAL_RESULT_FALLBACK,
    OBJECT_LABEL,
    SYSTEM_INIT_LABEL,
    TOOL_RESULT_FALLBACK,
    TOOL_USE_FALLBACK,
)

__all__ = [
    # Event matching
    "match_event",
    "match_events",
    # Payload parsing
    "parse_raw_events",
    "RawEventsError",
    # Matcher registry
    "EVENT_MATCHERS",
    # Section creation
    "create_final_result_section",
    "create_object_section",
    "create_system_section",
    "create_text_section",
    "create_tool_result_section",
    "create_tool_use_section",
    "create_usage_section",
    # Formatting helpers
    "format_token_usage",
    "tool_result_text",
    # Fixed labels
    "FINAL_RESULT_FALLBACK",
    "OBJECT_LABEL",
    "SYSTEM_INIT_LABEL",
    "TOOL_RESULT_FALLBACK",
    "TOOL_USE_FALLBACK",
]
