"""Factory for Sections produced from typed agent events.

Each function builds one Section (or none, for empty content) with the
metadata contract renderers rely on:
- system: cwd, model, tool_count, permission_mode
- tool_use: tool, input, id
- tool_result / error: tool_use_id, is_error
- usage: the token counters
- final_result: duration_ms, duration_api_ms, num_turns, total_cost_usd, usage, session_id
"""

from typing import Any, Optional, cast

from ..models import (
    InitEvent,
    ResultEvent,
    Section,
    SectionKind,
    ToolResultItem,
    UsageInfo,
)

SYSTEM_INIT_LABEL = "System initialized"
OBJECT_LABEL = "Performed an operation"
TOOL_USE_FALLBACK = "Using a tool"
TOOL_RESULT_FALLBACK = "Tool execution completed"
FINAL_RESULT_FALLBACK = "Operation completed"

# Substring that marks a tool result as failed even without is_error
ERROR_MARKER = "error"


# =============================================================================
# Formatting Helpers
# =============================================================================


def format_token_usage(usage: UsageInfo) -> str:
    """Format token usage information as a display string.

    Args:
        usage: UsageInfo object with token counts.

    Returns:
        Formatted string like "Input: 100 | Output: 50 | Cache Read: 25"
    """
    token_parts = [
        f"Input: {usage.input_tokens or 0}",
        f"Output: {usage.output_tokens or 0}",
    ]
    if usage.cache_creation_input_tokens:
        token_parts.append(f"Cache Creation: {usage.cache_creation_input_tokens}")
    if usage.cache_read_input_tokens:
        token_parts.append(f"Cache Read: {usage.cache_read_input_tokens}")
    return " | ".join(token_parts)


def tool_result_text(content: Any) -> str:
    """Extract the text of a tool result payload (string or list of blocks)."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in cast(list[Any], content):
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict):
                text = cast(dict[str, Any], block).get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "\n".join(parts)
    return str(content)


# =============================================================================
# Section Creation Functions
# =============================================================================


def create_system_section(event: InitEvent) -> Section:
    return Section(
        SectionKind.SYSTEM,
        SYSTEM_INIT_LABEL,
        {
            "cwd": event.cwd,
            "model": event.model,
            "tool_count": len(event.tools or []),
            "permission_mode": event.permissionMode,
        },
    )


def create_text_section(text: str) -> Optional[Section]:
    """Create a text Section, or None when the text is empty."""
    if not text:
        return None
    return Section(SectionKind.TEXT, text)


def create_tool_use_section(item: dict[str, Any]) -> Section:
    name = item.get("name")
    label = (
        f"Using tool: {name}" if isinstance(name, str) and name else TOOL_USE_FALLBACK
    )
    return Section(
        SectionKind.TOOL_USE,
        label,
        {"tool": name, "input": item.get("input"), "id": item.get("id")},
    )


def create_object_section(item: Any) -> Section:
    return Section(SectionKind.OBJECT, OBJECT_LABEL, {"data": item})


def create_usage_section(usage: UsageInfo) -> Section:
    return Section(
        SectionKind.USAGE,
        format_token_usage(usage),
        usage.model_dump(exclude_none=True),
    )


def create_tool_result_section(item: ToolResultItem) -> Section:
    """Create a tool_result Section, or an error Section for failed tools.

    A result is an error when its is_error flag is set or its text
    contains the error marker.
    """
    text = tool_result_text(item.content)
    is_error = bool(item.is_error) or ERROR_MARKER in text
    return Section(
        SectionKind.ERROR if is_error else SectionKind.TOOL_RESULT,
        text or TOOL_RESULT_FALLBACK,
        {"tool_use_id": item.tool_use_id, "is_error": item.is_error},
    )


def create_final_result_section(event: ResultEvent) -> Section:
    return Section(
        SectionKind.FINAL_RESULT,
        event.result or FINAL_RESULT_FALLBACK,
        {
            "duration_ms": event.duration_ms,
            "duration_api_ms": event.duration_api_ms,
            "num_turns": event.num_turns,
            "total_cost_usd": event.total_cost_usd,
            "usage": event.usage,
            "session_id": event.session_id,
        },
    )
