"""Pydantic models for agent SDK events, classified sections and stored messages.

Enhanced to leverage official Anthropic types where beneficial.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Union

from anthropic.types import Usage as AnthropicUsage
from pydantic import BaseModel, ConfigDict, field_validator


class SectionKind(str, Enum):
    """Classification of one unit of an assistant turn.

    Using str as base class keeps plain string comparisons working.

    Structured kinds (from raw agent events):
    - SYSTEM, TEXT, TOOL_USE, TOOL_RESULT, OBJECT, USAGE, ERROR, FINAL_RESULT

    Heuristic kinds (from flattened text):
    - TEXT, FILE, COMMAND, CODE, SUCCESS, ERROR, OBJECT, SUMMARY
    """

    TEXT = "text"
    FILE = "file"
    COMMAND = "command"
    CODE = "code"
    SUMMARY = "summary"
    OBJECT = "object"
    ERROR = "error"
    SUCCESS = "success"
    SYSTEM = "system"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    USAGE = "usage"
    FINAL_RESULT = "final_result"


@dataclass
class Section:
    """One classified, ordered unit of output.

    Format-neutral: renderers decide how each kind is displayed.
    """

    kind: SectionKind
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content": self.content,
            "metadata": self.metadata,
        }


# =============================================================================
# Agent Event Models
# =============================================================================
# Typed views over the loosely structured events the agent SDK streams.
# Extra fields are kept so nothing is lost when an event is re-serialized.


class UsageInfo(BaseModel):
    """Token usage information that extends Anthropic's Usage type to handle optional fields."""

    model_config = ConfigDict(extra="allow")

    input_tokens: Optional[int] = None
    cache_creation_input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    service_tier: Optional[str] = None

    @field_validator(
        "input_tokens",
        "cache_creation_input_tokens",
        "cache_read_input_tokens",
        "output_tokens",
        mode="before",
    )
    @classmethod
    def _drop_non_integer(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @field_validator("service_tier", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    def to_anthropic_usage(self) -> Optional[AnthropicUsage]:
        """Convert to Anthropic Usage type if both required fields are present."""
        if self.input_tokens is not None and self.output_tokens is not None:
            return AnthropicUsage(
                input_tokens=self.input_tokens,
                output_tokens=self.output_tokens,
                cache_creation_input_tokens=self.cache_creation_input_tokens,
                cache_read_input_tokens=self.cache_read_input_tokens,
            )
        return None


class InitEvent(BaseModel):
    """System initialization event (type="system", subtype="init")."""

    model_config = ConfigDict(extra="allow")

    type: Literal["system"]
    subtype: Literal["init"]
    cwd: Optional[str] = None
    model: Optional[str] = None
    tools: Optional[list[Any]] = None
    permissionMode: Optional[str] = None
    session_id: Optional[str] = None

    @field_validator("cwd", "model", "permissionMode", "session_id", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("tools", mode="before")
    @classmethod
    def _drop_non_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None


class AssistantPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Union[str, list[Any]]
    usage: Optional[UsageInfo] = None

    @field_validator("usage", mode="before")
    @classmethod
    def _drop_malformed_usage(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class AssistantEvent(BaseModel):
    """Assistant turn carrying text and tool_use content items."""

    model_config = ConfigDict(extra="allow")

    type: Literal["assistant"]
    message: AssistantPayload


class ToolResultItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["tool_result"]
    tool_use_id: Optional[str] = None
    content: Union[str, list[Any], None] = None
    is_error: Optional[bool] = None

    @field_validator("tool_use_id", mode="before")
    @classmethod
    def _drop_non_string_id(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("content", mode="before")
    @classmethod
    def _drop_unknown_content(cls, value: Any) -> Any:
        return value if isinstance(value, (str, list)) else None

    @field_validator("is_error", mode="before")
    @classmethod
    def _drop_non_bool(cls, value: Any) -> Any:
        return value if isinstance(value, bool) else None


class UserToolResultPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: list[ToolResultItem]


class UserToolResultEvent(BaseModel):
    """User event relaying tool results back to the agent."""

    model_config = ConfigDict(extra="allow")

    type: Literal["user"]
    message: UserToolResultPayload


class ResultEvent(BaseModel):
    """Final result event closing an agent turn."""

    model_config = ConfigDict(extra="allow")

    type: Literal["result"]
    subtype: Optional[str] = None
    result: Optional[str] = None
    is_error: Optional[bool] = None
    duration_ms: Optional[float] = None
    duration_api_ms: Optional[float] = None
    num_turns: Optional[int] = None
    total_cost_usd: Optional[float] = None
    usage: Optional[dict[str, Any]] = None
    session_id: Optional[str] = None

    @field_validator("duration_ms", "duration_api_ms", "total_cost_usd", mode="before")
    @classmethod
    def _drop_non_numeric(cls, value: Any) -> Any:
        # Garbled counters must not cost us the summary text
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("num_turns", mode="before")
    @classmethod
    def _drop_non_integer(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @field_validator("result", "subtype", "session_id", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("is_error", mode="before")
    @classmethod
    def _drop_non_bool(cls, value: Any) -> Any:
        return value if isinstance(value, bool) else None

    @field_validator("usage", mode="before")
    @classmethod
    def _drop_malformed_usage(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class UnknownEvent(BaseModel):
    """Fallback for events whose shape is not recognised."""

    raw: Any = None


AgentEvent = Union[
    InitEvent,
    AssistantEvent,
    UserToolResultEvent,
    ResultEvent,
    UnknownEvent,
]


# =============================================================================
# Stored Message Models
# =============================================================================

Role = Literal["user", "assistant"]

# message_kind marking assistant turns stored together with their raw events
AGENT_RESPONSE_KIND = "claude_code_response"
TEXT_MESSAGE_KIND = "text"


class ConversationMessage(BaseModel):
    """A persisted user or assistant message."""

    id: str
    conversation_id: str
    role: Role
    content: str
    # Decoded event list, or the stored text when it could not be decoded
    raw_events: Union[list[Any], str, None] = None
    message_kind: Optional[str] = TEXT_MESSAGE_KIND
    created_at: str


class Conversation(BaseModel):
    """A conversation (one app/workspace) owning an ordered list of messages."""

    id: str
    name: str
    description: str = ""
    directory_path: Optional[str] = None
    created_at: str
    updated_at: str


class AppendResult(BaseModel):
    """Outcome of an append: either accepted with a new id, or skipped as duplicate."""

    message_id: Optional[str] = None
    duplicate: bool = False

    @property
    def accepted(self) -> bool:
        return not self.duplicate
