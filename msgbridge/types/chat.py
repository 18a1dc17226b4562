"""Types for the OpenAI-compatible Chat Completions side of the gateway.

The outbound request is built as dataclasses (``BackendRequest`` and
``BackendMessage``) so its shape is fixed before it is encoded. Backend
responses and stream chunks are only read, so they are described with
TypedDicts and accessed defensively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from typing_extensions import TypedDict


BackendRole = Literal["system", "user", "assistant", "tool"]


# =============================================================================
# Outbound request
# =============================================================================


class FunctionCall(TypedDict, total=False):
    """A function call within a tool call.

    Attributes:
        name: Name of the function. Can be None on streamed follow-up chunks.
        arguments: JSON string with the arguments. Streamed in fragments.
    """
    name: Optional[str]
    arguments: Optional[str]


class ToolCall(TypedDict, total=False):
    """A tool call emitted by the backend.

    Attributes:
        id: Unique identifier for the tool call.
        type: Always "function".
        function: The function and its arguments.
        index: Position in the tool_calls array (streaming only).
    """
    id: str
    type: str
    function: FunctionCall
    index: int


@dataclass
class BackendMessage:
    role: BackendRole
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            data["tool_calls"] = self.tool_calls
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        return data


@dataclass
class BackendTool:
    name: str
    description: str
    parameters: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


BackendToolChoice = Union[str, dict[str, Any]]


@dataclass
class BackendRequest:
    """Chat Completions request body. Unset optionals are omitted on encode."""

    model: str
    messages: list[BackendMessage] = field(default_factory=list)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stream: Optional[bool] = None
    stop: Optional[list[str]] = None
    tools: Optional[list[BackendTool]] = None
    tool_choice: Optional[BackendToolChoice] = None
    stream_options: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
        }
        for key in ("max_tokens", "temperature", "top_p", "stream", "stop"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.tools is not None:
            data["tools"] = [tool.to_dict() for tool in self.tools]
        if self.tool_choice is not None:
            data["tool_choice"] = self.tool_choice
        if self.stream_options is not None:
            data["stream_options"] = self.stream_options
        return data


# =============================================================================
# Backend responses
# =============================================================================


class ChatUsage(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatMessage(TypedDict, total=False):
    role: str
    content: Optional[str]
    tool_calls: Optional[list[ToolCall]]


class Choice(TypedDict, total=False):
    index: int
    message: ChatMessage
    finish_reason: Optional[str]


class ChatCompletionResponse(TypedDict, total=False):
    """A non-streaming Chat Completions response."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Optional[ChatUsage]


class Delta(TypedDict, total=False):
    """A streamed delta of a choice.

    Attributes:
        role: Present on the first chunk of a stream.
        content: Incremental text.
        tool_calls: Partial tool calls, keyed by their ``index``.
    """
    role: Optional[str]
    content: Optional[str]
    tool_calls: Optional[list[ToolCall]]


class StreamChoice(TypedDict, total=False):
    index: int
    delta: Delta
    finish_reason: Optional[str]


class ChatCompletionChunk(TypedDict, total=False):
    """A single streamed Chat Completions chunk."""
    id: str
    object: str
    created: int
    model: str
    choices: list[StreamChoice]
    usage: Optional[ChatUsage]
