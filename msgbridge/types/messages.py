"""Types for the inbound Messages API side of the gateway.

Content parts, output blocks and tool choices are tagged unions: every variant
is a dataclass carrying a ``type`` discriminant, and the union aliases below
are what the translators accept and return. Inbound payloads are parsed with
the ``from_payload`` helpers, which raise ``ValidationError`` only when a
payload is structurally unusable. Unknown fields are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, Mapping, Optional, Union

from ..core.exceptions import ValidationError

logger = logging.getLogger("msgbridge")

Role = Literal["user", "assistant"]


# =============================================================================
# Inbound content parts
# =============================================================================


@dataclass
class TextPart:
    text: str
    type: ClassVar[str] = "text"


@dataclass
class ImagePart:
    """Image content part. Carried for completeness, never forwarded upstream."""

    source: dict[str, Any] = field(default_factory=dict)
    type: ClassVar[str] = "image"


@dataclass
class ToolUsePart:
    id: str
    name: str
    input: Any = None
    type: ClassVar[str] = "tool_use"


@dataclass
class ToolResultPart:
    """Result of a tool invocation sent back by the client.

    Attributes:
        tool_use_id: Id of the tool_use block this result answers.
        content: Result text. List-form results are flattened to their text
            blocks joined with newlines.
    """

    tool_use_id: str
    content: str = ""
    type: ClassVar[str] = "tool_result"


ContentPart = Union[TextPart, ImagePart, ToolUsePart, ToolResultPart]


@dataclass
class Message:
    role: Role
    content: Union[str, list[ContentPart]]


# =============================================================================
# Tools
# =============================================================================


@dataclass
class ToolDefinition:
    name: str
    description: str = ""
    input_schema: Any = field(default_factory=dict)


@dataclass
class ToolChoiceNone:
    type: ClassVar[str] = "none"


@dataclass
class ToolChoiceAuto:
    type: ClassVar[str] = "auto"


@dataclass
class ToolChoiceAny:
    type: ClassVar[str] = "any"


@dataclass
class ToolChoiceTool:
    name: str
    type: ClassVar[str] = "tool"


ToolChoice = Union[ToolChoiceNone, ToolChoiceAuto, ToolChoiceAny, ToolChoiceTool]


# =============================================================================
# Request
# =============================================================================


@dataclass
class UnifiedRequest:
    """A Messages API request after parsing.

    ``system`` holds the system prompt fragments in their original order. A
    bare string system prompt becomes a single fragment.
    """

    model: str
    messages: list[Message] = field(default_factory=list)
    system: Optional[list[str]] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stream: Optional[bool] = None
    stop_sequences: Optional[list[str]] = None
    tools: Optional[list[ToolDefinition]] = None
    tool_choice: Optional[ToolChoice] = None

    @classmethod
    def from_payload(
        cls, payload: Any, *, require_model: bool = True
    ) -> "UnifiedRequest":
        """Parse a decoded JSON request body.

        Args:
            payload: Decoded JSON body.
            require_model: When False an empty model name is accepted (used by
                the token counting endpoint, which never reaches a backend).

        Raises:
            ValidationError: If the payload cannot be used as a request.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(
                "Request body must be a JSON object", code="invalid_json_shape"
            )

        model = payload.get("model")
        if model is None:
            model = ""
        if not isinstance(model, str):
            raise ValidationError("model must be a string", param="model")
        if require_model and not model.strip():
            raise ValidationError(
                "You must provide a model parameter",
                code="missing_parameter",
                param="model",
            )

        raw_messages = payload.get("messages")
        if raw_messages is None:
            raw_messages = []
        if not isinstance(raw_messages, list):
            raise ValidationError("messages must be an array", param="messages")
        messages = [
            _parse_message(raw, index) for index, raw in enumerate(raw_messages)
        ]

        tools = _parse_tools(payload.get("tools"))

        return cls(
            model=model,
            messages=messages,
            system=_parse_system(payload.get("system")),
            max_tokens=_optional_number(payload, "max_tokens", int),
            temperature=_optional_number(payload, "temperature", float),
            top_p=_optional_number(payload, "top_p", float),
            stream=_optional_bool(payload, "stream"),
            stop_sequences=_parse_stop_sequences(payload.get("stop_sequences")),
            tools=tools,
            tool_choice=parse_tool_choice(payload.get("tool_choice")),
        )


def _parse_system(system: Any) -> Optional[list[str]]:
    if system is None:
        return None
    if isinstance(system, str):
        return [system]
    if isinstance(system, Mapping):
        # A single block object instead of a list
        system = [system]
    if not isinstance(system, list):
        raise ValidationError(
            "system must be a string or an array of text blocks", param="system"
        )

    fragments: list[str] = []
    for block in system:
        if isinstance(block, str):
            fragments.append(block)
            continue
        if not isinstance(block, Mapping):
            raise ValidationError("system blocks must be objects", param="system")
        block_type = block.get("type", "text")
        if block_type != "text":
            logger.warning(f"Non-text block in system parameter: {block_type}")
            continue
        text = block.get("text", "")
        if not isinstance(text, str):
            raise ValidationError("system block text must be a string", param="system")
        fragments.append(text)
    return fragments


def _parse_message(raw: Any, index: int) -> Message:
    param = f"messages.{index}"
    if not isinstance(raw, Mapping):
        raise ValidationError("each message must be an object", param=param)

    role = raw.get("role")
    if role not in ("user", "assistant"):
        raise ValidationError(
            f"messages.{index}.role must be 'user' or 'assistant', got {role!r}",
            param=f"{param}.role",
        )

    content = raw.get("content")
    if content is None:
        return Message(role=role, content="")
    if isinstance(content, str):
        return Message(role=role, content=content)
    if not isinstance(content, list):
        raise ValidationError(
            "message content must be a string or an array of content blocks",
            param=f"{param}.content",
        )

    parts: list[ContentPart] = []
    for block in content:
        part = parse_content_part(block)
        if part is not None:
            parts.append(part)
    return Message(role=role, content=parts)


def parse_content_part(block: Any) -> Optional[ContentPart]:
    """Parse one inbound content block.

    Returns None for block types this gateway does not model (thinking,
    documents and so on); they are skipped rather than rejected.
    """
    if isinstance(block, str):
        return TextPart(text=block)
    if not isinstance(block, Mapping):
        raise ValidationError("content blocks must be objects")

    block_type = block.get("type")
    if block_type == "text":
        return TextPart(text=str(block.get("text") or ""))
    if block_type == "image":
        source = block.get("source")
        return ImagePart(source=dict(source) if isinstance(source, Mapping) else {})
    if block_type == "tool_use":
        return ToolUsePart(
            id=str(block.get("id") or ""),
            name=str(block.get("name") or ""),
            input=block.get("input"),
        )
    if block_type == "tool_result":
        return ToolResultPart(
            tool_use_id=str(block.get("tool_use_id") or ""),
            content=_flatten_tool_result(block.get("content")),
        )

    logger.debug(f"Ignoring unsupported content block type: {block_type}")
    return None


def _flatten_tool_result(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        text_parts = [
            str(item.get("text") or "")
            for item in content
            if isinstance(item, Mapping) and item.get("type") == "text"
        ]
        return "\n".join(text_parts)
    return str(content)


def _parse_tools(tools: Any) -> Optional[list[ToolDefinition]]:
    if tools is None:
        return None
    if not isinstance(tools, list):
        raise ValidationError("tools must be an array", param="tools")

    parsed: list[ToolDefinition] = []
    for index, tool in enumerate(tools):
        if not isinstance(tool, Mapping):
            raise ValidationError("each tool must be an object", param=f"tools.{index}")
        name = tool.get("name")
        if not isinstance(name, str) or not name:
            raise ValidationError(
                "tool name must be a non-empty string", param=f"tools.{index}.name"
            )
        description = tool.get("description")
        parsed.append(
            ToolDefinition(
                name=name,
                description=description if isinstance(description, str) else "",
                input_schema=tool.get("input_schema", {}),
            )
        )
    return parsed


def parse_tool_choice(tool_choice: Any) -> Optional[ToolChoice]:
    """Parse an inbound tool_choice.

    Accepts the object form (``{"type": "tool", "name": ...}``) and the bare
    string shorthand (``"auto"``, ``"any"``, ``"none"``).
    """
    if tool_choice is None:
        return None

    if isinstance(tool_choice, str):
        choice_type = tool_choice
        name = None
    elif isinstance(tool_choice, Mapping):
        choice_type = tool_choice.get("type")
        name = tool_choice.get("name")
    else:
        raise ValidationError("tool_choice must be an object", param="tool_choice")

    if choice_type == "none":
        return ToolChoiceNone()
    if choice_type == "auto":
        return ToolChoiceAuto()
    if choice_type == "any":
        return ToolChoiceAny()
    if choice_type == "tool":
        if not isinstance(name, str) or not name:
            raise ValidationError(
                "tool_choice of type 'tool' requires a name", param="tool_choice.name"
            )
        return ToolChoiceTool(name=name)

    raise ValidationError(
        f"Unsupported tool_choice type: {choice_type!r}", param="tool_choice.type"
    )


def _parse_stop_sequences(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(
            "stop_sequences must be an array of strings", param="stop_sequences"
        )
    return list(value)


def _optional_number(payload: Mapping[str, Any], key: str, kind: type) -> Any:
    value = payload.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number", param=key)
    if kind is int:
        if isinstance(value, float) and not value.is_integer():
            raise ValidationError(f"{key} must be an integer", param=key)
        return int(value)
    return float(value)


def _optional_bool(payload: Mapping[str, Any], key: str) -> Optional[bool]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean", param=key)
    return value


# =============================================================================
# Response
# =============================================================================


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
        }
        if self.cache_creation_input_tokens is not None:
            data["cache_creation_input_tokens"] = self.cache_creation_input_tokens
        if self.cache_read_input_tokens is not None:
            data["cache_read_input_tokens"] = self.cache_read_input_tokens
        return data


@dataclass
class TextBlock:
    text: str
    type: ClassVar[str] = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolUseBlock:
    id: str
    name: str
    input: Any = None
    type: ClassVar[str] = "tool_use"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "id": self.id, "name": self.name, "input": self.input}


ContentBlock = Union[TextBlock, ToolUseBlock]


@dataclass
class UnifiedResponse:
    """A non-streamed Messages API response."""

    id: str
    model: str
    content: list[ContentBlock] = field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: Usage = field(default_factory=Usage)
    role: str = "assistant"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "message",
            "role": self.role,
            "model": self.model,
            "content": [block.to_dict() for block in self.content],
            "stop_reason": self.stop_reason,
            "stop_sequence": None,
            "usage": self.usage.to_dict(),
        }
