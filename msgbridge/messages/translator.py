"""Messages <-> Chat Completions translation.

This module maps a parsed Messages API request onto the Chat Completions
request shape, and a non-streamed Chat Completions response back onto a
Messages response.

Key mappings:
- system fragments -> one leading system message, joined with newlines
- message content parts -> plain text (text parts joined with newlines)
- tools -> {"type": "function", "function": {...}} envelopes
- tool_choice -> "none" | "auto" | "any" | {"type": "function", ...}
- stop_sequences -> stop

Non-text content parts (images, tool_use and tool_result blocks) are not
forwarded. They are dropped with a debug log line.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping, Optional

from ..types.chat import (
    BackendMessage,
    BackendRequest,
    BackendTool,
    BackendToolChoice,
    ChatCompletionResponse,
)
from ..types.messages import (
    ContentBlock,
    Message,
    TextBlock,
    TextPart,
    ToolChoice,
    ToolChoiceAny,
    ToolChoiceAuto,
    ToolChoiceNone,
    ToolChoiceTool,
    ToolDefinition,
    ToolUseBlock,
    UnifiedRequest,
    UnifiedResponse,
    Usage,
)
from ..core.exceptions import ValidationError

logger = logging.getLogger("msgbridge")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def decode_json(data: str | bytes) -> Any:
    """Decode JSON, rejecting the NaN and Infinity constants.

    Raises:
        ValueError: If ``data`` is not strict JSON.
    """
    return json.loads(data, parse_constant=_reject_constant)


def translate_tool_choice(tool_choice: ToolChoice) -> BackendToolChoice:
    """Map a tool choice onto its backend representation.

    None/Auto/Any become bare strings, Tool(name) becomes a function object.
    """
    if isinstance(tool_choice, ToolChoiceNone):
        return "none"
    if isinstance(tool_choice, ToolChoiceAuto):
        return "auto"
    if isinstance(tool_choice, ToolChoiceAny):
        return "any"
    if isinstance(tool_choice, ToolChoiceTool):
        return {"type": "function", "function": {"name": tool_choice.name}}
    raise ValidationError(
        f"Unsupported tool_choice: {tool_choice!r}", param="tool_choice"
    )


def _translate_tools(tools: Optional[list[ToolDefinition]]) -> Optional[list[BackendTool]]:
    if tools is None:
        return None
    return [
        BackendTool(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_schema,
        )
        for tool in tools
    ]


def _message_text(message: Message, index: int) -> str:
    """Flatten message content to the text the backend receives."""
    if isinstance(message.content, str):
        return message.content

    texts: list[str] = []
    for part in message.content:
        if isinstance(part, TextPart):
            texts.append(part.text)
        else:
            logger.debug(
                f"Dropping {part.type} content part from messages.{index} during translation"
            )
    return "\n".join(texts)


def translate_request(request: UnifiedRequest) -> BackendRequest:
    """Translate a Messages request into a Chat Completions request.

    Args:
        request: The parsed inbound request.

    Returns:
        The outbound backend request.

    Raises:
        ValidationError: If the request is structurally unusable.
    """
    if not request.model or not request.model.strip():
        raise ValidationError(
            "You must provide a model parameter",
            code="missing_parameter",
            param="model",
        )

    logger.debug(
        f"Translating request: model={request.model} messages={len(request.messages)} "
        f"tools={len(request.tools) if request.tools else 0} stream={request.stream}"
    )

    backend_messages: list[BackendMessage] = []

    if request.system:
        backend_messages.append(
            BackendMessage(role="system", content="\n".join(request.system))
        )

    for index, message in enumerate(request.messages):
        if message.role not in ("user", "assistant"):
            raise ValidationError(
                f"messages.{index}.role must be 'user' or 'assistant', got {message.role!r}",
                param=f"messages.{index}.role",
            )
        backend_messages.append(
            BackendMessage(role=message.role, content=_message_text(message, index))
        )

    tool_choice = None
    if request.tool_choice is not None:
        tool_choice = translate_tool_choice(request.tool_choice)

    stream_options = None
    if request.stream:
        # The final usage event only exists when the backend is asked for it
        stream_options = {"include_usage": True}

    result = BackendRequest(
        model=request.model,
        messages=backend_messages,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        top_p=request.top_p,
        stream=request.stream,
        stop=request.stop_sequences,
        tools=_translate_tools(request.tools),
        tool_choice=tool_choice,
        stream_options=stream_options,
    )

    logger.debug(f"Translated request: {len(result.messages)} backend messages")
    return result


def _parse_tool_arguments(arguments: Any) -> Any:
    if arguments is None:
        return None
    if not isinstance(arguments, str):
        return arguments
    try:
        return decode_json(arguments)
    except ValueError:
        logger.debug(f"Tool call arguments are not valid JSON: {arguments[:100]}")
        return None


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def translate_usage(usage: Any) -> Usage:
    if not isinstance(usage, Mapping):
        return Usage()
    return Usage(
        input_tokens=_as_int(usage.get("prompt_tokens")),
        output_tokens=_as_int(usage.get("completion_tokens")),
    )


def translate_response(payload: ChatCompletionResponse) -> UnifiedResponse:
    """Translate a Chat Completions response into a Messages response.

    Only the first choice is used. Tool call arguments that are not valid JSON
    (including NaN or Infinity) yield ``input = None`` instead of failing the
    response. Non-finite usage counters read as zero. The finish reason
    is passed through unchanged.

    Args:
        payload: Decoded Chat Completions response body.

    Returns:
        The unified response.
    """
    choices = payload.get("choices")
    choice: Mapping[str, Any] = {}
    if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
        choice = choices[0]
    message = choice.get("message")
    if not isinstance(message, Mapping):
        message = {}

    content: list[ContentBlock] = []

    text = message.get("content")
    if isinstance(text, str) and text:
        content.append(TextBlock(text=text))

    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, list):
        for call in tool_calls:
            if not isinstance(call, Mapping):
                continue
            function = call.get("function")
            if not isinstance(function, Mapping):
                function = {}
            content.append(
                ToolUseBlock(
                    id=str(call.get("id") or ""),
                    name=str(function.get("name") or ""),
                    input=_parse_tool_arguments(function.get("arguments")),
                )
            )

    finish_reason = choice.get("finish_reason")
    response = UnifiedResponse(
        id=str(payload.get("id") or ""),
        model=str(payload.get("model") or ""),
        content=content,
        stop_reason=finish_reason if isinstance(finish_reason, str) else None,
        usage=translate_usage(payload.get("usage")),
    )

    logger.debug(
        f"Translated response: id={response.id} blocks={len(response.content)} "
        f"stop_reason={response.stop_reason}"
    )
    return response
