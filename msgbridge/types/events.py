"""Streaming events emitted by the stream translator.

Each variant knows how to render itself as one downstream SSE frame:

    event: message_start
    data: {"type":"message_start","message":{"id":...,"role":"assistant",...}}

    event: content_block_delta
    data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}

    event: message_stop
    data: {"type":"message_stop","delta":{"stop_reason":"stop","stop_sequence":null}}

    event: message_delta
    data: {"type":"message_delta","usage":{"input_tokens":10,"output_tokens":5}}

``Opaque`` events carry the upstream frame bytes and are written unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from ..core.exceptions import SerializationError
from .messages import Usage


@dataclass
class TextFragment:
    text: str
    type: ClassVar[str] = "text_delta"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolFragment:
    """A partial tool call as received from the backend.

    ``arguments`` is a raw JSON fragment; consumers concatenate the fragments
    of one tool call and parse the result once the block is complete.
    """

    index: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None
    type: ClassVar[str] = "input_json_delta"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "partial_json": self.arguments or "",
            "tool_index": self.index,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.name is not None:
            data["name"] = self.name
        return data


Fragment = Union[TextFragment, ToolFragment]


@dataclass
class MessageStart:
    id: str
    role: str
    type: ClassVar[str] = "message_start"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": {
                "id": self.id,
                "type": "message",
                "role": self.role,
                "content": [],
            },
        }


@dataclass
class ContentBlockDelta:
    index: int
    fragment: Fragment
    type: ClassVar[str] = "content_block_delta"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "index": self.index, "delta": self.fragment.to_dict()}


@dataclass
class MessageStop:
    stop_reason: str
    type: ClassVar[str] = "message_stop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "delta": {"stop_reason": self.stop_reason, "stop_sequence": None},
        }


@dataclass
class UsageFinal:
    usage: Usage
    type: ClassVar[str] = "message_delta"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "usage": self.usage.to_dict()}


@dataclass
class Opaque:
    raw: bytes
    type: ClassVar[str] = "opaque"


StreamEvent = Union[MessageStart, ContentBlockDelta, MessageStop, UsageFinal, Opaque]


def format_sse_event(event_type: str, data: dict[str, Any]) -> bytes:
    """Format one SSE frame.

    Raises:
        SerializationError: If ``data`` cannot be encoded as JSON.
    """
    try:
        json_str = json.dumps(data, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to encode {event_type} event: {exc}") from exc
    return f"event: {event_type}\ndata: {json_str}\n\n".encode("utf-8")


def encode_event(event: StreamEvent) -> bytes:
    """Render a stream event as the bytes of one downstream frame."""
    if isinstance(event, Opaque):
        return event.raw
    return format_sse_event(event.type, event.to_dict())
