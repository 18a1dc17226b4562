"""Stream adapter for converting Chat Completions SSE frames to Messages events.

Chat Completions frames, as re-framed by ``SSEDecoder``:
    data: {"id":"c1","choices":[{"delta":{"role":"assistant"},"index":0}]}
    data: {"id":"c1","choices":[{"delta":{"content":"Hello"},"index":0}]}
    data: {"id":"c1","choices":[{"delta":{"tool_calls":[...]},"index":0}]}
    data: {"id":"c1","choices":[{"delta":{},"finish_reason":"stop","index":0}]}
    data: {"id":"c1","choices":[],"usage":{"prompt_tokens":10,"completion_tokens":5}}
    data: [DONE]

Every frame yields exactly one event. Frames that carry nothing this adapter
understands (the ``[DONE]`` sentinel, comments, undecodable JSON including NaN or
Infinity, empty deltas) become ``Opaque`` events holding the frame bytes as returned by
``SSEDecoder`` (line endings normalized to LF).

When one frame matches several rules, precedence is: finish reason, then the
first role, then a tool call delta, then a text delta.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Literal, Mapping, Optional

from ..core.sse import DONE_SENTINEL, extract_sse_data
from ..types.events import (
    ContentBlockDelta,
    MessageStart,
    MessageStop,
    Opaque,
    StreamEvent,
    TextFragment,
    ToolFragment,
    UsageFinal,
)
from ..types.chat import ChatCompletionChunk
from .translator import decode_json, translate_usage

logger = logging.getLogger("msgbridge")

StreamPhase = Literal["init", "started", "streaming", "done"]
BlockKind = Literal["none", "text", "tool_use"]


@dataclass(frozen=True)
class StreamState:
    """Per-stream translation state.

    Attributes:
        phase: Lifecycle phase. Informational only, it never gates a rule.
        block_kind: Kind of the content block currently open at index 0.
        message_started: Whether MessageStart has been emitted.
        tool_id: Id of the tool call in progress, if any.
        tool_name: Name of the tool call in progress, if any.
    """

    phase: StreamPhase = "init"
    block_kind: BlockKind = "none"
    message_started: bool = False
    tool_id: Optional[str] = None
    tool_name: Optional[str] = None


def _decode_frame(frame: bytes) -> Optional[ChatCompletionChunk]:
    data_str = extract_sse_data(frame)
    if data_str is None or data_str == DONE_SENTINEL:
        return None
    try:
        data = decode_json(data_str)
    except ValueError:
        logger.debug(f"StreamAdapter: Failed to parse: {data_str[:100]}")
        return None
    return data if isinstance(data, dict) else None


def _pick_tool_call(tool_calls: Any) -> Optional[Mapping[str, Any]]:
    """Return the tool call fragment a chunk contributes.

    Backends send one entry per chunk in practice; when several arrive the
    last entry carrying a function wins.
    """
    if not isinstance(tool_calls, list):
        return None
    picked = None
    for call in tool_calls:
        if isinstance(call, Mapping) and isinstance(call.get("function"), Mapping):
            picked = call
    return picked


def _tool_fragment(call: Mapping[str, Any]) -> ToolFragment:
    function = call.get("function") or {}
    index = call.get("index")
    call_id = call.get("id")
    name = function.get("name")
    arguments = function.get("arguments")
    return ToolFragment(
        index=index if isinstance(index, int) and not isinstance(index, bool) else 0,
        id=call_id if isinstance(call_id, str) else None,
        name=name if isinstance(name, str) else None,
        arguments=arguments if isinstance(arguments, str) else None,
    )


def advance(state: StreamState, chunk: bytes) -> tuple[StreamState, StreamEvent]:
    """Apply one backend frame to ``state``.

    Args:
        state: State before the frame.
        chunk: One complete SSE frame as received from the backend.

    Returns:
        The new state and the single event the frame produces.
    """
    data_str = extract_sse_data(chunk)
    if data_str == DONE_SENTINEL:
        return replace(state, phase="done"), Opaque(raw=chunk)

    data = _decode_frame(chunk)
    if not isinstance(data, Mapping):
        return state, Opaque(raw=chunk)

    choices = data.get("choices")
    if not choices:
        usage = data.get("usage")
        if isinstance(usage, Mapping):
            return replace(state, phase="done"), UsageFinal(usage=translate_usage(usage))
        return state, Opaque(raw=chunk)

    choice = choices[0] if isinstance(choices, list) else None
    if not isinstance(choice, Mapping):
        return state, Opaque(raw=chunk)

    finish_reason = choice.get("finish_reason")
    if isinstance(finish_reason, str):
        return replace(state, phase="done"), MessageStop(stop_reason=finish_reason)

    delta = choice.get("delta")
    if not isinstance(delta, Mapping):
        return state, Opaque(raw=chunk)

    role = delta.get("role")
    if isinstance(role, str) and role and not state.message_started:
        event = MessageStart(id=str(data.get("id") or ""), role=role)
        return replace(state, phase="started", message_started=True), event

    text = delta.get("content")
    has_text = isinstance(text, str) and text != ""

    call = _pick_tool_call(delta.get("tool_calls"))
    if call is not None:
        fragment = _tool_fragment(call)
        if has_text:
            logger.warning(
                f"StreamAdapter: chunk carries both text and a tool call; "
                f"dropping {len(text)} characters of text"
            )
        new_state = replace(
            state,
            phase="streaming",
            block_kind="tool_use",
            tool_id=fragment.id if fragment.id is not None else state.tool_id,
            tool_name=fragment.name if fragment.name is not None else state.tool_name,
        )
        return new_state, ContentBlockDelta(index=0, fragment=fragment)

    if has_text:
        new_state = replace(state, phase="streaming", block_kind="text")
        if state.block_kind != "text":
            new_state = replace(new_state, tool_id=None, tool_name=None)
        return new_state, ContentBlockDelta(index=0, fragment=TextFragment(text=text))

    return state, Opaque(raw=chunk)


class StreamTranslator:
    """Owns the translation state of one backend stream.

    Create one instance when the backend stream begins and feed it every
    frame in arrival order. Instances are never shared between streams.
    """

    def __init__(self) -> None:
        self._state = StreamState()

    @property
    def state(self) -> StreamState:
        return self._state

    def next(self, chunk: bytes) -> StreamEvent:
        self._state, event = advance(self._state, chunk)
        return event
