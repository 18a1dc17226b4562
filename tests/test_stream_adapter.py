"""Tests for the Chat Completions -> Messages stream adapter."""

import json
import logging

from msgbridge.messages.stream_adapter import StreamState, StreamTranslator, advance
from msgbridge.types import (
    ContentBlockDelta,
    MessageStart,
    MessageStop,
    Opaque,
    TextFragment,
    ToolFragment,
    Usage,
    UsageFinal,
)


def _frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def _delta(delta: dict, finish_reason=None, chunk_id: str = "c1") -> bytes:
    choice = {"index": 0, "delta": delta}
    if finish_reason is not None:
        choice["finish_reason"] = finish_reason
    return _frame({"id": chunk_id, "object": "chat.completion.chunk", "choices": [choice]})


def _tool_delta(index=0, call_id=None, name=None, arguments=None, content=None) -> bytes:
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    call = {"index": index, "function": function}
    if call_id is not None:
        call["id"] = call_id
        call["type"] = "function"
    delta = {"tool_calls": [call]}
    if content is not None:
        delta["content"] = content
    return _delta(delta)


class TestStreamTranslator:
    """Tests for the stream state machine."""

    def test_text_stream(self):
        """Test role, two text deltas and a finish reason."""
        translator = StreamTranslator()
        chunks = [
            _delta({"role": "assistant"}),
            _delta({"content": "Hello"}),
            _delta({"content": " world"}),
            _delta({}, finish_reason="stop"),
        ]
        events = [translator.next(chunk) for chunk in chunks]
        assert events == [
            MessageStart(id="c1", role="assistant"),
            ContentBlockDelta(index=0, fragment=TextFragment(text="Hello")),
            ContentBlockDelta(index=0, fragment=TextFragment(text=" world")),
            MessageStop(stop_reason="stop"),
        ]
        assert translator.state.phase == "done"

    def test_usage_chunk(self):
        """Test an empty choice list with usage yields the final usage event."""
        translator = StreamTranslator()
        event = translator.next(
            _frame({"id": "c1", "choices": [], "usage": {"prompt_tokens": 10, "completion_tokens": 5}})
        )
        assert event == UsageFinal(usage=Usage(input_tokens=10, output_tokens=5))
        assert translator.state.phase == "done"

    def test_done_sentinel_passed_through(self):
        """Test the [DONE] sentinel is an opaque passthrough."""
        translator = StreamTranslator()
        event = translator.next(b"data: [DONE]\n\n")
        assert event == Opaque(raw=b"data: [DONE]\n\n")
        assert translator.state.phase == "done"

    def test_undecodable_chunk_passed_through(self):
        """Test malformed JSON degrades to an opaque event."""
        translator = StreamTranslator()
        raw = b"data: {invalid json\n\n"
        assert translator.next(raw) == Opaque(raw=raw)
        assert translator.state == StreamState()

    def test_non_finite_numbers_passed_through(self):
        """Test chunks carrying NaN or Infinity degrade to opaque events."""
        translator = StreamTranslator()
        usage = b'data: {"id":"c1","choices":[],"usage":{"prompt_tokens":Infinity,"completion_tokens":5}}\n\n'
        assert translator.next(usage) == Opaque(raw=usage)
        delta = b'data: {"id":"c1","choices":[{"index":0,"delta":{"content":"x"}}],"score":NaN}\n\n'
        assert translator.next(delta) == Opaque(raw=delta)
        assert translator.state == StreamState()

    def test_comment_and_empty_delta_passed_through(self):
        """Test frames without usable content are opaque."""
        translator = StreamTranslator()
        assert translator.next(b": keep-alive\n\n") == Opaque(raw=b": keep-alive\n\n")
        empty = _delta({})
        assert translator.next(empty) == Opaque(raw=empty)
        no_usage = _frame({"id": "c1", "choices": []})
        assert translator.next(no_usage) == Opaque(raw=no_usage)

    def test_only_first_role_starts_message(self):
        """Test later role fields are ignored."""
        translator = StreamTranslator()
        assert isinstance(translator.next(_delta({"role": "assistant"})), MessageStart)
        event = translator.next(_delta({"role": "assistant", "content": "Hi"}))
        assert event == ContentBlockDelta(index=0, fragment=TextFragment(text="Hi"))
        repeat = _delta({"role": "assistant"})
        assert translator.next(repeat) == Opaque(raw=repeat)

    def test_tool_call_stream(self):
        """Test tool call fragments are forwarded raw and the call is tracked."""
        translator = StreamTranslator()
        translator.next(_delta({"role": "assistant"}))
        first = translator.next(_tool_delta(call_id="call_1", name="calc", arguments=""))
        second = translator.next(_tool_delta(arguments='{"x": '))
        third = translator.next(_tool_delta(arguments="1}"))

        assert first == ContentBlockDelta(
            index=0, fragment=ToolFragment(index=0, id="call_1", name="calc", arguments="")
        )
        assert second == ContentBlockDelta(index=0, fragment=ToolFragment(index=0, arguments='{"x": '))
        assert third.fragment.arguments == "1}"
        assert translator.state.block_kind == "tool_use"
        assert translator.state.tool_id == "call_1"
        assert translator.state.tool_name == "calc"

        stop = translator.next(_delta({}, finish_reason="tool_calls"))
        assert stop == MessageStop(stop_reason="tool_calls")

    def test_invalid_partial_arguments_not_validated(self):
        """Test argument fragments are never parsed at this stage."""
        translator = StreamTranslator()
        event = translator.next(_tool_delta(call_id="c", name="n", arguments="{not json"))
        assert event.fragment.arguments == "{not json"

    def test_text_after_tool_switches_block_kind(self):
        """Test the active block kind follows the latest delta."""
        translator = StreamTranslator()
        translator.next(_tool_delta(call_id="c", name="n", arguments="{}"))
        assert translator.state.block_kind == "tool_use"
        translator.next(_delta({"content": "after"}))
        assert translator.state.block_kind == "text"
        assert translator.state.tool_id is None

    def test_chunk_with_text_and_tool_keeps_tool_fragment(self, caplog):
        """Test a chunk carrying text and a tool call emits only the tool fragment."""
        translator = StreamTranslator()
        with caplog.at_level(logging.WARNING, logger="msgbridge"):
            event = translator.next(
                _tool_delta(call_id="c", name="n", arguments="{}", content="lost text")
            )
        assert isinstance(event.fragment, ToolFragment)
        assert event.fragment.id == "c"
        assert "dropping 9 characters of text" in caplog.text

    def test_multiple_tool_calls_in_one_chunk_uses_last(self):
        """Test the last tool call entry of a chunk wins."""
        translator = StreamTranslator()
        chunk = _delta(
            {
                "tool_calls": [
                    {"index": 0, "id": "a", "function": {"name": "f", "arguments": ""}},
                    {"index": 1, "id": "b", "function": {"name": "g", "arguments": ""}},
                ]
            }
        )
        event = translator.next(chunk)
        assert event.fragment.id == "b"
        assert event.fragment.index == 1

    def test_finish_reason_takes_precedence(self):
        """Test a finish reason wins over content in the same chunk."""
        translator = StreamTranslator()
        event = translator.next(_delta({"role": "assistant", "content": "x"}, finish_reason="length"))
        assert event == MessageStop(stop_reason="length")

    def test_role_takes_precedence_over_text(self):
        """Test the first role chunk starts the message even with content."""
        translator = StreamTranslator()
        event = translator.next(_delta({"role": "assistant", "content": "Hi"}))
        assert event == MessageStart(id="c1", role="assistant")

    def test_chunks_after_done_still_processed(self):
        """Test the done phase does not gate later chunks."""
        translator = StreamTranslator()
        translator.next(_delta({}, finish_reason="stop"))
        event = translator.next(_delta({"content": "late"}))
        assert event == ContentBlockDelta(index=0, fragment=TextFragment(text="late"))

    def test_one_event_per_chunk(self):
        """Test every chunk yields exactly one event."""
        translator = StreamTranslator()
        chunks = [
            b": comment\n\n",
            _delta({"role": "assistant"}),
            _delta({"content": "a"}),
            _tool_delta(call_id="c", name="n", arguments="{}"),
            b"data: {oops\n\n",
            _delta({}, finish_reason="stop"),
            _frame({"choices": [], "usage": {"prompt_tokens": 1, "completion_tokens": 1}}),
            b"data: [DONE]\n\n",
        ]
        events = [translator.next(chunk) for chunk in chunks]
        assert len(events) == len(chunks)
        assert all(event is not None for event in events)


class TestAdvance:
    """Tests for the pure transition function."""

    def test_does_not_mutate_input_state(self):
        """Test advance returns a new state and leaves the old one intact."""
        state = StreamState()
        new_state, event = advance(state, _delta({"role": "assistant"}))
        assert state == StreamState()
        assert new_state.phase == "started"
        assert new_state.message_started is True
        assert isinstance(event, MessageStart)

    def test_phase_progression(self):
        """Test init -> started -> streaming -> done."""
        state = StreamState()
        phases = []
        for chunk in (
            _delta({"role": "assistant"}),
            _delta({"content": "x"}),
            _delta({}, finish_reason="stop"),
        ):
            state, _ = advance(state, chunk)
            phases.append(state.phase)
        assert phases == ["started", "streaming", "done"]

    def test_independent_streams_do_not_share_state(self):
        """Test two translators keep separate state."""
        first = StreamTranslator()
        second = StreamTranslator()
        first.next(_delta({"role": "assistant"}))
        assert second.state == StreamState()
        assert isinstance(second.next(_delta({"role": "assistant"})), MessageStart)
