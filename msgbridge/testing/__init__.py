"""Testing utilities for in-process gateway simulations."""

from .fake_upstream import (
    FakeUpstream,
    ScriptedStreamTransport,
    UpstreamResponse,
    build_chat_response,
    build_chat_stream_chunks,
    encode_sse_data,
)

__all__ = [
    "FakeUpstream",
    "ScriptedStreamTransport",
    "UpstreamResponse",
    "build_chat_response",
    "build_chat_stream_chunks",
    "encode_sse_data",
]
