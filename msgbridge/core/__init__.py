"""Core module initialization."""

from .backend import Backend, build_outbound_headers, format_httpx_error
from .exceptions import (
    ConfigurationError,
    GatewayError,
    SerializationError,
    UpstreamProtocolError,
    UpstreamTransportError,
    ValidationError,
)
from .registry import get_orchestrator, set_orchestrator
from .sse import SSEDecoder

__all__ = [
    "Backend",
    "ConfigurationError",
    "GatewayError",
    "SSEDecoder",
    "SerializationError",
    "UpstreamProtocolError",
    "UpstreamTransportError",
    "ValidationError",
    "build_outbound_headers",
    "format_httpx_error",
    "get_orchestrator",
    "set_orchestrator",
]
