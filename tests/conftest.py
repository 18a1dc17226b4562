"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from msgbridge.core.backend import Backend
from msgbridge.core.orchestrator import Orchestrator
from msgbridge.main import create_app
from msgbridge.testing import FakeUpstream

UPSTREAM_BASE_URL = "http://upstream.local/v1"


# =============================================================================
# Builders
# =============================================================================


def build_gateway_config(
    base_url: str = UPSTREAM_BASE_URL,
    *,
    api_key: str = "test-key",
    target_model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """Build a config dict for gateway testing."""
    return {
        "gateway_settings": {
            "server": {"host": "127.0.0.1", "port": 8080},
            "logging": {"level": "DEBUG"},
        },
        "backend": {
            "api_base": base_url,
            "api_key": api_key,
            "target_model": target_model,
            "timeout": timeout,
        },
    }


def build_messages_request(
    text: str = "Hi",
    *,
    model: str = "claude-test",
    stream: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """Build a minimal Messages API request body."""
    payload: dict[str, Any] = {
        "model": model,
        "max_tokens": 64,
        "messages": [{"role": "user", "content": text}],
    }
    if stream:
        payload["stream"] = True
    payload.update(extra)
    return payload


def make_client(app: Any) -> httpx.AsyncClient:
    """Create an in-process client for an ASGI app."""
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://gateway.local",
    )


def parse_sse_frames(text: str) -> list[dict[str, Any]]:
    """Split an SSE body into frames of {"event": ..., "data": ...}.

    ``data`` is left as the raw string; callers decode JSON where expected.
    """
    frames = []
    for raw in text.split("\n\n"):
        if not raw.strip():
            continue
        event = None
        data_lines = []
        for line in raw.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data_lines.append(line[len("data: "):])
        frames.append({"event": event, "data": "\n".join(data_lines)})
    return frames


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> Backend:
    return Backend(name="test", base_url=UPSTREAM_BASE_URL, api_key="test-key")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def gateway(upstream: FakeUpstream) -> tuple[FakeUpstream, Any]:
    """Create a gateway app wired to a fake upstream.

    Returns:
        Tuple of (FakeUpstream, FastAPI app)

    Usage:
        async def test_messages(gateway):
            upstream, app = gateway
            upstream.enqueue_chat_response("Hello")
            async with make_client(app) as client:
                ...
    """
    app = create_app(build_gateway_config(), transport=upstream.transport)
    return upstream, app


@pytest.fixture
def orchestrator(backend: Backend, upstream: FakeUpstream) -> Orchestrator:
    return Orchestrator(backend, transport=upstream.transport)
