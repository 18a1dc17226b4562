"""Messages API endpoint."""

import asyncio
import logging
import time
import uuid
from typing import AsyncIterator

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from ...core.exceptions import GatewayError, SerializationError
from ...core.orchestrator import UpstreamStream
from ...core.registry import get_orchestrator
from ...messages.translator import decode_json
from ...types.events import encode_event, format_sse_event
from ...types.messages import UnifiedRequest
from ..errors import anthropic_error_response, error_body, gateway_error_response

logger = logging.getLogger("msgbridge")


async def read_json_payload(request: Request, req_id: str):
    """Read and decode the request body.

    Returns the decoded payload, or a ready error ``Response`` when the body
    is unusable.
    """
    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning(f"[{req_id}] ClientDisconnect while reading the request body")
        return Response(status_code=499)  # Client Closed Request

    try:
        return decode_json(body or b"{}")
    except ValueError:
        logger.warning(f"[{req_id}] Invalid JSON payload ({len(body)} bytes)")
        return anthropic_error_response("Invalid JSON payload", error_code="invalid_json")


def _error_frame(exc: GatewayError) -> bytes:
    return format_sse_event("error", {"type": "error", "error": error_body(exc)})


async def _stream_events(stream: UpstreamStream, req_id: str, start_time: float) -> AsyncIterator[bytes]:
    """Encode translated events as downstream SSE frames.

    A failure after the first byte cannot change the HTTP status any more,
    so it is reported as one final ``event: error`` frame.
    """
    event_count = 0
    try:
        async for event in stream.events():
            event_count += 1
            yield encode_event(event)
    except SerializationError as exc:
        logger.exception(f"[{req_id}] Failed to encode stream event: {exc.message}")
        yield _error_frame(exc)
    except GatewayError as exc:
        logger.error(f"[{req_id}] Stream aborted after {event_count} events: {exc.message}")
        yield _error_frame(exc)
    except asyncio.CancelledError:
        logger.info(f"[{req_id}] Stream cancelled by client after {event_count} events")
        raise
    finally:
        await stream.aclose()
        elapsed = time.perf_counter() - start_time
        logger.info(f"[{req_id}] Stream finished: {event_count} events in {elapsed:.3f}s")


async def messages_endpoint(request: Request) -> Response:
    """POST /v1/messages - Messages API compatible endpoint."""
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()

    client_host = request.client.host if request.client else "unknown"
    logger.info(
        f"[{req_id}] Messages API request from {client_host}, "
        f"Content-Length: {request.headers.get('content-length', 'not-set')}"
    )

    payload = await read_json_payload(request, req_id)
    if isinstance(payload, Response):
        return payload

    orchestrator = get_orchestrator()

    try:
        unified = UnifiedRequest.from_payload(payload)
        if unified.stream:
            stream = await orchestrator.open_stream(unified, request_id=req_id)
        else:
            result = await orchestrator.complete(unified, request_id=req_id)
            body = result.to_dict()
    except SerializationError as exc:
        logger.exception(f"[{req_id}] Failed to encode backend request: {exc.message}")
        return gateway_error_response(exc)
    except GatewayError as exc:
        elapsed = time.perf_counter() - start_time
        log = logger.warning if exc.status_code < 500 else logger.error
        log(f"[{req_id}] Request failed after {elapsed:.3f}s: {exc.__class__.__name__}: {exc.message}")
        return gateway_error_response(exc)

    if unified.stream:
        elapsed = time.perf_counter() - start_time
        logger.info(
            f"[{req_id}] Starting streaming response for {unified.model} "
            f"(backend status {stream.status_code}), setup took {elapsed:.3f}s"
        )
        return StreamingResponse(
            _stream_events(stream, req_id, start_time),
            media_type="text/event-stream",
            headers={"cache-control": "no-cache"},
            background=BackgroundTask(stream.aclose),
        )

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"[{req_id}] Completed non-streaming response for {unified.model}, took {elapsed:.3f}s"
    )
    try:
        return JSONResponse(body)
    except (TypeError, ValueError) as exc:
        error = SerializationError(f"Failed to encode response: {exc}")
        logger.exception(f"[{req_id}] {error.message}")
        return gateway_error_response(error)
