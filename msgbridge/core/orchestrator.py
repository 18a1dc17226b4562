"""Drives one backend call per inbound Messages request.

The orchestrator composes request translation, the HTTP call to the backend
and either response translation or stream translation. Every failure leaves
as one of the gateway exceptions:

- ``UpstreamTransportError``: the backend could not be reached or the
  connection broke.
- ``UpstreamProtocolError``: the backend answered with a non-success status
  or a body that is not a JSON object.
- ``SerializationError``: the outbound request could not be encoded.

There is no retry loop and no backoff.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import AsyncIterator, Optional

import httpx

from ..messages.stream_adapter import StreamTranslator
from ..messages.translator import translate_request, translate_response
from ..types.chat import BackendRequest
from ..types.events import StreamEvent
from ..types.messages import UnifiedRequest, UnifiedResponse
from .backend import Backend, build_outbound_headers, format_httpx_error
from .exceptions import SerializationError, UpstreamProtocolError, UpstreamTransportError
from .sse import SSEDecoder

logger = logging.getLogger("msgbridge")

# Cap on how much of an upstream error body is kept on the exception
MAX_ERROR_BODY_CHARS = 2000


def encode_backend_request(request: BackendRequest) -> bytes:
    """Encode the outbound request body.

    Raises:
        SerializationError: If the request holds values JSON cannot encode.
    """
    try:
        return json.dumps(request.to_dict(), ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to encode backend request: {exc}") from exc


def _error_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")[:MAX_ERROR_BODY_CHARS]


class UpstreamStream:
    """An open streaming response from the backend.

    The backend status has already been checked when an instance exists.
    Iterate ``events()`` to receive translated events; ``aclose()`` releases
    the response and its client and is safe to call more than once.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        backend: Backend,
        url: str,
        request_id: str = "",
    ) -> None:
        self._client = client
        self._response = response
        self._backend = backend
        self._url = url
        self._request_id = request_id
        self._closed = False
        self.translator = StreamTranslator()

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield one event per backend frame, in arrival order.

        Raises:
            UpstreamTransportError: If the connection breaks mid-stream.
        """
        decoder = SSEDecoder()
        frame_count = 0
        try:
            async for chunk in self._response.aiter_bytes():
                for frame in decoder.feed(chunk):
                    frame_count += 1
                    yield self.translator.next(frame)
            leftover = decoder.flush()
            if leftover is not None:
                frame_count += 1
                yield self.translator.next(leftover)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, self._backend, self._url)
            logger.error(f"[{self._request_id}] Stream from {self._url} failed: {detail}")
            raise UpstreamTransportError(detail) from exc
        finally:
            logger.debug(
                f"[{self._request_id}] Stream completed for {self._url}, total frames: {frame_count}"
            )
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"[{self._request_id}] Closing stream for {self._url}")
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class Orchestrator:
    """Sends translated requests to a single backend.

    Args:
        backend: The backend every request goes to.
        transport: Optional httpx transport, e.g. ``httpx.ASGITransport``
            around an in-process fake backend.
    """

    def __init__(
        self,
        backend: Backend,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.backend = backend
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.backend.build_timeout(),
            http2=False,
            transport=self.transport,
        )

    def _prepare(self, request: UnifiedRequest) -> tuple[str, dict[str, str], bytes]:
        backend_request = translate_request(request)
        if self.backend.target_model:
            backend_request = replace(backend_request, model=self.backend.target_model)
        url = self.backend.build_url()
        headers = build_outbound_headers(self.backend.api_key)
        return url, headers, encode_backend_request(backend_request)

    async def complete(self, request: UnifiedRequest, request_id: str = "") -> UnifiedResponse:
        """Run a non-streamed request.

        Raises:
            ValidationError: If the request cannot be translated.
            SerializationError: If the outbound body cannot be encoded.
            UpstreamTransportError: If the backend cannot be reached.
            UpstreamProtocolError: If the backend answers with an error status
                or an unusable body.
        """
        url, headers, body = self._prepare(request)
        logger.info(f"[{request_id}] Calling backend {self.backend.name} at {url}")

        try:
            async with self._client() as client:
                resp = await client.post(url, headers=headers, content=body)
        except httpx.HTTPError as exc:
            detail = format_httpx_error(exc, self.backend, url)
            logger.error(f"[{request_id}] Backend {self.backend.name} unreachable: {detail}")
            raise UpstreamTransportError(detail) from exc

        logger.debug(f"[{request_id}] Received response from {url}: status {resp.status_code}")

        if resp.status_code < 200 or resp.status_code >= 300:
            text = _error_text(resp.content)
            logger.error(
                f"[{request_id}] Backend {self.backend.name} returned status {resp.status_code}: {text[:200]}"
            )
            raise UpstreamProtocolError(
                f"Backend returned status {resp.status_code}",
                upstream_status=resp.status_code,
                upstream_body=text,
            )

        try:
            payload = json.loads(resp.content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error(f"[{request_id}] Backend {self.backend.name} returned a non-JSON body")
            raise UpstreamProtocolError(
                f"Backend returned invalid JSON: {exc}",
                upstream_status=resp.status_code,
                upstream_body=_error_text(resp.content),
            ) from exc

        if not isinstance(payload, dict):
            raise UpstreamProtocolError(
                "Backend response body is not a JSON object",
                upstream_status=resp.status_code,
                upstream_body=_error_text(resp.content),
            )

        return translate_response(payload)

    async def open_stream(self, request: UnifiedRequest, request_id: str = "") -> UpstreamStream:
        """Open a streamed request and check the backend status.

        Nothing has been sent to the client when this returns or raises, so
        errors raised here can still become ordinary error responses.

        Raises:
            ValidationError: If the request cannot be translated.
            SerializationError: If the outbound body cannot be encoded.
            UpstreamTransportError: If the backend cannot be reached.
            UpstreamProtocolError: If the backend answers with an error status.
        """
        url, headers, body = self._prepare(request)
        logger.info(f"[{request_id}] Opening stream to backend {self.backend.name} at {url}")

        client = self._client()
        try:
            upstream_request = client.build_request("POST", url, headers=headers, content=body)
            resp = await client.send(upstream_request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            detail = format_httpx_error(exc, self.backend, url)
            logger.error(f"[{request_id}] Failed to send streaming request to {url}: {detail}")
            raise UpstreamTransportError(detail) from exc
        except BaseException:
            await client.aclose()
            raise

        if resp.status_code < 200 or resp.status_code >= 300:
            try:
                data = await resp.aread()
            except httpx.HTTPError:
                data = b""
            finally:
                await resp.aclose()
                await client.aclose()
            text = _error_text(data)
            logger.error(
                f"[{request_id}] Streaming request to {url} returned status {resp.status_code}: {text[:200]}"
            )
            raise UpstreamProtocolError(
                f"Backend returned status {resp.status_code}",
                upstream_status=resp.status_code,
                upstream_body=text,
            )

        logger.info(f"[{request_id}] Streaming request to {url} successful, status {resp.status_code}")
        return UpstreamStream(client, resp, self.backend, url, request_id=request_id)
