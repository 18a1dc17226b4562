"""Messages API error envelopes."""

import logging
from typing import Any, Optional

from fastapi.responses import JSONResponse

from ..core.exceptions import GatewayError, UpstreamProtocolError, ValidationError

logger = logging.getLogger("msgbridge")


def anthropic_error_response(
    message: str,
    *,
    error_type: str = "invalid_request_error",
    status_code: int = 400,
    error_code: Optional[str] = None,
    param: Optional[str] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"type": error_type, "message": message}
    if error_code:
        error["code"] = error_code
    if param:
        error["param"] = param
    payload = {"type": "error", "error": error}
    return JSONResponse(payload, status_code=status_code)


def error_body(exc: GatewayError) -> dict[str, Any]:
    """Build the ``error`` object for a gateway exception."""
    error: dict[str, Any] = {"type": exc.error_type, "message": exc.message}
    if isinstance(exc, ValidationError):
        error["code"] = exc.code
        if exc.param:
            error["param"] = exc.param
    elif isinstance(exc, UpstreamProtocolError):
        if exc.upstream_status is not None:
            error["upstream_status"] = exc.upstream_status
        if exc.upstream_body:
            error["upstream_error"] = exc.upstream_body
    return error


def gateway_error_response(exc: GatewayError) -> JSONResponse:
    """Render a gateway exception as a Messages API error response."""
    return JSONResponse({"type": "error", "error": error_body(exc)}, status_code=exc.status_code)
