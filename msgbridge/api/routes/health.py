"""Health check and fallback endpoints."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse

logger = logging.getLogger("msgbridge")


async def health_check() -> PlainTextResponse:
    """GET /health"""
    return PlainTextResponse("OK")


async def not_found(request: Request, exc: Exception) -> JSONResponse:
    """Answer unknown routes with an OpenAI-style 404 body."""
    if logger.isEnabledFor(logging.DEBUG):
        headers_str = ", ".join(f"{k}: {v}" for k, v in request.headers.items())
        logger.debug(f"Unmatched request headers: {headers_str}")
    logger.warning(f"No route for {request.method} {request.url.path}")
    return JSONResponse(
        {
            "error": {
                "message": "Not Found",
                "type": "invalid_request_error",
                "param": None,
                "code": None,
            }
        },
        status_code=404,
    )
