"""Token counting endpoint."""

import logging
import uuid

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from ...core.exceptions import ValidationError
from ...messages.token_counter import estimate_tokens
from ...types.messages import UnifiedRequest
from ..errors import gateway_error_response
from .messages import read_json_payload

logger = logging.getLogger("msgbridge")


async def count_tokens_endpoint(request: Request) -> Response:
    """POST /v1/messages/count_tokens - local input token estimate.

    The estimate is computed without contacting the backend, so the model
    name is optional here.
    """
    req_id = uuid.uuid4().hex[:8]

    payload = await read_json_payload(request, req_id)
    if isinstance(payload, Response):
        return payload

    try:
        unified = UnifiedRequest.from_payload(payload, require_model=False)
    except ValidationError as exc:
        logger.warning(f"[{req_id}] Invalid count_tokens request: {exc.message}")
        return gateway_error_response(exc)

    input_tokens = estimate_tokens(unified)
    logger.info(f"[{req_id}] Estimated {input_tokens} input tokens")
    return JSONResponse({"input_tokens": input_tokens})
