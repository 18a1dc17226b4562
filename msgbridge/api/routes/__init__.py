"""API routes for the gateway."""

from .count_tokens import count_tokens_endpoint
from .health import health_check, not_found
from .messages import messages_endpoint

__all__ = [
    "count_tokens_endpoint",
    "health_check",
    "messages_endpoint",
    "not_found",
]
