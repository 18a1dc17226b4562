"""API module for the gateway."""

from .routes import count_tokens_endpoint, health_check, messages_endpoint, not_found

__all__ = [
    "count_tokens_endpoint",
    "health_check",
    "messages_endpoint",
    "not_found",
]
