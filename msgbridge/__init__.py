"""msgbridge - Messages API to Chat Completions gateway

Accepts requests in the Messages wire format, forwards them to an
OpenAI-compatible Chat Completions backend and translates the (possibly
streamed) responses back.

This module provides:
- Request and response translators between the two wire formats
- A stream translator that re-emits backend chunks as Messages events
- A local input token estimator
- A FastAPI application exposing /v1/messages

Example:
    >>> from msgbridge.main import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=8080)
"""

from .config_loader import load_config, load_settings
from .core import Backend, GatewayError
from .logging import setup_logging
from .main import create_app

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "GatewayError",
    "create_app",
    "load_config",
    "load_settings",
    "setup_logging",
]
