"""FastAPI application for the msgbridge gateway."""

import logging
from typing import Any, Mapping, Optional

import httpx
from fastapi import FastAPI

from .api.routes import count_tokens_endpoint, health_check, messages_endpoint, not_found
from .config_loader import build_settings, load_config
from .core.orchestrator import Orchestrator
from .core.registry import set_orchestrator

logger = logging.getLogger("msgbridge")


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        config: Parsed configuration. Loaded from the default location when
            omitted and no orchestrator is given.
        transport: Optional httpx transport for backend calls.
        orchestrator: A ready orchestrator; takes precedence over ``config``.

    Returns:
        The configured FastAPI application instance.
    """
    if orchestrator is None:
        if config is None:
            config = load_config()
        settings = build_settings(config)
        orchestrator = Orchestrator(settings.backend, transport=transport)

    set_orchestrator(orchestrator)
    backend = orchestrator.backend
    logger.info(f"Gateway initialized with backend {backend.name}: {backend.base_url}")
    if backend.target_model:
        logger.info(f"Outbound model rewritten to {backend.target_model}")

    app = FastAPI(title="msgbridge")

    app.get("/health")(health_check)
    app.post("/v1/messages")(messages_endpoint)
    app.post("/v1/messages/count_tokens")(count_tokens_endpoint)
    app.add_exception_handler(404, not_found)

    logger.info("FastAPI application created")
    return app


__all__ = ["create_app"]
