"""Command line interface for the msgbridge gateway."""

import argparse
import os
import sys
from typing import Optional, Sequence

import httpx

from .config_loader import build_settings, load_config
from .core.backend import mask_secret
from .core.exceptions import ConfigurationError

DEFAULT_HEALTH_URL = "http://127.0.0.1:8080"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="msgbridge",
        description="Messages API to Chat Completions gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Start the gateway with the default config:
        msgbridge start

    Start on another port with a specific config:
        msgbridge start --port 9000 --config configs/local.yaml

    Check a running gateway:
        msgbridge health --url http://127.0.0.1:8080

    Show the resolved configuration:
        msgbridge config
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Run the gateway server")
    start.add_argument("--host", help="Bind address (overrides config)")
    start.add_argument("--port", type=int, help="Bind port (overrides config)")
    start.add_argument("--config", help="Path to the YAML config file")

    health = subparsers.add_parser("health", help="Check a running gateway")
    health.add_argument(
        "--url",
        default=DEFAULT_HEALTH_URL,
        help=f"Base URL of the gateway (default: {DEFAULT_HEALTH_URL})",
    )
    health.add_argument(
        "--timeout", type=float, default=5.0, help="Request timeout in seconds"
    )

    config = subparsers.add_parser("config", help="Print the resolved configuration")
    config.add_argument("--config", help="Path to the YAML config file")

    return parser.parse_args(argv)


def run_start(args: argparse.Namespace) -> int:
    import uvicorn

    from .logging import setup_logging
    from .main import create_app

    config = load_config(args.config)
    settings = build_settings(config)
    logger = setup_logging(settings.log_level)

    host = args.host or settings.host
    port = args.port or settings.port

    app = create_app(config)
    logger.info(f"msgbridge listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


def run_health(args: argparse.Namespace) -> int:
    url = f"{args.url.rstrip('/')}/health"
    try:
        response = httpx.get(url, timeout=args.timeout)
    except httpx.HTTPError as exc:
        print(f"Health check failed: {exc.__class__.__name__}: {exc}")
        return 1
    if 200 <= response.status_code < 300:
        print(f"OK ({response.status_code})")
        return 0
    print(f"Unhealthy: {url} returned status {response.status_code}")
    return 1


def run_config(args: argparse.Namespace) -> int:
    settings = build_settings(load_config(args.config))
    backend = settings.backend
    print(f"server: http://{settings.host}:{settings.port}")
    print(f"log_level: {settings.log_level}")
    print(f"backend.api_base: {backend.base_url}")
    print(f"backend.api_key: {mask_secret(backend.api_key)}")
    print(f"backend.target_model: {backend.target_model or '(request model)'}")
    print(f"backend.timeout: {backend.timeout if backend.timeout is not None else 'none'}")
    return 0


COMMANDS = {
    "start": run_start,
    "health": run_health,
    "config": run_config,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return COMMANDS[args.command](args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
