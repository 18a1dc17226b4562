"""Backend configuration and utilities."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from .exceptions import ConfigurationError

logger = logging.getLogger("msgbridge")

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


@dataclass
class Backend:
    """The OpenAI-compatible backend requests are forwarded to.

    ``timeout`` is in seconds; None leaves the upstream call without a
    deadline.
    """

    name: str
    base_url: str
    api_key: str
    target_model: Optional[str] = None
    timeout: Optional[float] = None

    def build_url(self, path: str = CHAT_COMPLETIONS_PATH, query: str = "") -> str:
        """Build the full URL for a backend request."""
        base = self.base_url.rstrip("/")
        normalized_path = path or ""
        if not normalized_path.startswith("/"):
            normalized_path = f"/{normalized_path}"

        # api_base conventionally already ends in /v1
        if base.endswith("/v1") and normalized_path.startswith("/v1"):
            normalized_path = normalized_path[len("/v1"):] or "/"
        url = f"{base}{normalized_path}"
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"
        return url

    def build_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Backend":
        """Build the backend from the ``backend`` section of the config.

        Raises:
            ConfigurationError: If the base URL or API key is missing.
        """
        section = config.get("backend") or {}
        if not isinstance(section, Mapping):
            raise ConfigurationError("backend section must be a mapping")

        base_url = str(section.get("api_base") or "").strip()
        if not base_url:
            raise ConfigurationError("backend.api_base is required")

        api_key = str(section.get("api_key") or "").strip()
        if not api_key:
            raise ConfigurationError("backend.api_key is empty")

        target_model = section.get("target_model")
        target_model = str(target_model).strip() if target_model else None

        timeout_raw = section.get("timeout")
        try:
            timeout = float(timeout_raw) if timeout_raw is not None else None
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"backend.timeout must be a number: {timeout_raw!r}") from exc

        return cls(
            name=str(section.get("name") or "default"),
            base_url=base_url,
            api_key=api_key,
            target_model=target_model or None,
            timeout=timeout,
        )


def build_outbound_headers(backend_api_key: str) -> dict[str, str]:
    """Build headers for outbound requests to the backend."""
    headers: dict[str, str] = {"Content-Type": "application/json"}
    if backend_api_key:
        headers["Authorization"] = f"Bearer {backend_api_key}"
    # Explicitly request uncompressed responses
    headers["Accept-Encoding"] = "identity"
    return headers


def format_httpx_error(exc: Any, backend: Backend, url: Optional[str] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    request = None
    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when the request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException):
        parts.append(f"timeout={backend.timeout}s")

    return "; ".join(parts)


def mask_secret(value: str) -> str:
    """Mask an API key for display, keeping the last four characters."""
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return f"{'*' * (len(value) - 4)}{value[-4:]}"
