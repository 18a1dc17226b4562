"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from .core.backend import Backend
from .core.exceptions import ConfigurationError

logger = logging.getLogger("msgbridge")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "INFO"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def default_config_path() -> str:
    return os.getenv("MSGBRIDGE_CONFIG") or DEFAULT_CONFIG_PATH


def resolve_env_path(config_path: Path, env_path: str | None = None) -> Path:
    """Resolve the env file path for a config file."""
    if env_path:
        return resolve_config_path(env_path)
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to MSGBRIDGE_CONFIG,
              or configs/config_default.yaml in the project root.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping.
    """
    if path is None:
        path = default_config_path()

    config_path = resolve_config_path(path)

    logger.info(f"Loading configuration from {config_path}")

    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise ConfigurationError(f"Config file not found: {config_path}")

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path, env_path)
        if env_file.exists():
            logger.info(f"Loading environment variables from {env_file}")
            env_values = load_env_values(env_file)

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports two formats:
    - ${VAR_NAME}: Braced format
    - $VAR_NAME: Simple format

    Values from ``env_values`` win over the process environment. Unset
    variables are left as their literal placeholder and logged.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):
        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"Check your .env file or export it in your shell. "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


@dataclass
class GatewaySettings:
    """Resolved process settings."""

    host: str
    port: int
    log_level: str
    backend: Backend


def _section(config: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    current: Any = config
    for key in keys:
        current = current.get(key) if isinstance(current, Mapping) else None
    return current if isinstance(current, Mapping) else {}


def resolve_server_address(config: Mapping[str, Any]) -> tuple[str, int]:
    """Resolve host and port. MSGBRIDGE_HOST / MSGBRIDGE_PORT take priority."""
    server_cfg = _section(config, "gateway_settings", "server")

    host = os.getenv("MSGBRIDGE_HOST")
    if host is None:
        host = str(server_cfg.get("host", DEFAULT_HOST))

    port_raw = os.getenv("MSGBRIDGE_PORT")
    if port_raw is None:
        port_raw = server_cfg.get("port", DEFAULT_PORT)
    try:
        port = int(port_raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid server port: {port_raw!r}") from exc

    return host, port


def build_settings(config: Mapping[str, Any]) -> GatewaySettings:
    """Validate a loaded config and build the process settings.

    Raises:
        ConfigurationError: If the backend section is incomplete or the API
            key is still an unresolved placeholder.
    """
    backend = Backend.from_config(config)
    if _ENV_PATTERN.fullmatch(backend.api_key):
        raise ConfigurationError(
            f"backend.api_key references an unset environment variable: {backend.api_key}"
        )

    host, port = resolve_server_address(config)
    log_level = str(
        _section(config, "gateway_settings", "logging").get("level", DEFAULT_LOG_LEVEL)
    )
    return GatewaySettings(host=host, port=port, log_level=log_level, backend=backend)


def load_settings(path: str | None = None, env_path: str | None = None) -> GatewaySettings:
    """Load the config file and build the process settings."""
    return build_settings(load_config(path, env_path=env_path))
