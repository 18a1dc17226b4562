"""Core exceptions for the gateway."""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors.

    ``status_code`` and ``error_type`` describe how the error is surfaced to
    the client in the Messages error envelope.
    """

    status_code = 500
    error_type = "api_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GatewayError):
    """Raised when an inbound request is structurally unusable."""

    status_code = 400
    error_type = "invalid_request_error"

    def __init__(
        self,
        message: str,
        code: str = "invalid_request",
        param: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.param = param


class UpstreamTransportError(GatewayError):
    """Raised when the backend cannot be reached (connect, read or write failure)."""

    status_code = 502


class UpstreamProtocolError(GatewayError):
    """Raised when the backend answers with an error status or an unusable body.

    The backend status and body text are kept for diagnostics.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class SerializationError(GatewayError):
    """Raised when an outbound payload cannot be encoded. Always a bug."""

    status_code = 500


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""
    pass
