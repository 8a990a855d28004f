"""Custom exception hierarchy for pyschoolbus."""

from __future__ import annotations


class SchoolBusError(Exception):
    """Base exception for all pyschoolbus errors."""


class SchoolBusConfigError(SchoolBusError):
    """Invalid or missing configuration."""


class SchoolBusTransportError(SchoolBusError):
    """HTTP-level failure (network, 5xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class SchoolBusApiError(SchoolBusError):
    """Backend rejected the request or answered with an unusable record."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class SchoolBusAuthenticationError(SchoolBusApiError):
    """Caller identity was refused (HTTP 401/403)."""


class SchoolBusNotFoundError(SchoolBusApiError):
    """Record or resource does not exist (HTTP 404)."""


class SchoolBusEndpointNotSupportedError(SchoolBusApiError):
    """The configured path convention has no endpoint for this operation.

    The verb-style backend, for example, exposes no write endpoints for
    trips or notifications.  Consumers should not retry.
    """
