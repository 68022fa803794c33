"""
Exception classes for the TicketLogin client.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class TicketLoginError(Exception):
    """Base exception for TicketLogin errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.status_code = status_code


class AuthFailed(TicketLoginError):
    """Raised when a ticket request fails.

    Covers rejected credentials or proofs, backend errors and malformed
    responses alike.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, "AUTH_FAILED", details, status_code)


class NetworkError(AuthFailed):
    """Raised when a network error occurs."""

    def __init__(
        self, message: str = "Network error", details: Any | None = None
    ) -> None:
        super().__init__(message, details)
        self.code = "NETWORK_ERROR"


class TimeoutError(AuthFailed):  # noqa: A001
    """Raised when a request times out."""

    def __init__(
        self, message: str = "Request timeout", details: Any | None = None
    ) -> None:
        super().__init__(message, details)
        self.code = "TIMEOUT_ERROR"


class MalformedChallenge(TicketLoginError):
    """Raised when a ticket carries an undecodable or invalid challenge."""

    def __init__(
        self, message: str = "Malformed second factor challenge", details: Any | None = None
    ) -> None:
        super().__init__(message, "MALFORMED_CHALLENGE", details)


class NoMethodAvailable(TicketLoginError):
    """Raised when a challenge has no populated second factor."""

    def __init__(
        self, message: str = "No second factor method available", details: Any | None = None
    ) -> None:
        super().__init__(message, "NO_METHOD_AVAILABLE", details)


class WebAuthnFailureCause(str, Enum):
    """Why a hardware credential request failed."""

    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    DEVICE_ERROR = "device-error"
    DENIED = "denied"


class WebAuthnFailed(TicketLoginError):
    """Raised when the hardware credential request does not yield an assertion."""

    def __init__(
        self,
        cause: WebAuthnFailureCause,
        message: str | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message or f"WebAuthn request failed: {cause.value}",
            "WEBAUTHN_FAILED",
            details,
        )
        self.cause = cause


class LocalValidationFailed(TicketLoginError):
    """Raised when second factor input does not have the expected shape."""

    def __init__(self, method: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Invalid {method} input",
            "LOCAL_VALIDATION_FAILED",
        )
        self.method = method


class NegotiationCancelled(TicketLoginError):
    """Raised when the second factor dialog closes without a proof."""

    def __init__(self, message: str = "Second factor negotiation cancelled") -> None:
        super().__init__(message, "NEGOTIATION_CANCELLED")


class NegotiationStateError(TicketLoginError):
    """Raised for operations the negotiation state does not allow."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message, "NEGOTIATION_STATE_ERROR", details)


def create_error_from_response(
    status_code: int,
    default_message: str | None = None,
) -> AuthFailed:
    """Create an error for a non-success ticket endpoint status.

    The endpoint returns no structured error body, so only the status code
    is kept.
    """
    message = default_message or f"Ticket request failed with status {status_code}"
    return AuthFailed(message, {"status_code": status_code}, status_code)
