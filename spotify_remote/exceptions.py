"""Custom exceptions for the Spotify remote session."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error results."""

    SPOTIFY_REMOTE_ERROR = "SPOTIFY_REMOTE_ERROR"

    # HTTP layer
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    STATUS_ERROR = "STATUS_ERROR"

    # Response content
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    # Authentication
    AUTH_NOT_READY = "AUTH_NOT_READY"

    # Configuration
    CONFIG_ERROR = "CONFIG_ERROR"


class SpotifyRemoteException(Exception):
    """Base exception for session errors.

    All custom exceptions inherit from this class so callers can catch
    every session failure with a single except clause.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SPOTIFY_REMOTE_ERROR,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize session exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code reported by the server, if any
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class TransportException(SpotifyRemoteException):
    """Connection, DNS or TLS failure, or no response within the timeout."""

    def __init__(self, message: str = "HTTP transport failed", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.TRANSPORT_ERROR, details=details)


class StatusException(SpotifyRemoteException):
    """Server answered with a status outside the accepted set."""

    def __init__(self, message: str, status_code: int | None = None, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.STATUS_ERROR, status_code=status_code, details=details)


class MalformedResponseException(SpotifyRemoteException):
    """Body is not JSON or lacks an expected field."""

    def __init__(self, message: str = "Malformed response", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.MALFORMED_RESPONSE, details=details)


class AuthNotReadyException(SpotifyRemoteException):
    """No access token has been obtained yet."""

    def __init__(self, message: str = "No access token available", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.AUTH_NOT_READY, details=details)


class ConfigurationException(SpotifyRemoteException):
    """Configuration errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.CONFIG_ERROR, details=details)
