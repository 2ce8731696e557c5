"""PAS-specific exceptions for error handling."""
from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category of a failure, stable across message wording changes."""
    VALIDATION = "validation"
    SESSION = "session"
    TRANSPORT = "transport"
    API = "api"
    DECODE = "decode"


class PASError(Exception):
    """Base exception for all PAS client operations.

    Attributes:
        kind: ErrorKind discriminating the failure category
        message: Human-readable description
    """
    kind: ErrorKind = ErrorKind.API

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PASValidationError(PASError, ValueError):
    """Required input missing or malformed; raised before any network call."""
    kind = ErrorKind.VALIDATION


class InvalidSessionError(PASError):
    """Session is absent or not authenticated."""
    kind = ErrorKind.SESSION

    def __init__(self, message: str = "valid session is required"):
        super().__init__(message)


class PASTransportError(PASError):
    """Connection, DNS or TLS failure from the underlying HTTP call."""
    kind = ErrorKind.TRANSPORT


class PASTimeoutError(PASTransportError):
    """Request exceeded its deadline and was aborted."""
    pass


class PASDecodeError(PASError):
    """Response body is not the expected JSON shape."""
    kind = ErrorKind.DECODE


class PASAPIError(PASError):
    """HTTP error from the PAS REST API.

    Attributes:
        status_code: HTTP status code
        endpoint: API endpoint that failed
        error_code: Upstream ErrorCode when the body carried one
        error_message: Upstream ErrorMsg/ErrorMessage when the body carried one
        body: Raw response text
    """
    kind = ErrorKind.API

    def __init__(
        self,
        status_code: int,
        endpoint: str,
        *,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        body: str = "",
        prefix: str = "PAS API error",
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        self.error_code = error_code
        self.error_message = error_message
        self.body = body
        if error_code or error_message:
            detail = f"{error_code or 'unknown'}: {error_message or ''}".rstrip()
        else:
            detail = body.strip()
        message = f"{prefix} [{status_code}] {endpoint}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AuthenticationError(PASAPIError):
    """Logon was rejected or produced no usable token."""

    def __init__(self, status_code: int, endpoint: str, **kwargs):
        kwargs.setdefault("prefix", "authentication failed")
        super().__init__(status_code, endpoint, **kwargs)
