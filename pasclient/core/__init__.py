"""PAS REST API client library.

This package provides a testable interface to the CyberArk Privileged Access
Security session lifecycle.

Architecture:
- client.py: HTTP client with TLS options and error mapping
- session.py: Session handle and the validity gate used by every operation
- authentication.py: Logon/logoff flow, server info and component health
- ccp.py: Central Credential Provider retrieval
- types.py: FlexibleID/FlexibleBool scalar decoders
- exceptions.py: Typed exceptions with a discriminable ErrorKind

Usage:
    from pasclient.core import Credentials, SessionOptions, new_session, close_session

    session = new_session(SessionOptions(
        base_url="https://pvwa.example.com/PasswordVault/API",
        credentials=Credentials("admin", "secret"),
    ))
    try:
        health = get_components_health(session)
    finally:
        close_session(session)
"""
from .client import (
    PASClient,
    PASResponse,
    REQUEST_TIMEOUT,
    parse_error_envelope,
    raise_for_api_error,
)
from .exceptions import (
    ErrorKind,
    PASError,
    PASValidationError,
    InvalidSessionError,
    PASTransportError,
    PASTimeoutError,
    PASAPIError,
    AuthenticationError,
    PASDecodeError,
)
from .session import (
    Session,
    require_session,
    require_valid_session,
)
from .authentication import (
    AuthMethod,
    AuthenticationService,
    Credentials,
    SessionOptions,
    SAMLSessionOptions,
    LoginRequest,
    SAMLLoginRequest,
    ServerInfo,
    ComponentHealth,
    new_session,
    new_saml_session,
    close_session,
    get_server_info,
    get_components_health,
    get_auth_path,
    trim_quotes,
)
from .ccp import (
    CCPClient,
    CCPError,
    CredentialRequest,
    CredentialResponse,
)
from .types import FlexibleID, FlexibleBool, PASJSONEncoder

__all__ = [
    # Client
    "PASClient",
    "PASResponse",
    "REQUEST_TIMEOUT",
    "parse_error_envelope",
    "raise_for_api_error",

    # Exceptions
    "ErrorKind",
    "PASError",
    "PASValidationError",
    "InvalidSessionError",
    "PASTransportError",
    "PASTimeoutError",
    "PASAPIError",
    "AuthenticationError",
    "PASDecodeError",

    # Session
    "Session",
    "require_session",
    "require_valid_session",

    # Authentication
    "AuthMethod",
    "AuthenticationService",
    "Credentials",
    "SessionOptions",
    "SAMLSessionOptions",
    "LoginRequest",
    "SAMLLoginRequest",
    "ServerInfo",
    "ComponentHealth",
    "new_session",
    "new_saml_session",
    "close_session",
    "get_server_info",
    "get_components_health",
    "get_auth_path",
    "trim_quotes",

    # CCP
    "CCPClient",
    "CCPError",
    "CredentialRequest",
    "CredentialResponse",

    # Types
    "FlexibleID",
    "FlexibleBool",
    "PASJSONEncoder",
]
