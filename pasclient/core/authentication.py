"""PAS logon/logoff flow and server information endpoints."""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .client import REQUEST_TIMEOUT, PASResponse, Timeout, raise_for_api_error, token_fingerprint
from .exceptions import AuthenticationError, PASDecodeError, PASError
from .session import Session, require_session, require_valid_session
from .types import FlexibleBool, FlexibleID
from .validators import require_non_empty

logger = logging.getLogger(__name__)

LOGOFF_PATH = "/Auth/Logoff"
SAML_LOGON_PATH = "/Auth/SAML/Logon"
SERVER_INFO_PATH = "/Server"
COMPONENTS_HEALTH_PATH = "/ComponentsMonitoringSummary"
TOKEN_FIELD = "CyberArkLogonResult"


class AuthMethod(str, Enum):
    """Upstream logon mechanism."""
    CYBERARK = "CyberArk"
    LDAP = "LDAP"
    RADIUS = "RADIUS"
    WINDOWS = "Windows"
    SAML = "SAML"

    def __str__(self) -> str:
        return self.value


_AUTH_PATHS = {
    AuthMethod.CYBERARK.value: "/Auth/CyberArk/Logon",
    AuthMethod.LDAP.value: "/Auth/LDAP/Logon",
    AuthMethod.RADIUS.value: "/Auth/RADIUS/Logon",
    AuthMethod.WINDOWS.value: "/Auth/Windows/Logon",
}


@dataclass
class Credentials:
    """Username/password pair for non-SAML logon; not kept after login."""
    username: str = ""
    password: str = field(default="", repr=False)


@dataclass
class SessionOptions:
    """Options for a credential-based logon."""
    base_url: str = ""
    credentials: Credentials = field(default_factory=Credentials)
    auth_method: Union[AuthMethod, str] = AuthMethod.CYBERARK
    concurrent_session: bool = False
    skip_version_check: bool = False
    skip_tls_verify: bool = False
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    timeout: Timeout = REQUEST_TIMEOUT


@dataclass
class SAMLSessionOptions:
    """Options for a SAML-assertion logon.

    With use_integrated_auth the assertion may be empty; the identity
    provider exchange then happens outside this library.
    """
    base_url: str = ""
    saml_response: str = field(default="", repr=False)
    use_integrated_auth: bool = False
    concurrent_session: bool = False
    skip_version_check: bool = False
    skip_tls_verify: bool = False
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    timeout: Timeout = REQUEST_TIMEOUT


@dataclass
class LoginRequest:
    """Wire body of a credential logon."""
    username: str
    password: str = field(repr=False)
    concurrent_session: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "password": self.password,
            "concurrentSession": self.concurrent_session,
        }


@dataclass
class SAMLLoginRequest:
    """Wire body of a SAML logon."""
    saml_response: str = field(default="", repr=False)
    concurrent_session: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"concurrentSession": self.concurrent_session}
        if self.saml_response:
            payload["samlResponse"] = self.saml_response
        return payload


@dataclass
class ServerInfo:
    """Result of the /Server probe."""
    server_id: str = ""
    server_name: str = ""
    services_used: str = ""
    applications_used: str = ""
    internal_version: float = 0.0
    external_version: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "ServerInfo":
        if not isinstance(data, dict):
            raise PASDecodeError(f"unexpected server info payload: {data!r}")
        try:
            internal_version = float(data.get("InternalVersion") or 0)
        except (TypeError, ValueError) as exc:
            raise PASDecodeError(f"invalid InternalVersion: {data.get('InternalVersion')!r}") from exc
        return cls(
            server_id=str(FlexibleID.from_json(data.get("ServerID", data.get("ServerId")))),
            server_name=data.get("ServerName") or "",
            services_used=data.get("ServicesUsed") or "",
            applications_used=data.get("ApplicationsUsed") or "",
            internal_version=internal_version,
            external_version=str(data.get("ExternalVersion") or ""),
        )


@dataclass
class ComponentHealth:
    """One entry of the components monitoring summary."""
    component_id: str = ""
    component_name: str = ""
    description: str = ""
    connected_component_id: str = ""
    is_logged_on: bool = False
    last_logon_date: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "ComponentHealth":
        if not isinstance(data, dict):
            raise PASDecodeError(f"unexpected component payload: {data!r}")
        try:
            last_logon_date = int(data.get("LastLogonDate") or 0)
        except (TypeError, ValueError) as exc:
            raise PASDecodeError(f"invalid LastLogonDate: {data.get('LastLogonDate')!r}") from exc
        return cls(
            component_id=str(FlexibleID.from_json(data.get("ComponentID"))),
            component_name=data.get("ComponentName") or "",
            description=data.get("Description") or "",
            connected_component_id=str(FlexibleID.from_json(data.get("ConnectedComponentID"))),
            is_logged_on=bool(FlexibleBool.from_json(data.get("IsLoggedOn"))),
            last_logon_date=last_logon_date,
        )


def get_auth_path(method: Union[AuthMethod, str, None]) -> str:
    """Logon path for an auth method; unknown or unset methods use CyberArk's."""
    key = method.value if isinstance(method, AuthMethod) else method
    return _AUTH_PATHS.get(key, _AUTH_PATHS[AuthMethod.CYBERARK.value])


def trim_quotes(value: str) -> str:
    """Strip one pair of surrounding double quotes; a lone quote character is kept."""
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def extract_token(body: bytes) -> str:
    """Pull the session token out of a logon response.

    Newer servers wrap it as {"CyberArkLogonResult": "..."}; older ones
    return a bare JSON string.
    """
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return trim_quotes(text)
    if isinstance(payload, dict):
        token = payload.get(TOKEN_FIELD) or ""
        return trim_quotes(str(token))
    if isinstance(payload, str):
        return trim_quotes(payload)
    raise PASDecodeError(f"unexpected logon response: {text[:100]}")


class AuthenticationService:
    """Service for session-bound authentication operations."""

    def __init__(self, session: Optional[Session]):
        """Initialize authentication service.

        Args:
            session: Session to operate on (may be unauthenticated for server info)
        """
        self.session = session

    def logon(self, path: str, body: Dict[str, Any], username: str, auth_method: str,
              timeout: Optional[Timeout] = None) -> Session:
        """POST the logon body and store the token on the session.

        Raises:
            AuthenticationError: On non-2xx status or an empty token
            PASTransportError: On connection failure or timeout
        """
        session = require_session(self.session)
        resp = session.client.send("POST", path, body=body, timeout=timeout)
        raise_for_api_error(resp.status_code, resp.body, path, AuthenticationError)

        token = extract_token(resp.body)
        if not token:
            raise AuthenticationError(
                resp.status_code,
                path,
                prefix="received empty authentication token",
            )

        session.set_authenticated(username, token, auth_method)
        logger.info(
            "Logged on to %s as %s via %s (token_hash=%s)",
            session.base_url, username or "<saml>", auth_method, token_fingerprint(token),
        )
        return session

    def check_server_version(self, timeout: Optional[Timeout] = None) -> Optional[ServerInfo]:
        """Best-effort /Server probe; request failures are logged, never raised.

        Raises:
            InvalidSessionError: If session is None
        """
        session = require_session(self.session)
        try:
            info = self.get_server_info(timeout=timeout)
        except PASError as exc:
            logger.warning("Server version check failed for %s: %s", session.base_url, exc)
            return None
        session.set_server_info(info)
        logger.info("Connected to PAS version %s (%s)", info.external_version, info.server_name)
        return info

    def logoff(self, timeout: Optional[Timeout] = None) -> None:
        """Log off, clear local auth state and release pooled connections.

        A 401 means the server already dropped the session and counts as success.

        Raises:
            PASAPIError: On any other non-2xx status (local state kept)
        """
        session = self.session
        if session is None:
            return
        resp = session.client.send("POST", LOGOFF_PATH, timeout=timeout)
        if resp.status_code == 401:
            logger.info("Session on %s already logged off", session.base_url)
        else:
            raise_for_api_error(resp.status_code, resp.body, LOGOFF_PATH)
            logger.info("Logged off from %s", session.base_url)
        session.clear()
        session.client.close()

    def get_server_info(self, timeout: Optional[Timeout] = None) -> ServerInfo:
        """Get server name and version; works before logon.

        Raises:
            InvalidSessionError: If session is None
            PASAPIError: On non-2xx status
            PASDecodeError: If body is not a server info object
        """
        session = require_session(self.session)
        resp = session.get(SERVER_INFO_PATH, timeout=timeout)
        return ServerInfo.from_dict(resp.json())

    def get_components_health(self, timeout: Optional[Timeout] = None) -> List[ComponentHealth]:
        """List vault component connection status.

        Raises:
            InvalidSessionError: If session is missing or unauthenticated
            PASAPIError: On non-2xx status
            PASDecodeError: If body is not a {"Components": [...]} envelope
        """
        session = require_valid_session(self.session)
        resp: PASResponse = session.get(COMPONENTS_HEALTH_PATH, timeout=timeout)
        payload = resp.json()
        if not isinstance(payload, dict):
            raise PASDecodeError(f"unexpected components payload from {COMPONENTS_HEALTH_PATH}")
        components = payload.get("Components") or []
        if not isinstance(components, list):
            raise PASDecodeError("Components is not a list")
        return [ComponentHealth.from_dict(item) for item in components]


def _open_session(opts: Union[SessionOptions, SAMLSessionOptions]) -> Session:
    return Session(
        opts.base_url,
        skip_tls_verify=opts.skip_tls_verify,
        client_cert=opts.client_cert,
        client_key=opts.client_key,
        timeout=opts.timeout,
    )


def _finish_logon(session: Session, path: str, body: Dict[str, Any], username: str,
                  auth_method: str, skip_version_check: bool, timeout: Optional[Timeout]) -> Session:
    service = AuthenticationService(session)
    try:
        service.logon(path, body, username, auth_method, timeout=timeout)
    except PASError:
        session.client.close()
        raise
    if not skip_version_check:
        service.check_server_version(timeout=timeout)
    return session


def new_session(opts: SessionOptions, *, timeout: Optional[Timeout] = None) -> Session:
    """Log on with username/password and return an authenticated session.

    Args:
        opts: Base URL, credentials, auth method and TLS options
        timeout: Per-call timeout overriding opts.timeout

    Returns:
        Authenticated Session

    Raises:
        PASValidationError: If base URL, username or password is empty (no HTTP call made)
        AuthenticationError: If the server rejects the logon or returns no token
        PASTransportError: On connection failure or timeout
    """
    require_non_empty(opts.base_url, "baseURL")
    credentials = opts.credentials or Credentials()
    require_non_empty(credentials.username, "username")
    require_non_empty(credentials.password, "password")

    auth_method = opts.auth_method or AuthMethod.CYBERARK
    path = get_auth_path(auth_method)
    body = LoginRequest(
        username=credentials.username,
        password=credentials.password,
        concurrent_session=opts.concurrent_session,
    ).to_dict()

    session = _open_session(opts)
    return _finish_logon(
        session, path, body, credentials.username, str(auth_method),
        opts.skip_version_check, timeout,
    )


def new_saml_session(opts: SAMLSessionOptions, *, timeout: Optional[Timeout] = None) -> Session:
    """Log on with a base64 SAML assertion and return an authenticated session.

    Raises:
        PASValidationError: If base URL is empty, or the assertion is empty without integrated auth
        AuthenticationError: If the server rejects the logon or returns no token
        PASTransportError: On connection failure or timeout
    """
    require_non_empty(opts.base_url, "baseURL")
    if not opts.use_integrated_auth:
        require_non_empty(opts.saml_response, "samlResponse")

    body = SAMLLoginRequest(
        saml_response=opts.saml_response,
        concurrent_session=opts.concurrent_session,
    ).to_dict()

    session = _open_session(opts)
    return _finish_logon(
        session, SAML_LOGON_PATH, body, "", AuthMethod.SAML.value,
        opts.skip_version_check, timeout,
    )


def close_session(session: Optional[Session], *, timeout: Optional[Timeout] = None) -> None:
    """Log off; a None session or an already-expired one (401) is not an error."""
    AuthenticationService(session).logoff(timeout=timeout)


def get_server_info(session: Optional[Session], *, timeout: Optional[Timeout] = None) -> ServerInfo:
    """Get server name and version for session's base URL."""
    return AuthenticationService(session).get_server_info(timeout=timeout)


def get_components_health(session: Optional[Session], *,
                          timeout: Optional[Timeout] = None) -> List[ComponentHealth]:
    """List vault component health for an authenticated session."""
    return AuthenticationService(session).get_components_health(timeout=timeout)
