"""Authenticated session handle shared by every PAS operation."""
from __future__ import annotations
import threading
from typing import Any, Dict, Optional, TYPE_CHECKING

from .client import PASClient, PASResponse, Timeout
from .exceptions import InvalidSessionError, PASValidationError

if TYPE_CHECKING:
    from .authentication import ServerInfo


class Session:
    """One authenticated (or pending) connection to a PAS server.

    A session is usable only once authenticated with a non-empty token.
    Login/logout mutate it under an internal lock, so concurrent requests
    may read the token while another thread re-authenticates or closes it.

    Usage:
        session = Session("https://pvwa.example.com/PasswordVault/API")
        session.set_authenticated("admin", token, "CyberArk")
        session.get("/Safes")
    """

    def __init__(self, base_url: str, *, client: Optional[PASClient] = None, **client_options: Any):
        """Initialize an unauthenticated session.

        Args:
            base_url: PAS API base URL
            client: Pre-built PASClient (its base_url wins)
            **client_options: Forwarded to PASClient (skip_tls_verify, client_cert, ...)

        Raises:
            PASValidationError: If base_url is empty
        """
        if not base_url:
            raise PASValidationError("baseURL is required")
        self.client = client or PASClient(base_url, **client_options)
        self.base_url = self.client.base_url
        self._lock = threading.RLock()
        self._authenticated = False
        self._username = ""
        self._auth_method = ""
        self._server_info: Optional["ServerInfo"] = None

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def auth_token(self) -> str:
        return self.client.auth_token

    @property
    def username(self) -> str:
        return self._username

    @property
    def auth_method(self) -> str:
        return self._auth_method

    @property
    def server_info(self) -> Optional["ServerInfo"]:
        return self._server_info

    def is_valid(self) -> bool:
        """True iff authenticated with a non-empty token."""
        with self._lock:
            return self._authenticated and bool(self.client.auth_token)

    def set_authenticated(self, username: str, token: str, auth_method: str) -> None:
        """Store the logon result; all fields change together."""
        with self._lock:
            self.client.set_auth_token(token)
            self._username = username or ""
            self._auth_method = str(auth_method or "")
            self._authenticated = True

    def set_server_info(self, info: Optional["ServerInfo"]) -> None:
        with self._lock:
            self._server_info = info

    def clear(self) -> None:
        """Forget the token so a closed session cannot be reused."""
        with self._lock:
            self.client.set_auth_token("")
            self._authenticated = False
            self._username = ""
            self._auth_method = ""

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, *,
            timeout: Optional[Timeout] = None) -> PASResponse:
        return self.client.get(path, params=params, timeout=timeout)

    def post(self, path: str, json: Any = None, *, timeout: Optional[Timeout] = None) -> PASResponse:
        return self.client.post(path, json=json, timeout=timeout)

    def put(self, path: str, json: Any = None, *, timeout: Optional[Timeout] = None) -> PASResponse:
        return self.client.put(path, json=json, timeout=timeout)

    def delete(self, path: str, *, timeout: Optional[Timeout] = None) -> PASResponse:
        return self.client.delete(path, timeout=timeout)

    def __repr__(self) -> str:
        state = "authenticated" if self.is_valid() else "unauthenticated"
        user = f", user={self._username!r}" if self._username else ""
        return f"Session(base_url={self.base_url!r}, {state}{user})"


def require_session(session: Optional[Session]) -> Session:
    """Reject a missing session (authentication not required)."""
    if session is None:
        raise InvalidSessionError("session is required")
    return session


def require_valid_session(session: Optional[Session]) -> Session:
    """Reject a missing or unauthenticated session before any HTTP call.

    Raises:
        InvalidSessionError: If session is None or not valid
    """
    if session is None or not session.is_valid():
        raise InvalidSessionError()
    return session
