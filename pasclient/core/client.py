"""Low-level HTTP client for the PAS REST API.

Handles TLS setup, token headers, error mapping and JSON bodies.
"""
from __future__ import annotations
import hashlib
import json
import logging
import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type, Union

import requests

from .exceptions import (
    PASAPIError,
    PASDecodeError,
    PASTimeoutError,
    PASTransportError,
    PASValidationError,
)
from .types import PASJSONEncoder

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30

Timeout = Union[float, Tuple[float, float]]


def token_fingerprint(token: str) -> str:
    """Short SHA256 prefix of a token, safe for logs."""
    if not token:
        return "none"
    return hashlib.sha256(token.encode()).hexdigest()[:12]


@dataclass
class PASResponse:
    """Uniform result of a successful call: status code plus raw body."""
    status_code: int
    body: bytes = b""
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            PASDecodeError: If the body is not valid JSON
        """
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise PASDecodeError(f"failed to parse response from {self.url}: {exc}") from exc


def parse_error_envelope(body: Union[bytes, str]) -> Tuple[Optional[str], Optional[str]]:
    """Extract (ErrorCode, ErrorMsg|ErrorMessage) from an error body, if present."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None, None
    if not isinstance(payload, dict):
        return None, None
    code = payload.get("ErrorCode")
    message = payload.get("ErrorMsg") or payload.get("ErrorMessage")
    return (str(code) if code else None), (str(message) if message else None)


def raise_for_api_error(
    status_code: int,
    body: Union[bytes, str],
    endpoint: str,
    error_cls: Type[PASAPIError] = PASAPIError,
) -> None:
    """Raise error_cls for non-2xx responses, carrying the upstream error envelope.

    Raises:
        PASAPIError: (or the given subclass) if status is outside 2xx
    """
    if 200 <= status_code < 300:
        return
    error_code, error_message = parse_error_envelope(body)
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    raise error_cls(
        status_code,
        endpoint,
        error_code=error_code,
        error_message=error_message,
        body=text,
    )


def _check_client_certificate(client_cert: str, client_key: str) -> None:
    """Load the PEM pair once so a bad cert/key fails at construction."""
    try:
        ssl.create_default_context().load_cert_chain(certfile=client_cert, keyfile=client_key)
    except (OSError, ssl.SSLError) as exc:
        raise PASValidationError(f"failed to load client certificate: {exc}") from exc


class PASClient:
    """HTTP client for the PAS REST API.

    Features:
    - One requests.Session per client (connection reuse)
    - Optional TLS skip-verify and mutual TLS with a PEM cert/key pair
    - Centralized mapping of HTTP and transport failures to PASError kinds
    - No retries: every call issues exactly one HTTP request

    Usage:
        client = PASClient("https://pvwa.example.com/PasswordVault/API")
        client.set_auth_token(token)
        response = client.get("/Safes", params={"limit": 25})
    """

    def __init__(
        self,
        base_url: str,
        *,
        skip_tls_verify: bool = False,
        client_cert: Optional[str] = None,
        client_key: Optional[str] = None,
        timeout: Timeout = REQUEST_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        """Initialize PAS client.

        Args:
            base_url: PAS API base URL (e.g., https://pvwa/PasswordVault/API)
            skip_tls_verify: Disable server certificate verification
            client_cert: PEM client certificate path for mutual TLS
            client_key: PEM private key path for mutual TLS
            timeout: Default per-request timeout in seconds
            http: Pre-built requests.Session (mainly for tests)

        Raises:
            PASValidationError: If base_url is empty or the cert/key pair is unusable
        """
        if not base_url:
            raise PASValidationError("baseURL is required")
        if bool(client_cert) != bool(client_key):
            raise PASValidationError("client certificate and key must be provided together")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: str = ""

        self.http = http or requests.Session()
        if skip_tls_verify:
            logger.warning("TLS certificate verification disabled for %s", self.base_url)
            self.http.verify = False
        if client_cert and client_key:
            _check_client_certificate(client_cert, client_key)
            self.http.cert = (client_cert, client_key)

    @property
    def auth_token(self) -> str:
        return self._token

    def set_auth_token(self, token: str) -> None:
        self._token = token or ""

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, *,
            timeout: Optional[Timeout] = None) -> PASResponse:
        """Execute GET request.

        Args:
            path: API endpoint path (e.g., "/Server")
            params: Query parameters
            timeout: Per-call timeout overriding the client default

        Returns:
            PASResponse with status code and raw body

        Raises:
            PASAPIError: On non-2xx status
            PASTransportError: On connection failure or timeout
        """
        return self._request("GET", path, params=params, timeout=timeout)

    def post(self, path: str, json: Any = None, *,
             timeout: Optional[Timeout] = None) -> PASResponse:
        """Execute POST request with an optional JSON body."""
        return self._request("POST", path, body=json, timeout=timeout)

    def put(self, path: str, json: Any = None, *,
            timeout: Optional[Timeout] = None) -> PASResponse:
        """Execute PUT request with an optional JSON body."""
        return self._request("PUT", path, body=json, timeout=timeout)

    def delete(self, path: str, *, timeout: Optional[Timeout] = None) -> PASResponse:
        """Execute DELETE request."""
        return self._request("DELETE", path, timeout=timeout)

    def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        timeout: Optional[Timeout] = None,
    ) -> PASResponse:
        """Execute a request without mapping non-2xx statuses to errors.

        Used where the caller interprets specific statuses itself (logon, logoff).
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = self._token

        data = None
        if body is not None:
            data = json.dumps(body, cls=PASJSONEncoder)

        try:
            resp = self.http.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.Timeout as exc:
            raise PASTimeoutError(f"{method} {path} timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise PASTransportError(f"{method} {path} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, resp.status_code)
        return PASResponse(
            status_code=resp.status_code,
            body=resp.content or b"",
            url=resp.url or url,
            headers=dict(resp.headers or {}),
        )

    def _request(self, method: str, path: str, **kwargs) -> PASResponse:
        resp = self.send(method, path, **kwargs)
        self._handle_error(resp, path)
        return resp

    def _handle_error(self, resp: PASResponse, path: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            PASAPIError: If response status indicates error
        """
        raise_for_api_error(resp.status_code, resp.body, path)

    def close(self) -> None:
        """Release pooled connections."""
        self.http.close()

    def __enter__(self) -> "PASClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
