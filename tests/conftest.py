"""Pytest shared fixtures for PAS client tests."""
import datetime
import json
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlsplit

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from pasclient.core import Session

BASE_URL = "https://pvwa.test/PasswordVault/API"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting the network.

    Integration tests are explicitly marked with @pytest.mark.integration and
    talk to a local server, so they skip this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _unexpected(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _unexpected)


# ─────────────────────────────────────────────────────────────────────────────
# Stub PAS server
# ─────────────────────────────────────────────────────────────────────────────
class _StubResponse:
    def __init__(self, status_code: int, body: bytes, url: str):
        self.status_code = status_code
        self.content = body
        self.url = url
        self.headers = {"Content-Type": "application/json"}


@dataclass
class RecordedCall:
    method: str
    path: str
    params: Optional[Dict[str, Any]]
    body: Any
    headers: Dict[str, str]
    timeout: Any


Reply = Union[Tuple[int, Any], Callable[["RecordedCall"], Tuple[int, Any]], BaseException]


@dataclass
class StubPAS:
    """Records requests and answers them from a route table.

    Routes match on method plus path suffix; bodies that are not bytes/str
    are JSON-encoded. A route may also be an exception instance to raise.
    """
    calls: List[RecordedCall] = field(default_factory=list)
    routes: Dict[Tuple[str, str], Reply] = field(default_factory=dict)

    def route(self, method: str, path: str, status: int = 200, body: Any = b"") -> None:
        self.routes[(method.upper(), path)] = (status, body)

    def route_reply(self, method: str, path: str, reply: Reply) -> None:
        self.routes[(method.upper(), path)] = reply

    def paths(self) -> List[str]:
        return [call.path for call in self.calls]

    def _lookup(self, method: str, path: str) -> Reply:
        for (route_method, suffix), reply in self.routes.items():
            if route_method == method and path.endswith(suffix):
                return reply
        return (404, {"ErrorCode": "STUB404", "ErrorMessage": f"no route for {method} {path}"})

    def handle(self, http, method, url, params=None, data=None, headers=None, timeout=None, **kwargs):
        path = urlsplit(url).path
        body = json.loads(data) if data else None
        call = RecordedCall(method.upper(), path, params, body, dict(headers or {}), timeout)
        self.calls.append(call)

        reply = self._lookup(call.method, path)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(call)
        status, payload = reply
        if isinstance(payload, bytes):
            raw = payload
        elif isinstance(payload, str):
            raw = payload.encode()
        else:
            raw = json.dumps(payload).encode()
        return _StubResponse(status, raw, url)


@pytest.fixture()
def pas_server(monkeypatch):
    """Stub PAS API reachable through any requests.Session."""
    stub = StubPAS()

    def _request(self, method, url, *args, **kwargs):
        return stub.handle(self, method, url, *args, **kwargs)

    monkeypatch.setattr(requests.Session, "request", _request)
    return stub


@pytest.fixture()
def authed_session():
    """Session already holding a token (no logon round trip)."""
    session = Session(BASE_URL)
    session.set_authenticated("admin", "test-token", "CyberArk")
    return session


# ─────────────────────────────────────────────────────────────────────────────
# TLS material
# ─────────────────────────────────────────────────────────────────────────────
def _write_key_pair(directory: pathlib.Path, name: str) -> Tuple[pathlib.Path, pathlib.Path]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    cert_path = directory / f"{name}.crt"
    key_path = directory / f"{name}.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


@pytest.fixture()
def client_cert_pair(tmp_path):
    """Self-signed PEM certificate and matching private key."""
    cert_path, key_path = _write_key_pair(tmp_path, "client")
    return str(cert_path), str(key_path)


@pytest.fixture()
def mismatched_cert_pair(tmp_path):
    """Certificate paired with somebody else's private key."""
    cert_path, _ = _write_key_pair(tmp_path, "client-a")
    _, other_key = _write_key_pair(tmp_path, "client-b")
    return str(cert_path), str(other_key)


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (uses a local HTTP server)"
    )
