"""Central Credential Provider (CCP) client.

CCP lets applications fetch vaulted credentials by AppID without a PAS
user session, typically over mutual TLS. A fetched credential can feed
Credentials for a regular logon.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .client import PASClient, Timeout, raise_for_api_error
from .exceptions import PASAPIError, PASDecodeError
from .types import FlexibleBool
from .validators import require_non_empty

logger = logging.getLogger(__name__)

CCP_ACCOUNTS_PATH = "/AIMWebService/api/Accounts"
CCP_TIMEOUT = 30


class CCPError(PASAPIError):
    """Error response from the Central Credential Provider."""

    def __init__(self, status_code: int, endpoint: str, **kwargs):
        kwargs.setdefault("prefix", "CCP error")
        super().__init__(status_code, endpoint, **kwargs)


@dataclass
class CredentialRequest:
    """Lookup criteria for a CCP credential; app_id and safe are required."""
    app_id: str = ""
    safe: str = ""
    object: str = ""
    folder: str = ""
    username: str = ""
    address: str = ""
    query: str = ""
    query_format: str = ""
    reason: str = ""
    connection_timeout: int = 0

    def to_params(self) -> Dict[str, str]:
        """Query string parameters; optional criteria only when set."""
        params = {"AppID": self.app_id, "Safe": self.safe}
        optional = {
            "Object": self.object,
            "Folder": self.folder,
            "UserName": self.username,
            "Address": self.address,
            "Query": self.query,
            "QueryFormat": self.query_format,
            "Reason": self.reason,
        }
        params.update({key: value for key, value in optional.items() if value})
        if self.connection_timeout > 0:
            params["ConnectionTimeout"] = str(self.connection_timeout)
        return params


@dataclass
class CredentialResponse:
    """Credential returned by CCP; content holds the secret."""
    content: str = field(default="", repr=False)
    username: str = ""
    address: str = ""
    safe: str = ""
    folder: str = ""
    name: str = ""
    policy_id: str = ""
    device_type: str = ""
    properties: Dict[str, str] = field(default_factory=dict)
    password_change_in_process: bool = False
    creation_method: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "CredentialResponse":
        if not isinstance(data, dict):
            raise PASDecodeError("failed to parse response: expected a JSON object")
        properties = data.get("Properties") or {}
        if not isinstance(properties, dict):
            raise PASDecodeError("failed to parse response: Properties is not an object")
        return cls(
            content=data.get("Content") or "",
            username=data.get("UserName") or "",
            address=data.get("Address") or "",
            safe=data.get("Safe") or "",
            folder=data.get("Folder") or "",
            name=data.get("Name") or "",
            policy_id=data.get("PolicyID") or "",
            device_type=data.get("DeviceType") or "",
            properties={str(k): str(v) for k, v in properties.items()},
            password_change_in_process=bool(
                FlexibleBool.from_json(data.get("PasswordChangeInProcess"))
            ),
            creation_method=data.get("CreationMethod") or "",
        )


class CCPClient:
    """Client for CCP credential retrieval.

    Usage:
        ccp = CCPClient("https://ccp.example.com", client_cert="app.pem", client_key="app.key")
        password = ccp.get_password(CredentialRequest(app_id="App1", safe="Ops", object="svc"))
    """

    def __init__(
        self,
        base_url: str,
        *,
        skip_tls_verify: bool = False,
        client_cert: Optional[str] = None,
        client_key: Optional[str] = None,
        timeout: Timeout = CCP_TIMEOUT,
        client: Optional[PASClient] = None,
    ):
        """Initialize CCP client.

        Raises:
            PASValidationError: If base_url is empty or the cert/key pair is unusable
        """
        self.client = client or PASClient(
            base_url,
            skip_tls_verify=skip_tls_verify,
            client_cert=client_cert,
            client_key=client_key,
            timeout=timeout or CCP_TIMEOUT,
        )
        self.base_url = self.client.base_url

    def get_credential(self, req: CredentialRequest, *,
                       timeout: Optional[Timeout] = None) -> CredentialResponse:
        """Retrieve a credential.

        Raises:
            PASValidationError: If AppID or Safe is empty (no HTTP call made)
            CCPError: On non-200 status
            PASDecodeError: If the body is not a credential object
        """
        require_non_empty(req.app_id, "AppID")
        require_non_empty(req.safe, "Safe")

        resp = self.client.send("GET", CCP_ACCOUNTS_PATH, params=req.to_params(), timeout=timeout)
        if resp.status_code != 200:
            raise_for_api_error(resp.status_code, resp.body, CCP_ACCOUNTS_PATH, CCPError)
            raise CCPError(resp.status_code, CCP_ACCOUNTS_PATH, body=resp.text)

        credential = CredentialResponse.from_dict(resp.json())
        logger.info(
            "Retrieved CCP credential for app=%s safe=%s object=%s",
            req.app_id, req.safe, credential.name or req.object or "-",
        )
        return credential

    def get_password(self, req: CredentialRequest, *, timeout: Optional[Timeout] = None) -> str:
        """Retrieve just the secret content."""
        return self.get_credential(req, timeout=timeout).content

    def get_login_credentials(self, req: CredentialRequest, *,
                              timeout: Optional[Timeout] = None) -> Tuple[str, str]:
        """Retrieve (username, password) suitable for a PAS logon."""
        credential = self.get_credential(req, timeout=timeout)
        return credential.username, credential.content

    def close(self) -> None:
        self.client.close()
