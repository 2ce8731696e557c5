"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pasclient.core.authentication import AuthMethod, Credentials, SessionOptions
from pasclient.core.ccp import CCPClient, CredentialRequest
from pasclient.core.client import REQUEST_TIMEOUT
from pasclient.core.exceptions import PASValidationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes"}


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug("Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.debug("Loaded %s from environment (fallback)", env_var)
            return secret_value

    return None


def _env_bool(var_name: str, default: bool = False) -> bool:
    value = os.environ.get(var_name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_auth_method(raw: Optional[str]) -> AuthMethod:
    """Map a case-insensitive method name (e.g. "ldap") to AuthMethod.

    Raises:
        PASValidationError: For unknown names
    """
    if not raw or not raw.strip():
        return AuthMethod.CYBERARK
    wanted = raw.strip().lower()
    for method in AuthMethod:
        if method.value.lower() == wanted:
            return method
    choices = ", ".join(m.value for m in AuthMethod)
    raise PASValidationError(f"unknown auth method {raw!r} (expected one of: {choices})")


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw or not raw.strip():
        return float(REQUEST_TIMEOUT)
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise PASValidationError(f"PAS_TIMEOUT must be a number of seconds, got {raw!r}") from exc
    if timeout <= 0:
        raise PASValidationError("PAS_TIMEOUT must be positive")
    return timeout


@dataclass
class PASConfig:
    """Connection configuration container."""
    base_url: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    auth_method: AuthMethod = AuthMethod.CYBERARK
    concurrent_session: bool = False
    skip_version_check: bool = False

    # TLS
    skip_tls_verify: bool = False
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    timeout: float = float(REQUEST_TIMEOUT)

    # Central Credential Provider (optional)
    ccp_url: str = ""
    ccp_app_id: str = ""
    ccp_safe: str = ""
    ccp_object: str = ""

    def session_options(self) -> SessionOptions:
        """Build logon options from this configuration."""
        return SessionOptions(
            base_url=self.base_url,
            credentials=Credentials(username=self.username, password=self.password),
            auth_method=self.auth_method,
            concurrent_session=self.concurrent_session,
            skip_version_check=self.skip_version_check,
            skip_tls_verify=self.skip_tls_verify,
            client_cert=self.client_cert,
            client_key=self.client_key,
            timeout=self.timeout,
        )

    def ccp_client(self) -> CCPClient:
        """Build a CCP client; uses ccp_url, falling back to the PAS host."""
        return CCPClient(
            self.ccp_url or self.base_url,
            skip_tls_verify=self.skip_tls_verify,
            client_cert=self.client_cert,
            client_key=self.client_key,
            timeout=self.timeout,
        )

    def ccp_request(self, reason: str = "") -> CredentialRequest:
        return CredentialRequest(
            app_id=self.ccp_app_id,
            safe=self.ccp_safe,
            object=self.ccp_object,
            reason=reason,
        )


def load_settings() -> PASConfig:
    """Load connection settings from environment and /run/secrets.

    Raises:
        PASValidationError: For an unknown PAS_AUTH_METHOD or a bad PAS_TIMEOUT
    """
    password = _load_secret_from_file("pas_password", "PAS_PASSWORD") or ""

    client_cert = os.environ.get("PAS_CLIENT_CERT") or None
    client_key = os.environ.get("PAS_CLIENT_KEY") or None

    config = PASConfig(
        base_url=os.environ.get("PAS_BASE_URL", "").strip(),
        username=os.environ.get("PAS_USERNAME", "").strip(),
        password=password,
        auth_method=parse_auth_method(os.environ.get("PAS_AUTH_METHOD")),
        concurrent_session=_env_bool("PAS_CONCURRENT_SESSION"),
        skip_version_check=_env_bool("PAS_SKIP_VERSION_CHECK"),
        skip_tls_verify=_env_bool("PAS_SKIP_TLS_VERIFY"),
        client_cert=client_cert,
        client_key=client_key,
        timeout=_parse_timeout(os.environ.get("PAS_TIMEOUT")),
        ccp_url=os.environ.get("PAS_CCP_URL", "").strip(),
        ccp_app_id=os.environ.get("PAS_CCP_APP_ID", "").strip(),
        ccp_safe=os.environ.get("PAS_CCP_SAFE", "").strip(),
        ccp_object=os.environ.get("PAS_CCP_OBJECT", "").strip(),
    )

    if config.skip_tls_verify:
        logger.warning("PAS_SKIP_TLS_VERIFY=true: server certificates will not be verified")
    logger.info(
        "PAS settings loaded; base_url=%s auth_method=%s",
        config.base_url or "<unset>", config.auth_method.value,
    )
    return config
