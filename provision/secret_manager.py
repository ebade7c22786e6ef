# provision/secret_manager.py
# -*- coding: utf-8 -*-
"""
Secret retrieval from the cloud Secret Manager.

The VM's service account token comes from the metadata server; each secret is
fetched with one authenticated GET and its base64 payload decoded. Fetches
never raise: every outcome is a ``SecretResult`` the caller branches on.
"""

import base64
import binascii
import enum
import logging
from typing import Dict, Optional

import requests
from pydantic import BaseModel, SecretStr

from common.command_utils import get_symbols, log_server_boot
from provision.config_models import AppSettings, SecretSettings

module_logger = logging.getLogger(__name__)

METADATA_HEADERS = {"Metadata-Flavor": "Google"}


class SecretErrorKind(str, enum.Enum):
    TOKEN_UNAVAILABLE = "token_unavailable"
    NETWORK_ERROR = "network_error"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_PAYLOAD = "missing_payload"
    DECODE_ERROR = "decode_error"


class SecretResult(BaseModel):
    """Outcome of fetching a single secret."""

    name: str
    value: Optional[SecretStr] = None
    error_kind: Optional[SecretErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, name: str, value: str) -> "SecretResult":
        return cls(name=name, value=SecretStr(value))

    @classmethod
    def failure(
        cls, name: str, error_kind: SecretErrorKind, detail: str = ""
    ) -> "SecretResult":
        return cls(name=name, error_kind=error_kind, detail=detail)


class SecretConfigurationError(RuntimeError):
    """Raised when required secrets are unavailable and fallbacks are not allowed."""

    def __init__(self, failures: Dict[str, SecretResult]):
        self.failures = failures
        details = ", ".join(
            f"{name} ({result.error_kind.value if result.error_kind else 'unknown'})"
            for name, result in failures.items()
        )
        super().__init__(
            f"Required secrets unavailable: {details}. "
            "Grant the VM service account access to Secret Manager or enable "
            "insecure fallbacks for development."
        )


class SecretManagerClient:
    """Reads secrets through the Secret Manager REST API using the VM's identity."""

    def __init__(
        self,
        settings: SecretSettings,
        app_settings: Optional[AppSettings] = None,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.session = session or requests.Session()
        self._token: Optional[str] = None

    def secret_url(
        self, name: str, project_id: Optional[str] = None, version: Optional[str] = None
    ) -> str:
        project = project_id or self.settings.project_id
        version = version or self.settings.version
        base = self.settings.api_base_url.rstrip("/")
        return f"{base}/projects/{project}/secrets/{name}/versions/{version}:access"

    def get_access_token(self) -> Optional[str]:
        """Returns the cached bearer token, fetching it from the metadata server once."""
        if self._token:
            return self._token
        try:
            response = self.session.get(
                self.settings.metadata_token_url,
                headers=METADATA_HEADERS,
                timeout=self.settings.request_timeout,
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Could not obtain access token from metadata server: {e}")
            return None
        except (ValueError, AttributeError) as e:
            self.logger.error(f"Metadata server returned an unreadable token response: {e}")
            return None
        if not token:
            self.logger.error("Metadata server response did not include an access token.")
            return None
        self._token = token
        return token

    def access_secret(
        self,
        name: str,
        project_id: Optional[str] = None,
        version: Optional[str] = None,
    ) -> SecretResult:
        """
        Fetches and decodes one secret.

        Args:
            name: Secret name.
            project_id: Project holding the secret; defaults to the configured project.
            version: Secret version; defaults to "latest".

        Returns:
            A successful ``SecretResult`` carrying the decoded value, or a failed
            one carrying the error kind. Never raises.
        """
        symbols = get_symbols(self.app_settings)
        log_server_boot(
            f"Retrieving secret: {name} using direct API access",
            "info",
            self.logger,
            self.app_settings,
        )
        result = self._fetch(name, project_id, version)
        if result.ok:
            log_server_boot(
                f"{symbols.get('success', '✅')} Successfully retrieved secret: {name}",
                "success",
                self.logger,
                self.app_settings,
            )
        else:
            log_server_boot(
                f"{symbols.get('error', '❌')} ERROR: Failed to retrieve secret: {name} "
                f"({result.error_kind.value}: {result.detail})",
                "error",
                self.logger,
                self.app_settings,
            )
        return result

    def _fetch(
        self, name: str, project_id: Optional[str], version: Optional[str]
    ) -> SecretResult:
        token = self.get_access_token()
        if not token:
            return SecretResult.failure(
                name, SecretErrorKind.TOKEN_UNAVAILABLE, "no access token"
            )

        try:
            response = self.session.get(
                self.secret_url(name, project_id, version),
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            return SecretResult.failure(name, SecretErrorKind.NETWORK_ERROR, str(e))

        if not response.ok:
            return SecretResult.failure(
                name, SecretErrorKind.HTTP_ERROR, f"HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            return SecretResult.failure(
                name, SecretErrorKind.MALFORMED_RESPONSE, str(e)
            )
        if not isinstance(body, dict):
            return SecretResult.failure(
                name, SecretErrorKind.MALFORMED_RESPONSE, "response is not an object"
            )

        payload = body.get("payload")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, str):
            return SecretResult.failure(
                name, SecretErrorKind.MISSING_PAYLOAD, "payload.data missing"
            )

        try:
            value = base64.b64decode(data, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            return SecretResult.failure(name, SecretErrorKind.DECODE_ERROR, str(e))

        return SecretResult.success(name, value)


def load_boot_secrets(
    client: SecretManagerClient,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Dict[str, SecretStr]:
    """
    Fetches every configured boot secret.

    Unavailable secrets are a configuration error unless
    ``secrets.allow_insecure_fallbacks`` is set, in which case the hardcoded
    fallback is used and a warning naming the secret is logged.

    Raises:
        SecretConfigurationError: If any secret is unavailable and fallbacks
            are not allowed, or no fallback exists for it.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    secret_settings = app_settings.secrets

    log_server_boot(
        "Setting up Secret Manager access", "info", logger_to_use, app_settings
    )

    resolved: Dict[str, SecretStr] = {}
    failures: Dict[str, SecretResult] = {}

    for name in secret_settings.names:
        result = client.access_secret(name)
        if result.ok and result.value is not None:
            resolved[name] = result.value
            continue

        fallback = secret_settings.fallbacks.get(name)
        if secret_settings.allow_insecure_fallbacks and fallback is not None:
            log_server_boot(
                f"{symbols.get('warning', '!')} WARNING: Using fallback for {name}",
                "warning",
                logger_to_use,
                app_settings,
            )
            resolved[name] = SecretStr(fallback)
        else:
            failures[name] = result

    if failures:
        raise SecretConfigurationError(failures)

    return resolved
