"""
Secrets for Tasko from HashiCorp Vault (KV v2, AppRole auth).

Every path is read relative to the 'tasko/' mount prefix; callers cannot
reach secrets outside it. Any failure raises VaultError: the process cannot
start without its database URL and OAuth credentials.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "tasko"

# Process-wide client and secret cache, keyed by secret path
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, str]] = {}

GOOGLE_OAUTH_FIELDS = ("client_id", "client_secret", "redirect_uri")


class VaultError(Exception):
    """Secrets unavailable. Fatal at startup."""


def _client() -> "VaultClient":
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


class VaultClient:
    """AppRole-authenticated reader for secrets under tasko/."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        """Reads VAULT_ADDR, VAULT_NAMESPACE, VAULT_ROLE_ID, VAULT_SECRET_ID."""
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not self.vault_addr:
            raise VaultError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise VaultError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        self.client = hvac.Client(url=self.vault_addr, namespace=self.vault_namespace)
        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error(f"AppRole authentication failed: {type(e).__name__}")
            raise VaultError(f"AppRole authentication failed: {e}") from e

        self.client.token = login["auth"]["client_token"]
        if not self.client.is_authenticated():
            raise VaultError("Vault authentication failed")

        logger.info(f"Vault client authenticated: {self.vault_addr}")

    def read(self, path: str) -> Dict[str, str]:
        """
        All fields of the secret at tasko/<path>.

        Raises:
            VaultError: Path missing or not readable with this role.
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            logger.error(f"Secret path not found: {full_path}")
            raise VaultError(f"Secret path '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}")
            raise VaultError(f"Access denied to secret '{full_path}'") from e
        return response["data"]["data"]


def _cached(path: str, *fields: str) -> Dict[str, str]:
    if path not in _secret_cache:
        _secret_cache[path] = _client().read(path)
    data = _secret_cache[path]
    missing = [f for f in fields if f not in data]
    if missing:
        raise VaultError(f"Secret '{_SECRET_PREFIX}/{path}' is missing: {', '.join(missing)}")
    return {f: data[f] for f in fields}


def get_database_url() -> str:
    """PostgreSQL URL for the document store."""
    return _cached("database", "url")["url"]


def get_valkey_url() -> str:
    """Valkey URL for the shared login-attempt store."""
    return _cached("valkey", "url")["url"]


def get_google_oauth_config() -> Dict[str, str]:
    """Google OAuth client registration: client_id, client_secret, redirect_uri."""
    return _cached("google", *GOOGLE_OAUTH_FIELDS)
