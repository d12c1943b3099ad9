"""
Vault Configuration — Validated settings for the device vault.

Reads settings from environment variables:
    BACKEND_SECRET = <server secret used for signature derivation>
    DEVICE_COLLECTION_ID / MASTER_KEY_COLLECTION_ID = <collection names>
    CREDENTIAL_ENV_VARS = <comma separated allow-list of credential names>

Security Note:
    Never log the server secret. Only log collection names and counts.
"""
import os
import logging
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

logger = logging.getLogger("device_vault.vault")


def parse_credential_names(raw: Optional[str]) -> list[str]:
    """Split a comma separated allow-list, dropping blanks."""
    if not raw:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


def _optional_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    return int(raw)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    server_secret: SecretStr
    device_collection: str = Field(default="devices", min_length=1)
    master_key_collection: str = Field(default="master_keys", min_length=1)
    credential_names: list[str] = Field(default_factory=list)
    cipher_backend: str = Field(default="aesgcm")
    key_scan_limit: int = Field(default=100, ge=1, le=10000)
    rotation_interval: Optional[int] = Field(default=None, ge=60)
    require_registered_device: bool = False
    dsn: Optional[str] = None
    store_timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("server_secret")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        """Reject an empty server secret."""
        if not v.get_secret_value():
            raise ValueError("server_secret cannot be empty")
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("credential_names", mode="before")
    @classmethod
    def split_names(cls, v):
        if isinstance(v, str):
            return parse_credential_names(v)
        return v

    @property
    def secret(self) -> str:
        return self.server_secret.get_secret_value()

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            RuntimeError: If BACKEND_SECRET is not set.
        """
        secret = os.environ.get("BACKEND_SECRET")
        if not secret:
            raise RuntimeError(
                "BACKEND_SECRET environment variable is not set"
            )
        config = cls(
            server_secret=secret,
            device_collection=os.environ.get("DEVICE_COLLECTION_ID", "devices"),
            master_key_collection=os.environ.get(
                "MASTER_KEY_COLLECTION_ID", "master_keys"
            ),
            credential_names=parse_credential_names(
                os.environ.get("CREDENTIAL_ENV_VARS")
            ),
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
            key_scan_limit=_optional_int("VAULT_KEY_SCAN_LIMIT") or 100,
            rotation_interval=_optional_int("VAULT_ROTATION_INTERVAL"),
            require_registered_device=_env_flag("VAULT_REQUIRE_DEVICE"),
            dsn=os.environ.get("VAULT_DSN") or None,
            store_timeout=float(os.environ["VAULT_STORE_TIMEOUT"])
            if os.environ.get("VAULT_STORE_TIMEOUT") else None,
        )
        logger.debug(
            "Loaded vault config: devices=%s master_keys=%s credentials=%d",
            config.device_collection,
            config.master_key_collection,
            len(config.credential_names),
        )
        return config
