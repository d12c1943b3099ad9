"""
Credential Broker — Builds the encrypted payloads returned to devices.

Secrets are wrapped in two envelope layers:
- **Device layer**: master key sealed under the first 32 bytes of the
  device signature. Only a party knowing the signature can open it.
- **Credential layer**: each credential sealed under the raw master key,
  so a master key rotation invalidates every issued credential envelope.

Security Note:
    Never log master key values or credential plaintext. Only log
    credential names, counts and truncated signatures.
"""
import os
import logging
from collections.abc import Mapping
from typing import Optional

from pydantic import BaseModel, Field

from .config import VaultConfig
from .crypto import Envelope, device_key, seal
from .key_store import MasterKeyStore
from .registry import DeviceRegistry, normalize_signature
from .exceptions import KeyFormatError

logger = logging.getLogger("device_vault.vault")


class CredentialPayload(BaseModel):
    """Master key for the device plus master-key-wrapped credentials."""

    master_key: Envelope
    credentials: dict[str, Optional[Envelope]] = Field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "masterKey": self.master_key.to_dict(),
            "credentials": {
                name: env.to_dict() if env is not None else None
                for name, env in self.credentials.items()
            },
        }


class CredentialBroker:
    """Delivers the master key and named credentials to devices.

    Args:
        registry: Device registry used to resolve signatures.
        key_store: Master key store.
        config: Vault configuration (allow-list, cipher backend).
        credential_source: Mapping of credential name to plaintext value.
            Defaults to the process environment.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        key_store: MasterKeyStore,
        config: VaultConfig,
        credential_source: Optional[Mapping[str, str]] = None,
    ):
        self._registry = registry
        self._key_store = key_store
        self._config = config
        self._source = credential_source if credential_source is not None else os.environ

    def _seal_for_device(self, master_key: str, signature: str) -> Envelope:
        return seal(master_key, device_key(signature), self._config.cipher_backend)

    async def get_master_key_for_device(self, signature: str) -> Optional[Envelope]:
        """Return the current master key sealed for the device.

        Returns:
            Envelope, or None if no device is registered under ``signature``.

        Raises:
            KeyFormatError: If the signature is shorter than 64 hex characters.
        """
        signature = normalize_signature(signature)
        device = await self._registry.resolve(signature)
        if device is None:
            logger.warning("Device not found for signature=%s...", signature[:8])
            return None
        master_key = await self._key_store.current()
        envelope = self._seal_for_device(master_key, signature)
        logger.info("Master key encrypted for device: id=%s", device.document_id)
        return envelope

    async def get_credentials_for_device(
        self,
        signature: str,
    ) -> Optional[CredentialPayload]:
        """Return the master key sealed for the device and the sealed credentials.

        Device registration is only checked when
        ``config.require_registered_device`` is set; otherwise any
        well-formed signature is served.

        Returns:
            CredentialPayload, or None when device checking is enabled and
            the device is unknown.

        Raises:
            KeyFormatError: If the signature is shorter than 64 hex characters.
        """
        signature = normalize_signature(signature)
        if not signature:
            raise KeyFormatError("Missing or invalid signature")
        key = device_key(signature)
        if self._config.require_registered_device:
            if await self._registry.resolve(signature) is None:
                logger.warning("Device not found for signature=%s...", signature[:8])
                return None

        master_key = await self._key_store.current()
        wrapped_master = seal(master_key, key, self._config.cipher_backend)

        credentials: dict[str, Optional[Envelope]] = {}
        for name in self._config.credential_names:
            value = self._source.get(name)
            if value is None:
                logger.warning("Credential %s is not configured", name)
                credentials[name] = None
            else:
                credentials[name] = seal(
                    str(value), master_key, self._config.cipher_backend,
                )
        logger.info(
            "Credentials encrypted for signature=%s...: %d credential(s)",
            signature[:8], len(credentials),
        )
        return CredentialPayload(master_key=wrapped_master, credentials=credentials)
