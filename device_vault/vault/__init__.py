"""Device Vault core — device identities and envelope-encrypted secret delivery.

Security Note (Threat Model):
    A device signature is both its identity and its bearer credential;
    anyone holding it can open the master key envelope issued for it.
    Transport security (TLS) is assumed to be provided by the deployment.
"""

from .config import VaultConfig
from .crypto import Envelope, derive_signature, device_key, open_envelope, seal
from .exceptions import (
    VaultError,
    DuplicateIdentifierError,
    AuthenticationError,
    FormatError,
    KeyFormatError,
    StoreUnavailable,
    DuplicateDocument,
)
from .key_store import MasterKeyStore
from .registry import DeviceRegistry
from .broker import CredentialBroker, CredentialPayload
from .key_rotation import rotate_master_key, run_periodic_rotation

__all__ = [
    "VaultConfig",
    "Envelope",
    "derive_signature",
    "device_key",
    "seal",
    "open_envelope",
    "VaultError",
    "DuplicateIdentifierError",
    "AuthenticationError",
    "FormatError",
    "KeyFormatError",
    "StoreUnavailable",
    "DuplicateDocument",
    "MasterKeyStore",
    "DeviceRegistry",
    "CredentialBroker",
    "CredentialPayload",
    "rotate_master_key",
    "run_periodic_rotation",
]
