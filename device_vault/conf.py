"""Application keys under which the vault services are stored."""
from aiohttp import web

from .vault.config import VaultConfig
from .vault.broker import CredentialBroker
from .vault.key_store import MasterKeyStore
from .vault.registry import DeviceRegistry
from .storage.abstract import AbstractStore

VAULT_CONFIG = web.AppKey("vault_config", VaultConfig)
VAULT_STORE = web.AppKey("vault_store", AbstractStore)
DEVICE_REGISTRY = web.AppKey("device_registry", DeviceRegistry)
MASTER_KEY_STORE = web.AppKey("master_key_store", MasterKeyStore)
CREDENTIAL_BROKER = web.AppKey("credential_broker", CredentialBroker)
