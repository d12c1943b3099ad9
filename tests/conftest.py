import pytest

from device_vault.storage import MemoryStore
from device_vault.vault import (
    CredentialBroker,
    DeviceRegistry,
    MasterKeyStore,
    VaultConfig,
)


SERVER_SECRET = "test-backend-secret"


@pytest.fixture
def config():
    """Vault configuration with a single allow-listed credential."""
    return VaultConfig(
        server_secret=SERVER_SECRET,
        credential_names=["X", "MISSING"],
    )


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return MemoryStore()


@pytest.fixture
def registry(store, config):
    return DeviceRegistry(store, config)


@pytest.fixture
def key_store(store, config):
    return MasterKeyStore(store, config)


@pytest.fixture
def credential_source():
    return {"X": "secret-val"}


@pytest.fixture
def broker(registry, key_store, config, credential_source):
    return CredentialBroker(registry, key_store, config, credential_source)
