"""
Tests for the HTTP routes.
"""
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from device_vault.handlers import setup_vault
from device_vault.storage import MemoryStore
from device_vault.vault import Envelope, VaultConfig, open_envelope
from device_vault.vault.exceptions import StoreUnavailable


class DownStore(MemoryStore):
    async def find(self, collection, filters, limit=None):
        raise StoreUnavailable("down")


async def _client(config, store, source):
    app = setup_vault(web.Application(), config, store, source)
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


@pytest_asyncio.fixture
async def client(config, store, credential_source):
    client = await _client(config, store, credential_source)
    yield client
    await client.close()


async def _register(client, identifier="device-A"):
    resp = await client.post("/devices/register", json={"uuid": identifier})
    assert resp.status == 200
    return (await resp.json())["signature"]


class TestRegisterRoute:

    async def test_register(self, client):
        signature = await _register(client)
        assert len(signature) == 64

    async def test_register_identifier_field(self, client):
        resp = await client.post("/devices/register", json={"identifier": "device-B"})
        assert resp.status == 200

    async def test_register_missing_uuid(self, client):
        resp = await client.post("/devices/register", json={})
        assert resp.status == 400
        assert (await resp.json())["error"] == "Missing uuid"

    async def test_register_invalid_json(self, client):
        resp = await client.post("/devices/register", data=b"{nope")
        assert resp.status == 400

    async def test_register_keeps_identifier_verbatim(self, client):
        """Test identifiers are not trimmed, unlike signatures."""
        padded = await _register(client, " dev-1 ")
        plain = await _register(client, "dev-1")
        assert padded != plain

    async def test_register_duplicate(self, client):
        await _register(client)
        resp = await client.post("/devices/register", json={"uuid": "device-A"})
        assert resp.status == 409
        assert "device-A" in (await resp.json())["error"]


class TestKeysRoute:

    async def test_get_master_key(self, client):
        signature = await _register(client)
        resp = await client.post("/keys/get", json={"signature": signature})
        assert resp.status == 200
        envelope = Envelope.from_dict((await resp.json())["masterKey"])
        assert len(open_envelope(envelope, signature[:64])) == 64

    async def test_unknown_device(self, client):
        resp = await client.post("/keys/get", json={"signature": "a" * 64})
        assert resp.status == 404
        assert (await resp.json())["error"] == "Device not found"

    async def test_missing_signature(self, client):
        resp = await client.post("/keys/get", json={"signature": ""})
        assert resp.status == 400

    async def test_store_unavailable(self, config, credential_source):
        client = await _client(config, DownStore(), credential_source)
        try:
            resp = await client.post("/keys/get", json={"signature": "a" * 64})
            assert resp.status == 503
        finally:
            await client.close()


class TestCredentialsRoute:

    async def test_get_credentials(self, client):
        signature = await _register(client)
        resp = await client.post("/credentials/get", json={"signature": signature})
        assert resp.status == 200
        data = await resp.json()
        master_key = open_envelope(Envelope.from_dict(data["masterKey"]), signature[:64])
        cred = Envelope.from_dict(data["credentials"]["X"])
        assert open_envelope(cred, master_key) == "secret-val"
        assert data["credentials"]["MISSING"] is None

    async def test_invalid_signature(self, client):
        resp = await client.post("/credentials/get", json={"signature": "short"})
        assert resp.status == 400

    async def test_unknown_device_when_required(self, store, credential_source):
        config = VaultConfig(
            server_secret="s", credential_names=["X"], require_registered_device=True,
        )
        client = await _client(config, store, credential_source)
        try:
            resp = await client.post("/credentials/get", json={"signature": "a" * 64})
            assert resp.status == 404
        finally:
            await client.close()
