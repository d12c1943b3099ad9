"""HTTP layer of the device vault.

Routes:
    POST /devices/register   {"uuid": ...}       -> {"signature": ...}
    POST /keys/get           {"signature": ...}  -> {"masterKey": envelope}
    POST /credentials/get    {"signature": ...}  -> {"masterKey": ..., "credentials": ...}
"""
import asyncio
import logging
from typing import Any, Optional
from collections.abc import Mapping

import orjson
from aiohttp import web

from .conf import (
    VAULT_CONFIG,
    VAULT_STORE,
    DEVICE_REGISTRY,
    MASTER_KEY_STORE,
    CREDENTIAL_BROKER,
)
from .storage import AbstractStore, MemoryStore, PostgresStore
from .vault.broker import CredentialBroker
from .vault.config import VaultConfig
from .vault.exceptions import (
    DuplicateIdentifierError,
    KeyFormatError,
    StoreUnavailable,
    VaultError,
)
from .vault.key_rotation import run_periodic_rotation
from .vault.key_store import MasterKeyStore
from .vault.registry import DeviceRegistry

logger = logging.getLogger("device_vault.handlers")


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def json_error(message: str, status: int) -> web.Response:
    return json_response({"error": message}, status=status)


async def _read_field(request: web.Request, *names: str) -> Optional[str]:
    """Return the first non-empty string among ``names`` in the JSON body."""
    try:
        body = await request.json(loads=orjson.loads)
    except ValueError:
        raise web.HTTPBadRequest(
            text=_dumps({"error": "Invalid JSON body"}),
            content_type="application/json",
        ) from None
    if not isinstance(body, dict):
        return None
    for name in names:
        value = body.get(name)
        # returned verbatim; only signatures are trimmed downstream
        if isinstance(value, str) and value.strip():
            return value
    return None


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map vault errors to HTTP status codes."""
    try:
        return await handler(request)
    except DuplicateIdentifierError as err:
        return json_error(str(err), 409)
    except KeyFormatError as err:
        return json_error(str(err), 400)
    except StoreUnavailable as err:
        logger.error("[%s] Store unavailable: %s", request.path, err)
        return json_error("Document store unavailable", 503)
    except VaultError as err:
        logger.error("[%s] Error: %s", request.path, err)
        return json_error("Internal error", 500)


async def register_device(request: web.Request) -> web.Response:
    identifier = await _read_field(request, "uuid", "identifier")
    if identifier is None:
        return json_error("Missing uuid", 400)
    signature = await request.app[DEVICE_REGISTRY].register(identifier)
    return json_response({"signature": signature})


async def get_master_key(request: web.Request) -> web.Response:
    signature = await _read_field(request, "signature")
    if signature is None:
        return json_error("Missing signature", 400)
    envelope = await request.app[CREDENTIAL_BROKER].get_master_key_for_device(
        signature
    )
    if envelope is None:
        return json_error("Device not found", 404)
    return json_response({"masterKey": envelope.to_dict()})


async def get_credentials(request: web.Request) -> web.Response:
    signature = await _read_field(request, "signature")
    if signature is None:
        return json_error("Missing signature", 400)
    payload = await request.app[CREDENTIAL_BROKER].get_credentials_for_device(
        signature
    )
    if payload is None:
        return json_error("Device not found", 404)
    return json_response(payload.to_dict())


async def rotation_ctx(app: web.Application):
    """Run periodic master key rotation for the lifetime of the app."""
    interval = app[VAULT_CONFIG].rotation_interval
    if not interval:
        yield
        return
    stop_event = asyncio.Event()
    task = asyncio.create_task(
        run_periodic_rotation(app[MASTER_KEY_STORE], interval, stop_event)
    )
    yield
    stop_event.set()
    await task


def setup_vault(
    app: web.Application,
    config: VaultConfig,
    store: AbstractStore,
    credential_source: Optional[Mapping[str, str]] = None,
) -> web.Application:
    """Wire the vault services and routes into an aiohttp application."""
    registry = DeviceRegistry(store, config)
    key_store = MasterKeyStore(store, config)
    app[VAULT_CONFIG] = config
    app[VAULT_STORE] = store
    app[DEVICE_REGISTRY] = registry
    app[MASTER_KEY_STORE] = key_store
    app[CREDENTIAL_BROKER] = CredentialBroker(
        registry, key_store, config, credential_source,
    )
    app.middlewares.append(error_middleware)
    app.router.add_post("/devices/register", register_device)
    app.router.add_post("/keys/get", get_master_key)
    app.router.add_post("/credentials/get", get_credentials)
    app.cleanup_ctx.append(rotation_ctx)
    return app


async def create_app(config: Optional[VaultConfig] = None) -> web.Application:
    """Build the vault application from configuration.

    Uses PostgreSQL when ``config.dsn`` is set, an in-memory store otherwise.
    """
    config = config or VaultConfig.from_env()
    if config.dsn:
        store = await PostgresStore.from_dsn(config.dsn, timeout=config.store_timeout)
        await store.create_schema(unique={config.device_collection: ["identifier"]})
    else:
        logger.warning("VAULT_DSN not set, using in-memory document store")
        store = MemoryStore(unique={config.device_collection: ["identifier"]})
    app = setup_vault(web.Application(), config, store)

    async def close_store(app: web.Application) -> None:
        await app[VAULT_STORE].close()

    app.on_cleanup.append(close_store)
    logger.info(
        "Device vault ready: devices=%s master_keys=%s",
        config.device_collection, config.master_key_collection,
    )
    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    web.run_app(create_app())
