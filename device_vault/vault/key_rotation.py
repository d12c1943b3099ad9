"""
Vault Key Rotation — Scheduled master key rotation.

``rotate_master_key`` is the unit of work an external scheduler runs.
``run_periodic_rotation`` runs it in-process every ``interval`` seconds.
The aiohttp application runs the loop for its own lifetime.

Security Note:
    Never log the new key value.
"""
import asyncio
import logging
from typing import Optional

from .key_store import MasterKeyStore
from .exceptions import VaultError

logger = logging.getLogger("device_vault.vault")


async def rotate_master_key(key_store: MasterKeyStore) -> str:
    """Rotate the master key once.

    Raises:
        StoreUnavailable: If the store rejects the new record.
    """
    logger.info("Starting master key rotation")
    try:
        value = await key_store.rotate()
    except VaultError as err:
        logger.error("Rotation error: %s", err)
        raise
    logger.info("Master key rotated")
    return value


async def run_periodic_rotation(
    key_store: MasterKeyStore,
    interval: float,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Rotate the master key every ``interval`` seconds until stopped.

    A failed rotation is logged and retried at the next interval.
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("Periodic master key rotation every %s second(s)", interval)
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
            break
        except asyncio.TimeoutError:
            pass
        try:
            await rotate_master_key(key_store)
        except VaultError:
            # already logged by rotate_master_key
            continue
        except Exception:
            logger.exception("Unexpected rotation error")
            continue
    logger.info("Periodic master key rotation stopped")

