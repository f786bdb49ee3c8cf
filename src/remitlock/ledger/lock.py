"""
Settlement Lock Service.

Serializes every read-decide-write on one commitment (and every fee
withdrawal for one owner), so a redeem and a reclaim racing on the same
lock cannot both observe it ACTIVE and both pay out.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from remitlock.core.exceptions import LockContentionError
from remitlock.core.logging import get_logger

if TYPE_CHECKING:
    from remitlock.storage.base import StorageBackend

logger = get_logger("ledger.lock")


class SettlementLockService:
    """
    Service for managing settlement mutexes.

    Implements a distributed lock pattern using the storage backend.
    """

    def __init__(
        self,
        storage: StorageBackend,
        ttl: int = 60,
        retry_count: int = 3,
        retry_delay: float = 0.05,
    ) -> None:
        """
        Initialize lock service.

        Args:
            storage: Storage backend (Redis/Memory)
            ttl: Lock time-to-live in seconds
            retry_count: Number of retries if lock is held
            retry_delay: Delay between retries in seconds
        """
        self._storage = storage
        self._ttl = ttl
        self._retry_count = retry_count
        self._retry_delay = retry_delay

    async def acquire(self, key: str) -> str | None:
        """
        Acquire the mutex for key.

        Returns:
            lock_token (str) if successful, None if failed
        """
        lock_key = f"lock:{key}"

        for i in range(self._retry_count + 1):
            token = await self._storage.acquire_lock(lock_key, self._ttl)
            if token:
                logger.debug(f"Acquired {lock_key} (token: {token[:8]}...)")
                return token

            if i < self._retry_count:
                logger.debug(f"{lock_key} held, retrying in {self._retry_delay}s...")
                await asyncio.sleep(self._retry_delay)

        logger.warning(f"Failed to acquire {lock_key} after {self._retry_count} retries")
        return None

    async def release(self, key: str, token: str) -> bool:
        """
        Release a previously acquired mutex.

        Returns:
            True if released, False if not found or token mismatch
        """
        lock_key = f"lock:{key}"
        result = await self._storage.release_lock(lock_key, token)
        if result:
            logger.debug(f"Released {lock_key}")
        else:
            logger.warning(f"Release of {lock_key} failed: lock expired or token mismatch")
        return result

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[str]:
        """
        Hold the mutex for key for the duration of the block.

        Raises:
            LockContentionError: If the mutex could not be obtained
        """
        token = await self.acquire(key)
        if token is None:
            raise LockContentionError(
                "Operation already in progress, try again",
                details={"key": key},
            )
        try:
            yield token
        finally:
            await self.release(key, token)


def commitment_key(commitment: str) -> str:
    return f"commitment:{commitment}"


def fee_account_key(owner: str) -> str:
    return f"fees:{owner}"
