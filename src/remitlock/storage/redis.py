"""
Redis Storage Backend.

Production storage backend using Redis for persistence and for the
settlement mutex shared by every process serving one ledger.
Requires redis-py package.
"""

from __future__ import annotations

import json
import os
import uuid
from typing import Any

from remitlock.storage.base import StorageBackend, register_storage_backend


class RedisStorage(StorageBackend):
    """
    Redis storage backend.

    Documents are JSON strings, counters are native Redis integers, and
    every collection keeps a set index of its keys.
    """

    # Lua script for safe lock release: only delete if token matches
    _RELEASE_LOCK_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        redis_url: str | None = None,
        prefix: str = "remitlock",
        client: Any = None,
    ) -> None:
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (or from REMITLOCK_REDIS_URL env)
            prefix: Key prefix for all storage keys
            client: Pre-built ``redis.asyncio`` client (skips lazy connect)
        """
        self._redis_url = redis_url or os.environ.get(
            "REMITLOCK_REDIS_URL",
            "redis://localhost:6379/0",
        )
        self._prefix = prefix
        self._client = client

    def _get_client(self):
        """Lazy-load Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    def _make_key(self, collection: str, key: str) -> str:
        return f"{self._prefix}:{collection}:{key}"

    def _index_key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}:_index"

    def _lock_key(self, key: str) -> str:
        return f"{self._prefix}:locks:{key}"

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        client = self._get_client()
        await client.set(self._make_key(collection, key), json.dumps(data))
        await client.sadd(self._index_key(collection), key)

    async def save_if_absent(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        """Save data unless the key exists (Redis SET NX)."""
        client = self._get_client()
        created = await client.set(self._make_key(collection, key), json.dumps(data), nx=True)
        if not created:
            return False
        await client.sadd(self._index_key(collection), key)
        return True

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        client = self._get_client()
        data = await client.get(self._make_key(collection, key))

        if data is None:
            return None

        try:
            value = json.loads(data)
        except json.JSONDecodeError:
            value = None
        # Counters created via atomic_add are bare integers
        if not isinstance(value, dict):
            return {"value": str(data)}
        return value

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        client = self._get_client()
        result = await client.delete(self._make_key(collection, key))
        await client.srem(self._index_key(collection), key)
        return result > 0

    async def atomic_add(
        self,
        collection: str,
        key: str,
        amount: int,
    ) -> int:
        """Atomically add amount (INCRBY)."""
        client = self._get_client()
        new_val = await client.incrby(self._make_key(collection, key), int(amount))
        await client.sadd(self._index_key(collection), key)
        return int(new_val)

    async def acquire_lock(
        self,
        key: str,
        ttl: int = 30,
    ) -> str | None:
        """
        Acquire a distributed lock with ownership token (Redis SET NX).

        Returns:
            Unique ownership token if acquired, None if already held
        """
        client = self._get_client()
        token = str(uuid.uuid4())

        result = await client.set(self._lock_key(key), token, nx=True, ex=ttl)
        if result:
            return token
        return None

    async def release_lock(
        self,
        key: str,
        token: str,
    ) -> bool:
        """
        Release a lock safely using Lua script.

        Only deletes the key if the stored value matches our token.
        """
        client = self._get_client()
        result = await client.eval(self._RELEASE_LOCK_SCRIPT, 1, self._lock_key(key), token)
        return int(result) > 0

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        client = self._get_client()
        keys = await client.smembers(self._index_key(collection))

        results = []
        for key in sorted(keys):
            data = await self.get(collection, key)
            if data is None:
                continue
            if filters and any(data.get(k) != v for k, v in filters.items()):
                continue

            data["_key"] = key
            results.append(data)

        results = results[offset:]
        if limit is not None:
            results = results[:limit]

        return results

    async def update(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        existing = await self.get(collection, key)
        if existing is None:
            return False

        existing.update(data)
        await self.save(collection, key, existing)
        return True

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        if filters:
            results = await self.query(collection, filters)
            return len(results)

        client = self._get_client()
        return await client.scard(self._index_key(collection))

    async def clear(self, collection: str) -> int:
        client = self._get_client()
        keys = await client.smembers(self._index_key(collection))

        for key in keys:
            await self.delete(collection, key)

        return len(keys)

    async def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            client = self._get_client()
            await client.ping()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


# Register backend
register_storage_backend("redis", RedisStorage)
