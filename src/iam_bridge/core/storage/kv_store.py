"""Durable key-value storage interface and implementations.

Redis-first, with an in-memory fallback when Redis is disabled or unreachable.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from iam_bridge.core.services.redis_service import RedisService


class KeyValueStore(ABC):
    """Abstract interface for key-value storage backends."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, optionally with a TTL.

        Args:
            key: Key to write
            value: Value to store
            ttl_seconds: Time to live in seconds, None keeps it forever
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve a value.

        Returns:
            The value or None if not found/expired
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a value."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if storage backend is available."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key-value storage with TTL support."""

    def __init__(self):
        self._data: dict[str, dict[str, Any]] = {}

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        self._data[key] = {"data": value, "expires_at": expires_at}

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None

        if entry["expires_at"] is not None and time.time() > entry["expires_at"]:
            del self._data[key]
            return None

        return entry["data"]

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def is_available(self) -> bool:
        """In-memory storage is always available."""
        return True


class RedisKeyValueStore(KeyValueStore):
    """Redis-based key-value storage."""

    def __init__(self, redis_client):
        self._redis = redis_client
        self._available = True

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            if ttl_seconds:
                await self._redis.setex(key, ttl_seconds, value)
            else:
                await self._redis.set(key, value)
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis set failed: {e}") from e

    async def get(self, key: str) -> str | None:
        try:
            data = await self._redis.get(key)
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis get failed: {e}") from e

        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return data

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis delete failed: {e}") from e

    def is_available(self) -> bool:
        return self._available

    async def ping(self) -> bool:
        """Test Redis connection health."""
        try:
            await self._redis.ping()
            self._available = True
            return True
        except Exception:
            self._available = False
            return False


async def create_kv_store(redis_service: RedisService | None) -> KeyValueStore:
    """Use Redis when it is enabled and answers a ping, otherwise memory."""
    client = redis_service.get_client() if redis_service else None
    if client is not None:
        store = RedisKeyValueStore(client)
        if await store.ping():
            logger.info("Key-value storage: Redis connected")
            return store
        logger.warning("Redis ping failed, using in-memory key-value storage")
    else:
        logger.info("Redis not configured, using in-memory key-value storage")
    return InMemoryKeyValueStore()
