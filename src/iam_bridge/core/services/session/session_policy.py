from cachetools import TTLCache
from loguru import logger

from iam_bridge.core.storage.kv_store import KeyValueStore
from iam_bridge.runtime.context import get_config

LOGOUT_DELAY_CACHE_KEY = "logout_delay"


class SessionPolicy:
    """Holds the session logout delay published by the last sign-in.

    The value is written to the durable key-value store and to a short-lived
    in-process cache; reads prefer the cache.
    """

    def __init__(
        self,
        durable: KeyValueStore,
        cache: TTLCache | None = None,
        namespace: str | None = None,
    ) -> None:
        iam = get_config().iam
        self._durable = durable
        self._cache = (
            cache
            if cache is not None
            else TTLCache(maxsize=16, ttl=iam.logout_delay_cache_ttl)
        )
        self._namespace = namespace or iam.store_namespace

    @property
    def durable_key(self) -> str:
        return f"{self._namespace}:{LOGOUT_DELAY_CACHE_KEY}"

    @property
    def current(self) -> int | None:
        """Cached logout delay without touching the durable store."""
        return self._cache.get(LOGOUT_DELAY_CACHE_KEY)

    async def publish_logout_delay(self, seconds: int) -> None:
        await self._durable.set(self.durable_key, str(int(seconds)))
        self._cache[LOGOUT_DELAY_CACHE_KEY] = int(seconds)
        logger.debug(f"Published logout_delay={seconds}s")

    async def logout_delay(self) -> int | None:
        cached = self.current
        if cached is not None:
            return cached

        stored = await self._durable.get(self.durable_key)
        if stored is None:
            return None
        value = int(stored)
        self._cache[LOGOUT_DELAY_CACHE_KEY] = value
        return value
