"""Redis connection service for managing Redis client lifecycle and health checks."""

from loguru import logger
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from iam_bridge.runtime.context import get_config


class RedisService:
    """Owns the Redis client backing the durable key-value store.

    Follows the same pattern as DbSessionService.
    """

    def __init__(self):
        config = get_config()
        redis_config = config.redis

        self._enabled = redis_config.enabled
        self._client = None
        self._url = redis_config.url

        if not self._enabled:
            logger.info("Redis is disabled, service will not connect")
            return

        if not self._url:
            logger.warning("Redis URL not configured, service will not connect")
            self._enabled = False
            return

        import redis.asyncio as redis_async

        retry = Retry(ExponentialBackoff(base=1, cap=10), retries=3)
        try:
            self._client = redis_async.from_url(
                redis_config.connection_string,
                encoding="utf-8",
                decode_responses=redis_config.decode_responses,
                socket_timeout=redis_config.socket_timeout,
                socket_connect_timeout=redis_config.socket_timeout,
                health_check_interval=30,
                retry=retry,
                client_name="iam_bridge",
            )
        except ValueError as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            self._enabled = False
            self._client = None
            if config.app.environment == "production":
                raise
            return

        logger.info("Redis client initialized for {}", self._url.split("@")[-1])

    def get_client(self):
        """Get the Redis async client instance.

        Returns:
            Redis async client if enabled and connected, None otherwise.
        """
        if not self._enabled or not self._client:
            return None
        return self._client

    async def health_check(self) -> bool:
        if not self._client:
            return False
        try:
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the Redis connection and clean up resources."""
        if self._client:
            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            finally:
                self._client = None

    @property
    def is_enabled(self) -> bool:
        return self._enabled
