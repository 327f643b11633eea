from abc import ABC, abstractmethod
from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from iam_bridge.exceptions import TokenDecodeError
from iam_bridge.runtime.config.config_data import OIDCProviderConfig


class JWKSCache(ABC):
    @abstractmethod
    def get_jwks(self, jwks_uri: str) -> dict[str, Any]:
        """Get the cached JWKS for a JWKS endpoint, or an empty dict."""
        raise NotImplementedError

    @abstractmethod
    def set_jwks(self, jwks_uri: str, jwks: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_jwks_cache(self) -> None:
        """Clear the JWKS cache."""
        raise NotImplementedError


class JWKSCacheInMemory(JWKSCache):
    def __init__(self, maxsize: int = 10, ttl: int = 3600) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get_jwks(self, jwks_uri: str) -> dict[str, Any]:
        return self._cache.get(jwks_uri, {})

    def set_jwks(self, jwks_uri: str, jwks: dict[str, Any]) -> None:
        self._cache[jwks_uri] = jwks

    def clear_jwks_cache(self) -> None:
        self._cache.clear()


class JwksService:
    """Fetches provider signing keys, serving repeats from the cache."""

    def __init__(
        self, cache: JWKSCache, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._cache = cache
        self._transport = transport

    async def fetch_jwks(self, provider: OIDCProviderConfig) -> dict[str, Any]:
        jwks_url = provider.jwks_uri
        if not jwks_url:
            raise TokenDecodeError("Provider has no JWKS URI configured")

        jwks = self._cache.get_jwks(jwks_url)
        if jwks:
            return jwks

        logger.debug(f"Fetching JWKS from {jwks_url}")
        try:
            async with httpx.AsyncClient(timeout=5, transport=self._transport) as client:
                resp = await client.get(jwks_url)
                resp.raise_for_status()
                jwks = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TokenDecodeError(f"Failed to fetch JWKS: {exc}") from exc

        self._cache.set_jwks(jwks_url, jwks)
        return jwks
