"""Remote IAM profile store clients."""

from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from iam_bridge.core.models.profile import ProfileAttributes
from iam_bridge.exceptions import ProfileFetchError
from iam_bridge.runtime.config.config_data import ProfileStoreConfig


class ProfileStore(ABC):
    """Source of the authoritative profile record for a subject uid."""

    @abstractmethod
    async def fetch(self, uid: str) -> ProfileAttributes:
        """Fetch the profile record of `uid`.

        Raises:
            ProfileFetchError: If the record cannot be retrieved
        """
        raise NotImplementedError


class HttpProfileStore(ProfileStore):
    """Profile store reached over HTTP with httpx."""

    def __init__(
        self,
        config: ProfileStoreConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def _url(self, uid: str) -> str:
        path = self._config.path_template.format(uid=quote(uid, safe=""))
        return self._config.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._config.api_token:
            headers["Authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def fetch(self, uid: str) -> ProfileAttributes:
        url = self._url(uid)
        logger.debug(f"Fetching IAM profile {uid} from {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.get(url, headers=self._headers())
                resp.raise_for_status()
                record = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProfileFetchError(uid, str(exc)) from exc

        if not isinstance(record, dict):
            raise ProfileFetchError(uid, "profile record is not a JSON object")
        try:
            return ProfileAttributes.from_remote(
                record, self._config.secondary_emails_field
            )
        except ValueError as exc:
            raise ProfileFetchError(uid, str(exc)) from exc


class InMemoryProfileStore(ProfileStore):
    """Dictionary-backed profile store for development and tests."""

    def __init__(self, profiles: dict[str, dict[str, Any]] | None = None) -> None:
        self.profiles: dict[str, dict[str, Any]] = dict(profiles or {})
        self.fetch_count = 0
        self.fail_with: str | None = None

    def set_secondary_emails(self, uid: str, emails: list[str] | None) -> None:
        self.profiles.setdefault(uid, {})["secondary_emails"] = emails

    async def fetch(self, uid: str) -> ProfileAttributes:
        self.fetch_count += 1
        if self.fail_with is not None:
            raise ProfileFetchError(uid, self.fail_with)
        try:
            return ProfileAttributes.from_remote(self.profiles.get(uid, {}))
        except ValueError as exc:
            raise ProfileFetchError(uid, str(exc)) from exc
