"""IAM profile bound to a local account."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone

from loguru import logger

from iam_bridge.core.models.profile import Freshness, ReconciliationOutcome
from iam_bridge.core.services.profile.email_reconciler import EmailReconciler
from iam_bridge.core.services.profile.freshness import is_stale
from iam_bridge.core.services.profile.profile_store import ProfileStore
from iam_bridge.entities.core.user.directory import UserDirectory
from iam_bridge.entities.core.user.entity import LocalUser
from iam_bridge.runtime.context import get_config


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def idp_from_uid(
    uid: str | None,
    display_names: Mapping[str, str] | None = None,
    unknown: str = "Unknown",
) -> str:
    """Human readable identity provider of a `protocol|provider|local-id` uid.

    >>> idp_from_uid("ad|Mozilla-LDAP|jdoe", {"Mozilla-LDAP": "LDAP"})
    'LDAP'
    >>> idp_from_uid("github|1234", {"github": "GitHub"})
    'GitHub'
    """
    if not uid:
        return unknown
    segments = uid.split("|")
    if len(segments) >= 3:
        provider = segments[1]
    elif len(segments) == 2:
        provider = segments[0]
    else:
        return unknown
    if not provider:
        return unknown
    return (display_names or {}).get(provider, provider)


class Profile:
    """The IAM profile of one account, identified by the subject uid."""

    def __init__(
        self,
        user: LocalUser,
        uid: str,
        *,
        directory: UserDirectory,
        store: ProfileStore,
        refresh_interval: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        iam = get_config().iam
        self.user = user
        self.uid = uid
        self._directory = directory
        self._store = store
        self._refresh_interval = refresh_interval or timedelta(
            seconds=iam.refresh_interval_seconds
        )
        self._clock = clock or utc_now
        self._last_outcome: ReconciliationOutcome | None = None

    @classmethod
    def for_user(
        cls,
        user: LocalUser,
        *,
        directory: UserDirectory,
        store: ProfileStore,
        **kwargs,
    ) -> Profile | None:
        """Profile of an already linked account, None if it was never linked."""
        if not user.iam_uid:
            return None
        return cls(user, user.iam_uid, directory=directory, store=store, **kwargs)

    @property
    def idp(self) -> str:
        iam = get_config().iam
        return idp_from_uid(self.uid, iam.idp_display_names, iam.unknown_idp)

    @property
    def freshness(self) -> Freshness:
        return Freshness(last_refresh=self.user.last_refresh, uid=self.user.iam_uid)

    @property
    def taken_emails(self) -> list[str]:
        return list(self._last_outcome.taken_emails) if self._last_outcome else []

    def is_stale(self, force: bool = False, now: datetime | None = None) -> bool:
        return is_stale(
            self.freshness,
            self.uid,
            now or self._clock(),
            self._refresh_interval,
            force=force,
        )

    async def refresh(self, force: bool = False) -> ReconciliationOutcome | None:
        """Pull the remote profile and apply it to the account when stale.

        Returns:
            The reconciliation outcome, or None when the data was fresh

        Raises:
            ProfileFetchError: If the remote record cannot be fetched; the
                account is left untouched
        """
        now = self._clock()
        if not self.is_stale(force=force, now=now):
            logger.debug(f"Profile {self.uid} of user {self.user.id} is fresh")
            return None

        attributes = await self._store.fetch(self.uid)
        outcome = EmailReconciler(self._directory).reconcile(
            self.user, attributes.secondary_emails
        )
        self._directory.save_iam_state(self.user, self.uid, now)
        self._last_outcome = outcome

        logger.info(f"Refreshed profile {self.uid} of user {self.user.id}")
        return outcome

    async def force_refresh(self) -> ReconciliationOutcome | None:
        return await self.refresh(force=True)
