"""User directory interface and in-memory implementation.

The directory is the system of record for local accounts. The IAM bridge
reads accounts by id or email and only writes secondary emails and the IAM
link state (`iam_uid`, `last_refresh`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from iam_bridge.core.models.profile import EmailAddResult, EmailAddStatus
from iam_bridge.entities.core.user.entity import (
    LocalUser,
    is_valid_email,
    normalize_email,
)
from iam_bridge.exceptions import InvalidEmailError


def checked_email(email: str) -> str:
    """Normalise an address, raising InvalidEmailError when it is malformed."""
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise InvalidEmailError(email)
    return normalized


class UserDirectory(ABC):
    """Abstract interface for user directory backends."""

    @abstractmethod
    def get(self, user_id: str) -> LocalUser | None:
        """Load a user by id."""
        raise NotImplementedError

    @abstractmethod
    def find_by_email(self, email: str) -> LocalUser | None:
        """Load the user owning an address, primary or secondary."""
        raise NotImplementedError

    @abstractmethod
    def create_user(
        self,
        primary_email: str,
        *,
        name: str | None = None,
        username: str | None = None,
        secondary_emails: Iterable[str] = (),
    ) -> LocalUser:
        """Create an account.

        Raises:
            ValueError: If any of the addresses already belongs to an account
        """
        raise NotImplementedError

    @abstractmethod
    def add_secondary_email(self, user: LocalUser, email: str) -> EmailAddResult:
        """Assign a secondary address to `user`.

        An address owned by another account is reported as TAKEN rather than
        raised. Each call is its own transaction.

        Raises:
            InvalidEmailError: If the address is malformed
        """
        raise NotImplementedError

    @abstractmethod
    def remove_secondary_email(self, user: LocalUser, email: str) -> None:
        """Drop a secondary address from `user`.

        The stored primary is never removed; `user.secondary_emails` always
        loses `email`.
        """
        raise NotImplementedError

    @abstractmethod
    def save_iam_state(self, user: LocalUser, uid: str, last_refresh: datetime) -> None:
        """Persist `iam_uid` and `last_refresh` together in one write."""
        raise NotImplementedError


class InMemoryUserDirectory(UserDirectory):
    """Dictionary-backed directory, used in development and tests."""

    def __init__(self) -> None:
        self._users: dict[str, LocalUser] = {}
        self._owners: dict[str, str] = {}

    def get(self, user_id: str) -> LocalUser | None:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def find_by_email(self, email: str) -> LocalUser | None:
        owner_id = self._owners.get(normalize_email(email))
        return self.get(owner_id) if owner_id else None

    def create_user(
        self,
        primary_email: str,
        *,
        name: str | None = None,
        username: str | None = None,
        secondary_emails: Iterable[str] = (),
    ) -> LocalUser:
        primary = checked_email(primary_email)
        secondary = {checked_email(email) for email in secondary_emails} - {primary}
        taken = [email for email in {primary, *secondary} if email in self._owners]
        if taken:
            raise ValueError(f"Email already in use: {', '.join(sorted(taken))}")

        user = LocalUser(
            primary_email=primary,
            secondary_emails=secondary,
            name=name,
            username=username,
        )
        self._users[user.id] = user
        for email in (primary, *secondary):
            self._owners[email] = user.id
        logger.debug(f"Created user {user.id} <{primary}>")
        return user.model_copy(deep=True)

    def add_secondary_email(self, user: LocalUser, email: str) -> EmailAddResult:
        email = checked_email(email)
        owner_id = self._owners.get(email)
        if owner_id is not None and owner_id != user.id:
            return EmailAddResult(email, EmailAddStatus.TAKEN, owner_id)

        stored = self._users[user.id]
        if email != stored.primary_email:
            self._owners[email] = user.id
            stored.secondary_emails.add(email)
            user.secondary_emails.add(email)
        return EmailAddResult(email, EmailAddStatus.ADDED, user.id)

    def remove_secondary_email(self, user: LocalUser, email: str) -> None:
        email = normalize_email(email)
        stored = self._users[user.id]
        if email != stored.primary_email and self._owners.get(email) == user.id:
            del self._owners[email]
        stored.secondary_emails.discard(email)
        user.secondary_emails.discard(email)

    def save_iam_state(self, user: LocalUser, uid: str, last_refresh: datetime) -> None:
        stored = self._users[user.id]
        stored.iam_uid = user.iam_uid = uid
        stored.last_refresh = user.last_refresh = last_refresh
