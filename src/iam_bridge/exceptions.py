"""Domain errors raised while authenticating and refreshing IAM profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from iam_bridge.entities.core.user.entity import LocalUser


class IAMError(Exception):
    """Base class for all IAM bridge errors."""


class TokenDecodeError(IAMError):
    """The ID token is malformed, unverifiable or expired."""


class SecondaryEmailImpersonation(IAMError):
    """A user tried to sign in with one of their account's secondary emails."""

    def __init__(self, user: LocalUser, email: str, idp: str) -> None:
        self.user = user
        self.email = email
        self.idp = idp
        super().__init__(
            f"user {user.id} attempted to log in with secondary email {email}"
        )


class ProfileFetchError(IAMError):
    """The remote profile record could not be fetched."""

    def __init__(self, uid: str, detail: str) -> None:
        self.uid = uid
        self.detail = detail
        super().__init__(f"failed to fetch profile {uid}: {detail}")


class ReconciliationError(IAMError):
    """Profile data could not be applied to the local account."""


class InvalidEmailError(ReconciliationError):
    """An email address is not well formed."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"invalid email address: {email!r}")
