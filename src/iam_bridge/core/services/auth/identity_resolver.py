"""Resolve the local account behind a verified identity."""

from dataclasses import dataclass

from loguru import logger

from iam_bridge.core.models.claims import IdentityClaims
from iam_bridge.core.services.profile.profile import idp_from_uid
from iam_bridge.entities.core.user.directory import UserDirectory
from iam_bridge.entities.core.user.entity import LocalUser, normalize_email
from iam_bridge.exceptions import SecondaryEmailImpersonation
from iam_bridge.runtime.config.config_data import IAMConfig
from iam_bridge.runtime.context import get_config


@dataclass
class ResolvedIdentity:
    email: str | None
    email_valid: bool
    user: LocalUser | None
    name: str | None
    subject_uid: str


class IdentityResolver:
    """Finds the account for a login and guards against secondary-email logins.

    Only a verified email is trusted to pick an account. An unverified or
    missing email resolves no account, which sends the caller down the
    sign-up path.
    """

    def __init__(self, directory: UserDirectory, config: IAMConfig | None = None):
        self._directory = directory
        self._config = config

    @property
    def config(self) -> IAMConfig:
        return self._config or get_config().iam

    def resolve(self, claims: IdentityClaims) -> ResolvedIdentity:
        user = None
        if claims.email_verified and claims.email:
            user = self._directory.find_by_email(claims.email)

        if user is not None:
            self.check_login_email(user, claims.email)

        return ResolvedIdentity(
            email=claims.email,
            email_valid=claims.email_verified,
            user=user,
            name=claims.name,
            subject_uid=claims.subject,
        )

    def check_login_email(self, user: LocalUser, email: str) -> None:
        """Raise SecondaryEmailImpersonation if `email` is a secondary of `user`."""
        email = normalize_email(email)
        if email in user.secondary_emails:
            idp = idp_from_uid(
                user.iam_uid, self.config.idp_display_names, self.config.unknown_idp
            )
            logger.warning(
                f"User {user.id} tried to sign in with secondary email {email} "
                f"(primary login via {idp})"
            )
            raise SecondaryEmailImpersonation(user, email, idp)
