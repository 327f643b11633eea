"""Authenticator hooks called by the external auth framework."""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from loguru import logger

from iam_bridge.core.models.auth import AuthResult, AuthToken
from iam_bridge.core.services.auth.identity_resolver import IdentityResolver
from iam_bridge.core.services.auth.result_builder import AuthResultBuilder
from iam_bridge.core.services.jwt.jwt_verify import IdTokenVerifier
from iam_bridge.core.services.profile.profile import Profile, utc_now
from iam_bridge.core.services.profile.profile_store import ProfileStore
from iam_bridge.core.services.session.session_policy import SessionPolicy
from iam_bridge.entities.core.user.directory import UserDirectory
from iam_bridge.entities.core.user.entity import LocalUser
from iam_bridge.runtime.config.config_data import OIDCProviderConfig
from iam_bridge.runtime.context import get_config

SESSION_KEY = "iam"


class Authenticator:
    """Runs the IAM checks and profile refresh around an OIDC sign-in."""

    def __init__(
        self,
        *,
        verifier: IdTokenVerifier,
        directory: UserDirectory,
        profile_store: ProfileStore,
        session_policy: SessionPolicy,
        provider: str | None = None,
        result_builder: AuthResultBuilder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._verifier = verifier
        self._directory = directory
        self._profile_store = profile_store
        self._session_policy = session_policy
        self._provider = provider
        self._resolver = IdentityResolver(directory)
        self._result_builder = result_builder or AuthResultBuilder()
        self._clock = clock or utc_now

    @property
    def name(self) -> str:
        return self._provider or get_config().oidc.default_provider

    def enabled(self) -> bool:
        return True

    def _profile(self, user: LocalUser, uid: str) -> Profile:
        return Profile(
            user,
            uid,
            directory=self._directory,
            store=self._profile_store,
            clock=self._clock,
        )

    async def after_authenticate(self, auth_token: AuthToken) -> AuthResult:
        """Verify the ID token, resolve the account and refresh its profile.

        Never raises: every error becomes a failed result and is logged.
        """
        try:
            claims = await self._verifier.verify_id_token(
                auth_token.id_token, provider=self._provider, nonce=auth_token.nonce
            )
            await self._session_policy.publish_logout_delay(claims.logout_delay)
            auth_token.session[SESSION_KEY] = {"last_refresh": self._clock().isoformat()}

            resolved = self._resolver.resolve(claims)
            if resolved.user is not None:
                force = get_config().iam.force_refresh_on_login
                await self._profile(resolved.user, resolved.subject_uid).refresh(
                    force=force
                )

            logger.info(
                f"Authenticated {claims.subject} "
                f"({'user ' + resolved.user.id if resolved.user else 'no local user'})"
            )
            return self._result_builder.success(resolved)
        except Exception as e:
            return self._result_builder.failure(e)

    async def after_create_account(
        self, user: LocalUser, auth: Mapping[str, Any]
    ) -> datetime | None:
        """Link a freshly created account to its IAM profile.

        Args:
            user: The account the framework just created
            auth: The successful result data, carrying `extra_data.uid`

        Returns:
            The account's new `last_refresh`
        """
        uid = auth["extra_data"]["uid"]
        await self._profile(user, uid).force_refresh()
        return user.last_refresh

    def authorize_params(self, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        """Parameters for the provider authorization request."""
        return authorize_params(get_config().oidc.providers.get(self.name), overrides)


def authorize_params(
    provider: OIDCProviderConfig | None, overrides: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Parameters for a provider authorization request.

    `prompt` and `action` supplied by the caller replace the defaults.
    """
    params: dict[str, str] = {"scope": "openid name email", "action": "signup"}
    if provider is not None:
        params["scope"] = " ".join(provider.scopes)
        params.update(provider.authorize_params)
    for key in ("prompt", "action"):
        if overrides and overrides.get(key):
            params[key] = overrides[key]
    return params
