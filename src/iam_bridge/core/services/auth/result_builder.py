"""Convert authentication outcomes into results for the auth framework."""

from collections.abc import Mapping

from loguru import logger

from iam_bridge.core.models.auth import AuthResult
from iam_bridge.core.services.auth.identity_resolver import ResolvedIdentity
from iam_bridge.exceptions import SecondaryEmailImpersonation
from iam_bridge.runtime.context import get_config

SECONDARY_EMAIL_ERROR = "iam.authenticator.secondary_email_error"
UNKNOWN_ERROR = "login.omniauth_error_unknown"

DEFAULT_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        SECONDARY_EMAIL_ERROR: (
            "You have signed in with {secondary_email}, which is a secondary email "
            "address on your account. Please sign in with your primary email address "
            "{primary_email} using {idp}."
        ),
        UNKNOWN_ERROR: "Sorry, there was an error authorizing your account. Please try again.",
    }
}


class MessageCatalog:
    """Locale keyed message templates formatted with `str.format`."""

    def __init__(
        self,
        locale: str = "en",
        overrides: Mapping[str, str] | None = None,
        messages: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        catalog = messages or DEFAULT_MESSAGES
        self._defaults = dict(DEFAULT_MESSAGES["en"])
        self._templates = {**catalog.get("en", {}), **catalog.get(locale, {})}
        self._templates.update(overrides or {})

    @classmethod
    def from_config(cls) -> "MessageCatalog":
        iam = get_config().iam
        return cls(iam.locale, iam.messages)

    def render(self, key: str, **params: str) -> str:
        """Format the template for `key`.

        A template that cannot be formatted with `params` falls back to the
        built-in English text, then to the key itself.
        """
        template = self._templates.get(key)
        if template is None:
            return key
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError) as e:
            logger.warning(f"Message template {key!r} cannot be rendered: {e!r}")

        default = self._defaults.get(key)
        if default is None or default == template:
            return key
        try:
            return default.format(**params)
        except (KeyError, IndexError, ValueError):
            return key


class AuthResultBuilder:
    def __init__(self, catalog: MessageCatalog | None = None) -> None:
        self._catalog = catalog or MessageCatalog.from_config()

    def success(self, resolved: ResolvedIdentity) -> AuthResult:
        return AuthResult(
            email=resolved.email,
            email_valid=resolved.email_valid,
            user=resolved.user,
            name=resolved.name,
            extra_data={"uid": resolved.subject_uid},
        )

    def failure(self, error: BaseException) -> AuthResult:
        logger.opt(exception=error).error(
            f"Authentication failed: {type(error).__name__}: {error}"
        )

        if isinstance(error, SecondaryEmailImpersonation):
            reason = self._catalog.render(
                SECONDARY_EMAIL_ERROR,
                secondary_email=error.email,
                primary_email=error.user.primary_email,
                idp=error.idp,
            )
        else:
            reason = self._catalog.render(UNKNOWN_ERROR)
        return AuthResult(failed=True, failed_reason=reason)
