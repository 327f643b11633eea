import base64
import json
from dataclasses import dataclass
from typing import Any, Final

from iam_bridge.exceptions import TokenDecodeError
from iam_bridge.runtime.config.config_data import OIDCProviderConfig
from iam_bridge.runtime.context import get_config

MAX_JWT_CHARS: Final = 8192


def _b64url_json(segment: str, what: str) -> dict[str, Any]:
    pad = (-len(segment)) % 4
    try:
        raw = base64.urlsafe_b64decode((segment + "=" * pad).encode("ascii"))
        obj = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError) as e:
        raise TokenDecodeError(f"Invalid {what} encoding") from e
    if not isinstance(obj, dict):
        raise TokenDecodeError(f"{what} must be a JSON object")
    return obj


@dataclass(frozen=True)
class JwtPreview:
    """Unverified view of a compact JWT, used to pick keys before verification."""

    header: dict[str, Any]
    claims: dict[str, Any]

    @property
    def alg(self) -> str | None:
        return self.header.get("alg")

    @property
    def kid(self) -> str | None:
        return self.header.get("kid")

    @property
    def iss(self) -> str | None:
        iss = self.claims.get("iss")
        return iss.rstrip("/") if isinstance(iss, str) else None


def preview_jwt(token: str) -> JwtPreview:
    """Split a compact JWT and decode header and payload without verifying."""
    if not token or len(token) > MAX_JWT_CHARS:
        raise TokenDecodeError("Invalid JWT size")
    parts = token.split(".")
    if len(parts) != 3 or not all(parts):
        raise TokenDecodeError("Invalid JWT format")
    return JwtPreview(
        header=_b64url_json(parts[0], "header"),
        claims=_b64url_json(parts[1], "payload"),
    )


def lookup_provider(
    name: str | None = None, issuer: str | None = None
) -> tuple[str, OIDCProviderConfig]:
    """Find a configured provider by name, then by issuer, then the default."""
    providers = get_config().oidc.providers
    if name:
        if name not in providers:
            raise TokenDecodeError(f"Unknown provider: {name}")
        return name, providers[name]

    if issuer:
        for key, provider in providers.items():
            if provider.issuer and provider.issuer.rstrip("/") == issuer:
                return key, provider

    default = get_config().oidc.default_provider
    if default in providers:
        return default, providers[default]
    raise TokenDecodeError("No OIDC provider configured")
