"""ID token verification service."""

from typing import Any

from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger

from iam_bridge.core.models.claims import IdentityClaims
from iam_bridge.core.services.jwt.jwks import JwksService
from iam_bridge.core.services.jwt.jwt_utils import lookup_provider, preview_jwt
from iam_bridge.exceptions import TokenDecodeError
from iam_bridge.runtime.config.config_data import OIDCProviderConfig
from iam_bridge.runtime.context import get_config


class IdTokenVerifier:
    def __init__(self, jwks_service: JwksService):
        self._jwks_service = jwks_service

    async def _verification_key(self, provider: OIDCProviderConfig, kid: str | None):
        if not provider.jwks_uri:
            if not provider.client_secret:
                raise TokenDecodeError("Provider has neither JWKS URI nor client secret")
            return provider.client_secret.encode("utf-8")

        jwks = await self._jwks_service.fetch_jwks(provider)
        keys = jwks.get("keys", [])
        if kid:
            keys = [k for k in keys if k.get("kid") == kid]
            if not keys:
                raise TokenDecodeError(f"No JWK matches kid={kid}")
        if len(keys) == 1:
            return JsonWebKey.import_key(keys[0])
        return JsonWebKey.import_key_set({"keys": keys})

    async def verify_id_token(
        self,
        token: str,
        *,
        provider: str | None = None,
        nonce: str | None = None,
    ) -> IdentityClaims:
        """Verify an ID token and extract its identity claims.

        Args:
            token: Compact serialized ID token
            provider: Name of the configured provider, looked up by issuer when omitted
            nonce: Nonce the token must carry, if one was sent

        Raises:
            TokenDecodeError: If the token is malformed, badly signed, expired or
                meant for another audience
        """
        cfg = get_config()
        pv = preview_jwt(token)
        if pv.alg not in cfg.jwt.allowed_algorithms:
            raise TokenDecodeError(f"Disallowed JWT algorithm: {pv.alg}")

        name, provider_cfg = lookup_provider(provider, pv.iss)
        audience = cfg.iam.audience or provider_cfg.client_id

        claims_options: dict[str, Any] = {
            "aud": {"essential": True, "values": [audience]},
            "sub": {"essential": True},
            "exp": {"essential": True},
            "iat": {"essential": True},
        }
        if provider_cfg.issuer:
            claims_options["iss"] = {
                "essential": True,
                "values": [provider_cfg.issuer, provider_cfg.issuer.rstrip("/")],
            }

        key = await self._verification_key(provider_cfg, pv.kid)
        logger.debug(f"Verifying ID token from provider {name} for audience {audience}")

        try:
            jwt = JsonWebToken(cfg.jwt.allowed_algorithms)
            claims = jwt.decode(token, key, claims_options=claims_options)
            claims.validate(leeway=cfg.jwt.clock_skew)
        except (JoseError, ValueError) as exc:
            raise TokenDecodeError(f"JWT error: {exc}") from exc

        if nonce is not None and claims.get("nonce") != nonce:
            raise TokenDecodeError("Invalid/missing nonce")

        if not claims.get("sub"):
            raise TokenDecodeError("Missing sub claim")

        try:
            return IdentityClaims.from_jwt_payload(dict(claims))
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenDecodeError(f"Malformed ID token claims: {exc}") from exc
