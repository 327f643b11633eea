import base64
import json
import time

import httpx
import pytest

from iam_bridge.core.services.jwt.jwks import JWKSCacheInMemory, JwksService
from iam_bridge.core.services.jwt.jwt_verify import IdTokenVerifier
from iam_bridge.exceptions import TokenDecodeError
from iam_bridge.runtime.config.config_data import (
    ConfigData,
    IAMConfig,
    OIDCConfig,
    OIDCProviderConfig,
)
from iam_bridge.runtime.context import with_context
from tests.utils import TEST_CLIENT_ID, TEST_ISSUER, TEST_SECRET, make_id_token, oct_jwk

JWKS_URI = "https://auth.test/.well-known/jwks.json"


def _b64(obj) -> str:
    return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()


class TestSharedSecretVerification:
    async def test_valid_token(self, id_token_verifier):
        token = make_id_token(email="JDoe@example.com", nonce="n-1")

        claims = await id_token_verifier.verify_id_token(token, nonce="n-1")

        assert claims.subject == "ad|Mozilla-LDAP|jdoe"
        assert claims.email == "JDoe@example.com"
        assert claims.email_verified is True
        assert claims.logout_delay == 900

    async def test_provider_found_by_issuer(self, id_token_verifier):
        claims = await id_token_verifier.verify_id_token(make_id_token())
        assert claims.issuer == TEST_ISSUER

    @pytest.mark.parametrize(
        "token_kwargs",
        [
            {"iat": int(time.time()) - 7 * 86400, "exp": int(time.time()) - 60},
            {"aud": "someone-else"},
            {"iss": "https://evil.test/"},
            {"secret": "a-completely-different-secret-value-000"},
        ],
        ids=["expired", "audience", "issuer", "signature"],
    )
    async def test_rejected(self, id_token_verifier, token_kwargs):
        with pytest.raises(TokenDecodeError):
            await id_token_verifier.verify_id_token(
                make_id_token(**token_kwargs), provider="auth0"
            )

    async def test_nonce_mismatch(self, id_token_verifier):
        with pytest.raises(TokenDecodeError, match="nonce"):
            await id_token_verifier.verify_id_token(
                make_id_token(nonce="n-1"), nonce="n-2"
            )

    async def test_malformed(self, id_token_verifier):
        with pytest.raises(TokenDecodeError):
            await id_token_verifier.verify_id_token("really_invalid")

    async def test_unsigned_token(self, id_token_verifier):
        token = f"{_b64({'alg': 'none'})}.{_b64({'sub': 'x'})}.sig"
        with pytest.raises(TokenDecodeError, match="Disallowed"):
            await id_token_verifier.verify_id_token(token)

    async def test_audience_override(self, id_token_verifier):
        with with_context(ConfigData(iam=IAMConfig(audience="forum"))):
            claims = await id_token_verifier.verify_id_token(make_id_token(aud="forum"))
        assert claims.audience == "forum"

    async def test_unknown_provider(self, id_token_verifier):
        with pytest.raises(TokenDecodeError, match="Unknown provider"):
            await id_token_verifier.verify_id_token(make_id_token(), provider="github")


class TestJwksVerification:
    @pytest.fixture
    def jwks_provider(self, app_config):
        provider = OIDCProviderConfig(
            issuer=TEST_ISSUER,
            authorization_endpoint="https://auth.test/authorize",
            jwks_uri=JWKS_URI,
            client_id=TEST_CLIENT_ID,
            redirect_uri="http://testserver/auth/jwks/callback",
        )
        with with_context(ConfigData(oidc=OIDCConfig(providers={"jwks": provider}))):
            yield provider

    @pytest.fixture
    def calls(self) -> list[str]:
        return []

    @pytest.fixture
    def verifier(self, calls) -> IdTokenVerifier:
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(
                200, json={"keys": [oct_jwk(TEST_SECRET.encode(), "key-1")]}
            )

        service = JwksService(JWKSCacheInMemory(), transport=httpx.MockTransport(handler))
        return IdTokenVerifier(service)

    async def test_keys_fetched_once(self, jwks_provider, verifier, calls):
        token = make_id_token(kid="key-1")

        await verifier.verify_id_token(token, provider="jwks")
        await verifier.verify_id_token(token, provider="jwks")

        assert calls == [JWKS_URI]

    async def test_unknown_kid(self, jwks_provider, verifier):
        with pytest.raises(TokenDecodeError, match="kid"):
            await verifier.verify_id_token(make_id_token(kid="other"), provider="jwks")

    async def test_fetch_failure(self, jwks_provider):
        service = JwksService(
            JWKSCacheInMemory(),
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(TokenDecodeError, match="JWKS"):
            await IdTokenVerifier(service).verify_id_token(
                make_id_token(kid="key-1"), provider="jwks"
            )
