import base64
import time
from typing import Any

from authlib.jose import jwt

TEST_SECRET = "iam-bridge-test-secret-0123456789abcdef"
TEST_ISSUER = "https://auth.test/"
TEST_CLIENT_ID = "test-client-id"


def oct_jwk(key: bytes, kid: str) -> dict[str, str]:
    return {
        "kty": "oct",
        "k": base64.urlsafe_b64encode(key).rstrip(b"=").decode("ascii"),
        "alg": "HS256",
        "kid": kid,
    }


def create_uid(username: str) -> str:
    return f"ad|Mozilla-LDAP|{username}"


def make_id_token(
    *,
    sub: str = "ad|Mozilla-LDAP|jdoe",
    email: str | None = "jdoe@example.com",
    email_verified: bool = True,
    name: str | None = "John Doe",
    iat: int | None = None,
    exp: int | None = None,
    secret: str = TEST_SECRET,
    kid: str | None = None,
    **extra: Any,
) -> str:
    """Sign an HS256 ID token the way the test provider would issue it."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "iss": TEST_ISSUER,
        "aud": TEST_CLIENT_ID,
        "sub": sub,
        "email_verified": email_verified,
        "iat": now if iat is None else iat,
        "exp": now + 900 if exp is None else exp,
        **extra,
    }
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name

    header = {"alg": "HS256", "typ": "JWT"}
    if kid:
        header["kid"] = kid
    token = jwt.encode(header, payload, secret.encode("utf-8"))
    return token.decode("utf-8") if isinstance(token, bytes) else token
