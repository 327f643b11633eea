"""Random tokens and comparisons for the sign-in redirect flow."""

import hmac
import secrets


def generate_secure_token(length: int = 32) -> str:
    """URL-safe random token built from `length` random bytes."""
    return secrets.token_urlsafe(length)


def generate_nonce() -> str:
    return generate_secure_token(32)


def generate_state() -> str:
    return generate_secure_token(32)


def states_match(expected: str | None, received: str | None) -> bool:
    """Constant-time comparison of the stored and returned state values."""
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
