"""Sign-in checks and result handling."""

from .authenticator import Authenticator, authorize_params
from .identity_resolver import IdentityResolver, ResolvedIdentity
from .result_builder import AuthResultBuilder, MessageCatalog

__all__ = [
    "AuthResultBuilder",
    "Authenticator",
    "IdentityResolver",
    "MessageCatalog",
    "ResolvedIdentity",
    "authorize_params",
]
