"""Core services exports."""

from .auth.authenticator import Authenticator
from .auth.identity_resolver import IdentityResolver, ResolvedIdentity
from .auth.result_builder import AuthResultBuilder, MessageCatalog
from .database.db_session import DbSessionService
from .jwt.jwks import JWKSCache, JWKSCacheInMemory, JwksService
from .jwt.jwt_verify import IdTokenVerifier
from .profile.email_reconciler import EmailReconciler
from .profile.profile import Profile, idp_from_uid
from .profile.profile_store import HttpProfileStore, InMemoryProfileStore, ProfileStore
from .redis_service import RedisService
from .session.session_policy import SessionPolicy

__all__ = [
    # Auth
    "Authenticator",
    "AuthResultBuilder",
    "IdentityResolver",
    "MessageCatalog",
    "ResolvedIdentity",
    # JWT
    "IdTokenVerifier",
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    # Profile
    "EmailReconciler",
    "HttpProfileStore",
    "InMemoryProfileStore",
    "Profile",
    "ProfileStore",
    "idp_from_uid",
    # Infrastructure
    "DbSessionService",
    "RedisService",
    "SessionPolicy",
]
