from dataclasses import dataclass

from iam_bridge.core.services import (
    DbSessionService,
    IdTokenVerifier,
    JWKSCacheInMemory,
    JwksService,
    ProfileStore,
    RedisService,
    SessionPolicy,
)


@dataclass
class ApplicationDependencies:
    jwks_cache: JWKSCacheInMemory
    jwks_service: JwksService
    id_token_verifier: IdTokenVerifier
    profile_store: ProfileStore
    session_policy: SessionPolicy
    database_service: DbSessionService
    redis_service: RedisService | None = None
