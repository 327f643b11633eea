"""ID token verification package."""

from .jwks import JWKSCache, JWKSCacheInMemory, JwksService
from .jwt_utils import preview_jwt
from .jwt_verify import IdTokenVerifier
