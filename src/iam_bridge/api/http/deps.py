"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, HTTPException, Request

from iam_bridge.api.http.app_data import ApplicationDependencies
from iam_bridge.core.services import Authenticator
from iam_bridge.entities.core.user import UserDirectory, UserRepository
from iam_bridge.runtime.config.config_data import OIDCProviderConfig
from iam_bridge.runtime.context import get_config


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_user_directory(request: Request) -> Iterator[UserDirectory]:
    """SQL user directory bound to a request-scoped database session."""
    deps = get_app_dependencies(request)
    session = deps.database_service.get_session()
    try:
        yield UserRepository(session)
    finally:
        session.close()


def get_provider_config(provider: str) -> OIDCProviderConfig:
    """Configured and enabled provider named in the path, or 404."""
    provider_cfg = get_config().oidc.providers.get(provider)
    if provider_cfg is None or not provider_cfg.enabled:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
    return provider_cfg


def get_authenticator(
    request: Request,
    provider: str,
    directory: UserDirectory = Depends(get_user_directory),
) -> Authenticator:
    deps = get_app_dependencies(request)
    return Authenticator(
        verifier=deps.id_token_verifier,
        directory=directory,
        profile_store=deps.profile_store,
        session_policy=deps.session_policy,
        provider=provider,
    )
