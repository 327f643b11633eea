"""Sign-in endpoints: authorize redirect and the provider callback."""

from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger

from iam_bridge.api.http.deps import get_authenticator, get_provider_config
from iam_bridge.core.models.auth import AuthToken
from iam_bridge.core.security import generate_nonce, generate_state, states_match
from iam_bridge.core.services import Authenticator
from iam_bridge.core.services.auth import authorize_params
from iam_bridge.runtime.config.config_data import OIDCProviderConfig
from iam_bridge.runtime.context import get_config

router = APIRouter(tags=["auth"])

STATE_COOKIE = "iam_auth_state"
NONCE_COOKIE = "iam_auth_nonce"


def _cookie_settings() -> dict[str, Any]:
    """Cookie options for the state and nonce cookies.

    The callback arrives as a cross-site form POST, which only carries
    SameSite=None cookies, and browsers accept those over HTTPS only.
    """
    config = get_config()
    production = config.app.environment == "production"
    return {
        "httponly": True,
        "secure": production,
        "samesite": "none" if production else "lax",
        "path": "/",
        "max_age": config.app.auth_state_ttl_seconds,
    }


def _failure_redirect(message: str, provider: str) -> RedirectResponse:
    query = urlencode({"message": message, "strategy": provider})
    return RedirectResponse(
        url=f"/auth/failure?{query}", status_code=status.HTTP_302_FOUND
    )


@router.get("/failure")
async def auth_failure(message: str = "unknown", strategy: str | None = None):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"failed": True, "message": message, "strategy": strategy},
    )


@router.get("/{provider}")
async def authorize(
    request: Request,
    provider: str,
    provider_cfg: OIDCProviderConfig = Depends(get_provider_config),
) -> RedirectResponse:
    """Redirect the browser to the provider's authorization endpoint.

    Depends on the provider configuration only.
    """
    state = generate_state()
    nonce = generate_nonce()

    params = {
        "client_id": provider_cfg.client_id,
        "redirect_uri": provider_cfg.redirect_uri,
        "response_type": "id_token",
        "response_mode": "form_post",
        "state": state,
        "nonce": nonce,
        **authorize_params(provider_cfg, request.query_params),
    }
    url = f"{provider_cfg.authorization_endpoint}?{urlencode(params)}"

    response = RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
    cookie_settings = _cookie_settings()
    response.set_cookie(key=STATE_COOKIE, value=state, **cookie_settings)
    response.set_cookie(key=NONCE_COOKIE, value=nonce, **cookie_settings)
    return response


async def _complete(
    request: Request,
    provider: str,
    authenticator: Authenticator,
    state: str | None,
    id_token: str | None,
):
    if not states_match(request.cookies.get(STATE_COOKIE), state):
        logger.warning(f"State mismatch on {provider} callback")
        return _failure_redirect("csrf_detected", provider)

    auth_token = AuthToken(
        id_token=id_token or "", nonce=request.cookies.get(NONCE_COOKIE)
    )
    result = await authenticator.after_authenticate(auth_token)

    body = result.public_dict()
    if result.failed:
        response = JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=body)
    else:
        body["session"] = auth_token.session
        response = JSONResponse(status_code=status.HTTP_200_OK, content=body)

    response.delete_cookie(STATE_COOKIE, path="/")
    response.delete_cookie(NONCE_COOKIE, path="/")
    return response


@router.get("/{provider}/callback")
async def callback_get(
    request: Request,
    provider: str,
    provider_cfg: OIDCProviderConfig = Depends(get_provider_config),
    authenticator: Authenticator = Depends(get_authenticator),
):
    """Callback reached by GET.

    Without parameters the user is sent back to sign in with `prompt=login`.
    """
    if not request.query_params:
        return RedirectResponse(
            url=f"/auth/{provider}?prompt=login", status_code=status.HTTP_302_FOUND
        )
    return await _complete(
        request,
        provider,
        authenticator,
        request.query_params.get("state"),
        request.query_params.get("id_token"),
    )


@router.post("/{provider}/callback")
async def callback_post(
    request: Request,
    provider: str,
    state: str | None = Form(default=None),
    id_token: str | None = Form(default=None),
    provider_cfg: OIDCProviderConfig = Depends(get_provider_config),
    authenticator: Authenticator = Depends(get_authenticator),
):
    """Form-post callback carrying the ID token."""
    return await _complete(request, provider, authenticator, state, id_token)
