"""Auth API endpoints for Google sign-in."""

import json
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from appdoki.api.deps import (
    get_auth_service,
    get_platform,
    get_provider_client,
    require_verified_caller,
)
from appdoki.config import Settings, get_settings
from appdoki.core.exceptions import DecodeRequestError, StateMismatchError
from appdoki.core.platform import Platform
from appdoki.core.security import (
    clear_oauth_state_cookie,
    generate_oauth_state,
    set_oauth_state_cookie,
    states_match,
)
from appdoki.schemas.user import (
    AuthCodePayload,
    ConsentURLResponse,
    Identity,
    TokenResponse,
    UserResponse,
)
from appdoki.services.auth import AuthService
from appdoki.services.google_oauth import GoogleProviderClient

router = APIRouter(prefix="/auth", tags=["auth"])


async def read_code_payload(request: Request) -> AuthCodePayload:
    """Decode ``{"code": ...}`` from the request body."""
    try:
        return AuthCodePayload.model_validate(await request.json())
    except (
        json.JSONDecodeError,
        UnicodeDecodeError,
        RecursionError,  # nesting too deep for the json decoder
        ValidationError,
    ) as error:
        raise DecodeRequestError("malformed code payload") from error


@router.get("/url", response_model=ConsentURLResponse)
async def get_consent_url(
    _caller: Annotated[Identity, Depends(require_verified_caller)],
    provider: Annotated[GoogleProviderClient, Depends(get_provider_client)],
) -> ConsentURLResponse:
    """Return the URL of Google's consent page, requesting offline access."""
    state = generate_oauth_state()
    url = await provider.build_consent_url(state, offline_access=True)
    return ConsentURLResponse(url=url)


@router.get("/login")
async def login(
    provider: Annotated[GoogleProviderClient, Depends(get_provider_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RedirectResponse:
    """
    Initiate the browser redirect flow.

    The state is stored in a cookie and checked again on /auth/google/callback.
    """
    state = generate_oauth_state()
    url = await provider.build_consent_url(state)
    response = RedirectResponse(url=url, status_code=307)
    set_oauth_state_cookie(response, state, settings)
    return response


@router.get("/google/callback", response_model=TokenResponse)
async def google_callback(
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    request: Request,
    code: str = "",
    state: str = "",
) -> TokenResponse:
    """
    Handle Google's redirect back to the API.

    The returned state must match the cookie set by /auth/login.
    """
    issued_state = request.cookies.get(settings.oauth_state_cookie_name)
    if not states_match(issued_state, state):
        raise StateMismatchError("oauth state does not match cookie")

    raw_id_token = await service.login_with_code(code)
    clear_oauth_state_cookie(response, settings)
    return TokenResponse(token=raw_id_token)


@router.api_route("/token", methods=["GET", "POST"], response_model=TokenResponse)
async def token(
    payload: Annotated[AuthCodePayload, Depends(read_code_payload)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Exchange a client-submitted authorization code for the raw ID token."""
    raw_id_token = await service.login_with_code(payload.code)
    return TokenResponse(token=raw_id_token)


@router.post("/user", response_model=UserResponse)
async def find_or_create_user(
    service: Annotated[AuthService, Depends(get_auth_service)],
    platform: Annotated[Platform, Depends(get_platform)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> UserResponse:
    """
    Sign in with an ID token the client obtained from Google itself.

    The token must have been minted for the client id of the platform named
    in the ``platform`` header. The user is created on first sign-in.
    """
    user = await service.login_with_bearer(authorization, platform)
    return UserResponse.model_validate(user)
