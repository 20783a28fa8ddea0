"""Authentication routes.

Handles the Lichess OAuth login flow and session endpoints.

## OAuth Flow

1. GET /login - Redirect to the Lichess consent screen
2. GET /callback - Handle the OAuth callback, set the session cookie
3. POST or GET /logout - Clear the session
4. GET /status - Whether the request is authenticated
5. GET /session - The decoded session
6. GET /me - Current user, refreshed from Lichess when possible

## Session Management

Sessions are stored in HTTP-only cookies. The session token is a signed JWT
carrying the Lichess user and the encrypted access token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from lichess_auth.api.responses import delete_cookie, error_redirect, set_cookie
from lichess_auth.auth.dependencies import (
    get_app_settings,
    get_auth_flow,
    get_fresh_user_data,
    get_lichess_oauth,
    is_authenticated,
    require_session,
)
from lichess_auth.auth.flow import AuthFlow
from lichess_auth.auth.lichess import LichessOAuth
from lichess_auth.auth.results import AuthErrorKind, Err
from lichess_auth.auth.session import Session, SessionUser
from lichess_auth.config import Settings, get_base_url

logger = logging.getLogger(__name__)

router = APIRouter()


class AuthStatusResponse(BaseModel):
    """Authentication status response."""

    model_config = ConfigDict(populate_by_name=True)

    is_authenticated: bool = Field(alias="isAuthenticated")


class LogoutResponse(BaseModel):
    """Logout acknowledgement."""

    success: bool = True


def _clear_session_cookies(response: Response, settings: Settings) -> None:
    delete_cookie(response, settings, settings.cookies.session)
    for name in settings.legacy_session_cookie_names:
        delete_cookie(response, settings, settings.cookies.session, name=name)


@router.get("/login")
async def login(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    flow: AuthFlow = Depends(get_auth_flow),
) -> RedirectResponse:
    """Initiate Lichess OAuth login.

    Redirects the user to the Lichess consent screen. After consent,
    Lichess redirects back to /callback.
    """
    base_url = get_base_url(request, settings)
    try:
        start = flow.start_login(base_url)
    except RuntimeError as e:
        logger.error(f"Cannot start login: {e}")
        return error_redirect(
            settings,
            base_url,
            Err(AuthErrorKind.MISCONFIGURED, "Lichess OAuth not configured"),
        )

    response = RedirectResponse(url=start.authorization_url, status_code=status.HTTP_302_FOUND)
    set_cookie(response, settings, settings.cookies.verifier, start.verifier_cookie)
    return response


@router.get("/callback")
async def callback(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    flow: AuthFlow = Depends(get_auth_flow),
) -> RedirectResponse:
    """Handle the Lichess OAuth callback.

    Exchanges the authorization code for a token, fetches the account and
    sets the session cookie. Every failure ends in a redirect to the error
    route.
    """
    base_url = get_base_url(request, settings)
    outcome = await flow.handle_callback(
        request.query_params,
        request.cookies.get(settings.cookies.verifier.name),
        base_url,
    )

    if isinstance(outcome.result, Err):
        response = error_redirect(settings, base_url, outcome.result)
    else:
        response = RedirectResponse(
            url=f"{base_url}{settings.landing_path}",
            status_code=status.HTTP_302_FOUND,
        )
        set_cookie(response, settings, settings.cookies.session, outcome.session_cookie)

    if outcome.clear_verifier:
        delete_cookie(response, settings, settings.cookies.verifier)

    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_app_settings),
) -> LogoutResponse:
    """Log out the current user.

    Clears the session cookie and any legacy session cookies. Lichess is
    not contacted.
    """
    _clear_session_cookies(response, settings)
    return LogoutResponse()


@router.get("/logout")
async def logout_redirect(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Log out and send the browser to the home page."""
    response = RedirectResponse(
        url=f"{get_base_url(request, settings)}{settings.home_path}",
        status_code=status.HTTP_302_FOUND,
    )
    _clear_session_cookies(response, settings)
    return response


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    authenticated: bool = Depends(is_authenticated),
) -> AuthStatusResponse:
    """Get the current authentication status."""
    return AuthStatusResponse(is_authenticated=authenticated)


@router.get("/session")
async def get_session_data(
    session: Session = Depends(require_session),
) -> JSONResponse:
    """Return the decoded session, or 401 if there is none."""
    return JSONResponse(content=session.to_public_dict())


@router.get("/me", response_model=SessionUser)
async def current_user(
    session: Session = Depends(require_session),
    oauth: LichessOAuth = Depends(get_lichess_oauth),
) -> SessionUser:
    """Get the current user, refreshed from Lichess when it answers."""
    return await get_fresh_user_data(session, oauth)
