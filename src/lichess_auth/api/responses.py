"""Response helpers shared by the routes.

Browser-facing routes report failures as a redirect to the application's
error page; API routes report them as JSON with a status code. Both take an
`Err` from the login flow.

Cookie writes also live here so every route uses the same cookie policy.
"""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import Response, status
from fastapi.responses import JSONResponse, RedirectResponse

from lichess_auth.auth.results import Err
from lichess_auth.config import CookieSettings, Settings


def error_redirect(settings: Settings, base_url: str, err: Err) -> RedirectResponse:
    """Redirect to the error route with ``error`` and ``error_description``."""
    query = urlencode({"error": err.error_code, "error_description": err.detail})
    return RedirectResponse(
        url=f"{base_url}{settings.error_path}?{query}",
        status_code=status.HTTP_302_FOUND,
    )


def error_json(err: Err) -> JSONResponse:
    """Report an error to an API consumer."""
    return JSONResponse(
        status_code=err.kind.http_status,
        content={"error": err.detail or err.error_code},
    )


def set_cookie(
    response: Response,
    settings: Settings,
    cookie: CookieSettings,
    value: str,
) -> None:
    """Set an HTTP-only cookie according to its policy."""
    response.set_cookie(
        key=cookie.name,
        value=value,
        max_age=cookie.max_age,
        path=cookie.path,
        httponly=True,
        secure=settings.cookie_secure(cookie),
        samesite=cookie.same_site,
    )


def delete_cookie(
    response: Response,
    settings: Settings,
    cookie: CookieSettings,
    name: str | None = None,
) -> None:
    """Expire a cookie. ``name`` overrides the policy's name for legacy cookies."""
    response.delete_cookie(
        key=name or cookie.name,
        path=cookie.path,
        httponly=True,
        secure=settings.cookie_secure(cookie),
        samesite=cookie.same_site,
    )
