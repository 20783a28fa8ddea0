"""FastAPI dependencies for authentication.

These dependencies give route handlers the application-wide objects built
in `create_app()` and the current session, if any.

## Usage

```python
from fastapi import Depends
from lichess_auth.auth import Session, bearer_headers, require_session

@app.get("/api/games")
async def my_games(session: Session = Depends(require_session)):
    async with httpx.AsyncClient() as client:
        response = await client.get(url, headers=bearer_headers(session))
    ...
```

A session cookie that is missing and one that fails to decode are treated
the same way; the difference is only logged.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request

from lichess_auth.auth.flow import AuthFlow
from lichess_auth.auth.lichess import LichessAPIError, LichessOAuth
from lichess_auth.auth.results import AuthErrorKind
from lichess_auth.auth.session import Session, SessionCodec, SessionUser
from lichess_auth.config import Settings

logger = logging.getLogger(__name__)


class AuthenticationRequired(Exception):
    """Raised by `require_session` when the request carries no valid session.

    ``kind`` tells a missing cookie from one that failed to decode; both
    are reported to the client the same way.
    """

    def __init__(
        self,
        message: str = "No session found",
        kind: AuthErrorKind = AuthErrorKind.NO_SESSION,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_session_codec(request: Request) -> SessionCodec:
    """The application's session codec."""
    return request.app.state.codec


def get_lichess_oauth(request: Request) -> LichessOAuth:
    """The application's Lichess OAuth client."""
    return request.app.state.oauth


def get_auth_flow(request: Request) -> AuthFlow:
    """The application's login flow."""
    return request.app.state.flow


def read_session(request: Request, settings: Settings, codec: SessionCodec) -> Session | None:
    """Read and decode the session cookie of ``request``.

    Returns None if no session or invalid session. Makes no network call.
    """
    raw = request.cookies.get(settings.cookies.session.name)
    if raw is None:
        return None

    session = codec.decode(raw)
    if session is None:
        logger.debug("Session cookie present but could not be decoded")
    return session


async def get_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    codec: SessionCodec = Depends(get_session_codec),
) -> Session | None:
    """Get the current session if logged in, or None."""
    return read_session(request, settings, codec)


async def is_authenticated(
    session: Session | None = Depends(get_session),
) -> bool:
    """Whether the request carries a valid session."""
    return session is not None


async def require_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    codec: SessionCodec = Depends(get_session_codec),
) -> Session:
    """Get the current session.

    Raises AuthenticationRequired (401) if not authenticated.
    """
    session = read_session(request, settings, codec)
    if session is None:
        if request.cookies.get(settings.cookies.session.name):
            raise AuthenticationRequired(kind=AuthErrorKind.SESSION_DECODE_ERROR)
        raise AuthenticationRequired()

    return session


def bearer_headers(session: Session) -> dict[str, str]:
    """Authorization header for Lichess API calls made for this session."""
    return {"Authorization": f"Bearer {session.access_token}"}


async def get_fresh_user_data(session: Session, oauth: LichessOAuth) -> SessionUser:
    """Re-fetch the user's profile, falling back to the stored user block.

    Not used for authorization decisions; only for consumers that want up
    to date profile fields.
    """
    try:
        account = await oauth.get_account(session.access_token)
    except LichessAPIError as e:
        logger.warning(f"Could not refresh profile of {session.user.username}: {e}")
        return session.user

    return SessionUser(id=account.id, username=account.username, title=account.title)
