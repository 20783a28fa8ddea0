"""Authentication module for the Lichess client.

Provides Lichess OAuth (authorization code + PKCE) and cookie sessions.

## OAuth Flow

1. User clicks "Login with Lichess"
2. Generate a PKCE verifier, seal it in a short-lived cookie
3. Redirect to the Lichess consent screen with the S256 challenge
4. Lichess redirects back with an authorization code
5. Exchange code + verifier for an access token, delete the verifier cookie
6. Fetch the account, create the session and set the session cookie

## Security

- Verifier and access token are encrypted before reaching the browser
- Sessions are signed JWTs in HTTP-only cookies
- HTTPS required in production
"""

from lichess_auth.auth.dependencies import (
    AuthenticationRequired,
    bearer_headers,
    get_fresh_user_data,
    get_session,
    is_authenticated,
    require_session,
)
from lichess_auth.auth.flow import AuthFlow, CallbackOutcome, LoginStart
from lichess_auth.auth.lichess import (
    ExchangeTimeout,
    LichessAPIError,
    LichessOAuth,
    ProfileFetchError,
    ProfileTimeout,
    TokenExchangeError,
)
from lichess_auth.auth.pkce import PKCEPair, derive_challenge, generate_verifier
from lichess_auth.auth.results import AuthErrorKind, Err, Ok
from lichess_auth.auth.session import Session, SessionCodec, SessionUser

__all__ = [
    "AuthFlow",
    "CallbackOutcome",
    "LoginStart",
    "LichessOAuth",
    "LichessAPIError",
    "TokenExchangeError",
    "ExchangeTimeout",
    "ProfileFetchError",
    "ProfileTimeout",
    "PKCEPair",
    "generate_verifier",
    "derive_challenge",
    "AuthErrorKind",
    "Ok",
    "Err",
    "Session",
    "SessionUser",
    "SessionCodec",
    "AuthenticationRequired",
    "get_session",
    "is_authenticated",
    "require_session",
    "bearer_headers",
    "get_fresh_user_data",
]
