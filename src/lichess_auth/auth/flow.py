"""The Lichess login flow.

## OAuth Flow

1. `AuthFlow.start_login` generates a PKCE pair and a state value, builds
   the Lichess authorization URL and seals the verifier for its cookie
2. Lichess shows its consent screen and redirects back with ``code``
   (or ``error``)
3. `AuthFlow.handle_callback` validates the callback, exchanges the code
   for a token, fetches the account and builds the session

`handle_callback` checks, in order: provider error, missing code, missing
verifier, state mismatch. Once the verifier has been read it is consumed:
the outcome always asks for the verifier cookie to be deleted, whether the
exchange succeeds, fails or raises.

Two logins started from the same browser share one verifier cookie, so the
second overwrites the first and the first callback then fails the state
check (or the token exchange). This is accepted.

The flow knows nothing about HTTP responses; route handlers apply the
returned `CallbackOutcome` to a redirect.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from lichess_auth.auth.lichess import (
    ExchangeTimeout,
    LichessAccount,
    LichessOAuth,
    LichessTokens,
    ProfileFetchError,
    ProfileTimeout,
    TokenExchangeError,
)
from lichess_auth.auth.pkce import PKCEPair, generate_pkce_pair
from lichess_auth.auth.results import AuthErrorKind, Err, Ok, Result
from lichess_auth.auth.session import Session, SessionCodec, SessionUser
from lichess_auth.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginStart:
    """Everything the login route needs to redirect the browser."""

    authorization_url: str
    redirect_uri: str
    verifier_cookie: str
    pair: PKCEPair


@dataclass(frozen=True)
class CallbackOutcome:
    """Result of a callback plus the cookie changes it requires.

    Attributes:
        result: The session, or why there is none
        session_cookie: Encoded session cookie value on success
        clear_verifier: Whether the verifier cookie must be deleted
    """

    result: Result[Session]
    session_cookie: str | None = None
    clear_verifier: bool = False


class AuthFlow:
    """Runs the authorization code + PKCE login against Lichess."""

    def __init__(self, settings: Settings, oauth: LichessOAuth, codec: SessionCodec):
        self.settings = settings
        self.oauth = oauth
        self.codec = codec

    def redirect_uri(self, base_url: str) -> str:
        """The callback URL registered for ``base_url``."""
        return f"{base_url}{self.settings.auth_prefix}/callback"

    def start_login(self, base_url: str) -> LoginStart:
        """Begin a login attempt.

        Args:
            base_url: Public base URL of the application

        Returns:
            LoginStart with the authorization URL and verifier cookie value

        Raises:
            RuntimeError: If the OAuth client is not configured
        """
        pair = generate_pkce_pair()
        redirect_uri = self.redirect_uri(base_url)
        url = self.oauth.authorization_url(
            redirect_uri=redirect_uri,
            code_challenge=pair.challenge,
            state=pair.state,
        )

        logger.info(f"Starting Lichess login, redirect_uri={redirect_uri}")

        return LoginStart(
            authorization_url=url,
            redirect_uri=redirect_uri,
            verifier_cookie=self.codec.encode_verifier(pair),
            pair=pair,
        )

    def check_state(self, pair: PKCEPair, returned_state: str | None) -> Result[None]:
        """Compare the callback's state with the one sealed at login.

        A different state is always rejected. A missing one is rejected only
        when ``enforce_state`` is set.
        """
        if returned_state is None:
            if self.settings.enforce_state:
                return Err(AuthErrorKind.INVALID_STATE, "Missing state parameter")
            return Ok(None)

        if returned_state != pair.state:
            logger.warning("OAuth state mismatch, possible CSRF or concurrent login")
            return Err(AuthErrorKind.INVALID_STATE, "State parameter validation failed")

        return Ok(None)

    async def exchange(
        self,
        code: str,
        verifier: str,
        redirect_uri: str,
    ) -> Result[LichessTokens]:
        """Exchange the authorization code for tokens."""
        try:
            return Ok(await self.oauth.exchange_code(code, verifier, redirect_uri))
        except ExchangeTimeout as e:
            return Err(AuthErrorKind.EXCHANGE_TIMEOUT, str(e))
        except TokenExchangeError as e:
            return Err(AuthErrorKind.TOKEN_EXCHANGE_ERROR, str(e))

    async def fetch_profile(self, access_token: str) -> Result[LichessAccount]:
        """Fetch the account that owns ``access_token``."""
        try:
            return Ok(await self.oauth.get_account(access_token))
        except ProfileTimeout as e:
            return Err(AuthErrorKind.PROFILE_TIMEOUT, str(e))
        except ProfileFetchError as e:
            return Err(AuthErrorKind.PROFILE_FETCH_ERROR, str(e))

    @staticmethod
    def build_session(tokens: LichessTokens, account: LichessAccount) -> Session:
        """Assemble the session from the token and account responses."""
        return Session(
            access_token=tokens.access_token,
            user=SessionUser(
                id=account.id,
                username=account.username,
                title=account.title,
            ),
        )

    async def _complete(
        self,
        code: str,
        pair: PKCEPair,
        returned_state: str | None,
        base_url: str,
    ) -> Result[Session]:
        state_check = self.check_state(pair, returned_state)
        if isinstance(state_check, Err):
            return state_check

        tokens = await self.exchange(code, pair.verifier, self.redirect_uri(base_url))
        if isinstance(tokens, Err):
            return tokens

        account = await self.fetch_profile(tokens.value.access_token)
        if isinstance(account, Err):
            return account

        return Ok(self.build_session(tokens.value, account.value))

    async def handle_callback(
        self,
        params: Mapping[str, str],
        verifier_cookie: str | None,
        base_url: str,
    ) -> CallbackOutcome:
        """Process the provider's redirect back to the application.

        Args:
            params: Callback query parameters
            verifier_cookie: Raw verifier cookie value, if the browser sent one
            base_url: Public base URL of the application

        Returns:
            CallbackOutcome describing the session and cookie changes
        """
        error = params.get("error")
        if error:
            description = params.get("error_description") or ""
            logger.warning(f"Lichess returned an OAuth error: {error} {description}")
            return CallbackOutcome(
                Err(AuthErrorKind.PROVIDER_ERROR, description, code=error)
            )

        code = params.get("code")
        if not code:
            return CallbackOutcome(
                Err(AuthErrorKind.MISSING_CODE, "No authorization code")
            )

        pair = self.codec.decode_verifier(verifier_cookie)
        if pair is None:
            logger.info("Callback without a usable PKCE verifier cookie")
            return CallbackOutcome(
                Err(AuthErrorKind.MISSING_VERIFIER, "No PKCE verifier"),
                clear_verifier=bool(verifier_cookie),
            )

        # From here on the verifier is spent, whatever happens
        try:
            result = await self._complete(code, pair, params.get("state"), base_url)
            if isinstance(result, Err):
                logger.warning(f"Lichess login failed: {result.kind.value} {result.detail}")
                return CallbackOutcome(result, clear_verifier=True)

            session_cookie = self.codec.encode(result.value)
        except Exception:
            logger.exception("Unexpected error during OAuth callback")
            return CallbackOutcome(
                Err(AuthErrorKind.UNEXPECTED, "Unexpected error during login"),
                clear_verifier=True,
            )

        logger.info(f"User {result.value.user.username} logged in")
        return CallbackOutcome(result, session_cookie=session_cookie, clear_verifier=True)
