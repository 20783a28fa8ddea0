"""Lichess OAuth client.

Implements the client side of the OAuth 2.0 authorization code flow with
PKCE against Lichess. Lichess does not issue client secrets; the PKCE
verifier is the only proof the token request comes from the client that
started the login.

## OAuth Endpoints

- Authorization: https://lichess.org/oauth
- Token: https://lichess.org/api/token
- Account ("who am I"): https://lichess.org/api/account

## Token Response

```json
{"token_type": "Bearer", "access_token": "lio_...", "expires_in": 31536000}
```

## Scopes

Scopes are configured in `Settings.scopes`, for example:
- preference:read: Read preferences
- challenge:write: Create, accept, decline challenges
- board:play: Play with the Board API
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from lichess_auth.config import Settings

logger = logging.getLogger(__name__)

AUTHORIZE_PATH = "/oauth"
TOKEN_PATH = "/api/token"
ACCOUNT_PATH = "/api/account"


class LichessAPIError(Exception):
    """Base exception for failed calls to Lichess."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TokenExchangeError(LichessAPIError):
    """Raised when the token endpoint rejects the code or returns garbage."""


class ExchangeTimeout(TokenExchangeError):
    """Raised when the token endpoint does not answer in time."""


class ProfileFetchError(LichessAPIError):
    """Raised when the account endpoint fails."""


class ProfileTimeout(ProfileFetchError):
    """Raised when the account endpoint does not answer in time."""


@dataclass
class LichessTokens:
    """OAuth tokens from Lichess."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None


@dataclass
class LichessAccount:
    """The subset of the Lichess account we keep, plus the raw payload."""

    id: str
    username: str
    title: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class LichessOAuth:
    """Lichess OAuth 2.0 client.

    Builds authorization URLs and performs the two back-channel calls the
    login needs. Every call opens its own `httpx.AsyncClient`; ``timeout``
    bounds each phase of the request and the call as a whole. Nothing is
    retried.

    Example:
        ```python
        oauth = LichessOAuth(client_id="my-app", scopes=["preference:read"])

        # Redirect the user to the consent screen
        url = oauth.authorization_url(redirect_uri, pair.challenge, pair.state)

        # Handle callback
        tokens = await oauth.exchange_code(code, pair.verifier, redirect_uri)
        account = await oauth.get_account(tokens.access_token)
        ```
    """

    def __init__(
        self,
        client_id: str,
        provider_url: str = "https://lichess.org",
        scopes: list[str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Lichess OAuth client.

        Args:
            client_id: OAuth client ID registered with Lichess (any string)
            provider_url: Lichess base URL
            scopes: OAuth scopes to request
            timeout: Timeout in seconds for each outbound call
            transport: Custom httpx transport (used by tests)
        """
        self.client_id = client_id
        self.provider_url = provider_url.rstrip("/")
        self.scopes = list(scopes or [])
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> LichessOAuth:
        """Create a client from application settings."""
        return cls(
            client_id=settings.client_id,
            provider_url=settings.provider_url,
            scopes=settings.scopes,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        """Check if a client ID is set."""
        return bool(self.client_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.provider_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    def authorization_url(
        self,
        redirect_uri: str,
        code_challenge: str,
        state: str | None = None,
    ) -> str:
        """Generate the Lichess authorization URL.

        Args:
            redirect_uri: Callback URL, must match the one used at exchange
            code_challenge: S256 PKCE challenge
            state: Opaque value echoed back on the callback

        Returns:
            URL to redirect the user to

        Raises:
            RuntimeError: If no client ID is configured
        """
        if not self.is_configured:
            raise RuntimeError("Lichess OAuth client ID not configured")

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(self.scopes),
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        if state:
            params["state"] = state

        return f"{self.provider_url}{AUTHORIZE_PATH}?{urlencode(params)}"

    async def exchange_code(
        self,
        code: str,
        code_verifier: str,
        redirect_uri: str,
    ) -> LichessTokens:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE verifier stored at login
            redirect_uri: The redirect URI sent at login

        Returns:
            LichessTokens with the access token

        Raises:
            ExchangeTimeout: If Lichess does not answer in time
            TokenExchangeError: If the request fails or the body is invalid
        """
        try:
            async with asyncio.timeout(self.timeout), self._client() as client:
                response = await client.post(
                    TOKEN_PATH,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": redirect_uri,
                        "client_id": self.client_id,
                        "code_verifier": code_verifier,
                    },
                    headers={"Accept": "application/json"},
                )
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.warning("Token exchange timed out")
            raise ExchangeTimeout(f"Token exchange timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Token exchange request failed: {e}")
            raise TokenExchangeError(f"Token request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Token exchange failed: {response.status_code} {response.text}")
            raise TokenExchangeError(
                f"Token request failed: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
            access_token = data["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise TokenExchangeError(
                "Token response did not contain an access token",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError(
                "Token response did not contain an access token",
                status_code=response.status_code,
            )

        return LichessTokens(
            access_token=access_token,
            token_type=data.get("token_type", "Bearer"),
            expires_in=data.get("expires_in"),
        )

    async def get_account(self, access_token: str) -> LichessAccount:
        """Get the account the access token belongs to.

        Args:
            access_token: Valid access token

        Returns:
            LichessAccount with id, username and title

        Raises:
            ProfileTimeout: If Lichess does not answer in time
            ProfileFetchError: If the request fails or the body is invalid
        """
        try:
            async with asyncio.timeout(self.timeout), self._client() as client:
                response = await client.get(
                    ACCOUNT_PATH,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.warning("Account request timed out")
            raise ProfileTimeout(f"Account request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Account request failed: {e}")
            raise ProfileFetchError(f"Userinfo request failed: {e}") from e

        if not response.is_success:
            logger.error(f"Account request failed: {response.status_code} {response.text}")
            raise ProfileFetchError(
                f"Userinfo request failed: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            data = response.json()
            account = LichessAccount(
                id=str(data["id"]),
                username=str(data["username"]),
                title=data.get("title") or None,
                raw=data,
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProfileFetchError(
                "Account response is missing id or username",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        return account
