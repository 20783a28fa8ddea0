"""Session management using signed JWT tokens.

Sessions live entirely in an HTTP-only cookie; nothing is stored on the
server. The cookie value is a signed JWT whose access token claim is
additionally encrypted, so the browser can neither read the Lichess token
nor alter the user block without invalidating the signature.

## Security

- Tokens are signed with the application secret key (HS256)
- The Lichess access token is Fernet-encrypted inside the JWT
- Tokens expire after a configurable period (default: 7 days)
- Cookies are HTTP-only to prevent XSS access
- Cookies are Secure outside development (HTTPS only)
- SameSite=Lax to prevent CSRF

## Token Structure

```json
{
  "sub": "lichess-user-id",
  "username": "User1",
  "title": null,
  "tok": "<fernet token>",
  "iat": 1234567890,
  "exp": 1235172690,
  "type": "session"
}
```

The PKCE verifier cookie is a Fernet token over
``{"v": verifier, "s": state}`` and is only accepted while younger than the
verifier cookie's max age.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lichess_auth.auth.encryption import CookieCipher, CookieDecryptError
from lichess_auth.auth.pkce import PKCEPair, derive_challenge
from lichess_auth.config import Settings

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "session"


class SessionUser(BaseModel):
    """The user block stored in the session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    title: str | None = None


class Session(BaseModel):
    """An authenticated application session.

    Serialises as ``{"accessToken": ..., "user": {...}}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(..., min_length=1, alias="accessToken")
    user: SessionUser

    def to_public_dict(self) -> dict:
        """Session in its external JSON shape."""
        return self.model_dump(by_alias=True)


class SessionCodec:
    """Encodes sessions and PKCE verifiers into cookie values and back.

    Example:
        ```python
        codec = SessionCodec.from_settings(settings)
        raw = codec.encode(session)
        assert codec.decode(raw) == session
        assert codec.decode("garbage") is None
        ```
    """

    def __init__(
        self,
        secret_key: str,
        salt: str,
        session_max_age: int,
        verifier_max_age: int,
    ):
        self._secret_key = secret_key
        self._cipher = CookieCipher(secret_key, salt)
        self.session_max_age = session_max_age
        self.verifier_max_age = verifier_max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionCodec:
        """Create a codec from application settings."""
        return cls(
            secret_key=settings.secret_key,
            salt=settings.encryption_salt,
            session_max_age=settings.cookies.session.max_age,
            verifier_max_age=settings.cookies.verifier.max_age,
        )

    def encode(self, session: Session, expires_delta: timedelta | None = None) -> str:
        """Create a signed cookie value for a session.

        Args:
            session: The session to store
            expires_delta: Custom expiration time (or the session max age)

        Returns:
            Signed JWT token string
        """
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(seconds=self.session_max_age)

        expires_at = now + expires_delta

        payload = {
            "sub": session.user.id,
            "username": session.user.username,
            "title": session.user.title,
            "tok": self._cipher.seal(session.access_token),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "type": TOKEN_TYPE,
        }

        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def decode(self, raw: str | None) -> Session | None:
        """Verify and decode a session cookie value.

        Never raises: a missing, malformed, tampered or expired value is
        reported as None, the same as no cookie at all.

        Args:
            raw: The cookie value

        Returns:
            Session if valid, None otherwise
        """
        if not raw:
            return None

        try:
            payload = jwt.decode(raw, self._secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.debug(f"Session token verification failed: {e}")
            return None

        # Verify token type
        if payload.get("type") != TOKEN_TYPE:
            logger.debug("Invalid token type")
            return None

        try:
            access_token = self._cipher.unseal(payload["tok"])
            return Session(
                access_token=access_token,
                user=SessionUser(
                    id=payload["sub"],
                    username=payload["username"],
                    title=payload.get("title"),
                ),
            )
        except (KeyError, TypeError, CookieDecryptError, ValidationError) as e:
            logger.debug(f"Invalid session payload: {e}")
            return None

    def encode_verifier(self, pair: PKCEPair) -> str:
        """Seal the verifier and state of a login attempt for its cookie."""
        return self._cipher.seal(json.dumps({"v": pair.verifier, "s": pair.state}))

    def decode_verifier(self, raw: str | None) -> PKCEPair | None:
        """Open a verifier cookie value.

        Returns:
            The login attempt's PKCE pair, or None if the value is missing,
            unreadable or older than the verifier max age
        """
        if not raw:
            return None

        try:
            data = json.loads(self._cipher.unseal(raw, ttl=self.verifier_max_age))
            verifier = data["v"]
            state = data["s"]
        except (CookieDecryptError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Verifier cookie rejected: {e}")
            return None

        if not isinstance(verifier, str) or not verifier:
            return None

        return PKCEPair(
            verifier=verifier,
            challenge=derive_challenge(verifier),
            state=state,
        )
