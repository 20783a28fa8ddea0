"""Application configuration.

Configuration is loaded from environment variables using pydantic-settings.
All sensitive values (secrets, client credentials) should be provided via
environment variables, not config files.

## Required Environment Variables

- SECRET_KEY: Application secret for session signing and encryption

## Optional Environment Variables

- CLIENT_ID: Lichess OAuth client ID (default: ethchess_app)
- BASE_URL: Public base URL of the app, used for the OAuth redirect URI
- SCOPES: JSON list of OAuth scopes
- COOKIES__SESSION__MAX_AGE: Session lifetime in seconds (default: 7 days)
- COOKIES__VERIFIER__MAX_AGE: PKCE verifier lifetime in seconds (default: 600)
- ENVIRONMENT: development, staging or production (default: development)

## Example .env file

```
SECRET_KEY=your-secret-key-at-least-32-characters
CLIENT_ID=my-lichess-app
BASE_URL=https://chess.example.com
SCOPES=["preference:read", "board:play"]
COOKIES__SESSION__NAME=my_session
```

## Overrides

Settings are immutable. To derive a variant, merge a partial mapping into
an existing instance; nested cookie settings merge field by field:

```python
settings = merge_settings(
    get_settings(),
    {"cookies": {"session": {"max_age": 3600}}},
)
```
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Literal

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CookieSettings(BaseModel):
    """Policy for one cookie purpose (session or PKCE verifier).

    ``secure=None`` means "secure outside development", resolved by
    `Settings.cookie_secure`. Cookies are always HTTP-only.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    max_age: int = Field(..., ge=1, description="Lifetime in seconds")
    secure: bool | None = None
    same_site: Literal["lax", "strict", "none"] = "lax"
    path: str = "/"


class SessionCookieSettings(CookieSettings):
    """Session cookie policy."""

    name: str = Field(default="user_session", min_length=1)
    max_age: int = Field(default=60 * 60 * 24 * 7, ge=1)  # 7 days


class VerifierCookieSettings(CookieSettings):
    """PKCE verifier cookie policy."""

    name: str = Field(default="lichess_verifier", min_length=1)
    max_age: int = Field(default=600, ge=1)  # 10 minutes


class CookiePolicy(BaseModel):
    """Cookie settings for every purpose, the single source of cookie names."""

    model_config = ConfigDict(frozen=True)

    session: SessionCookieSettings = SessionCookieSettings()
    verifier: VerifierCookieSettings = VerifierCookieSettings()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Lichess Auth"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # Security
    secret_key: str = Field(
        ...,
        min_length=32,
        description="Secret key for signing and encryption (min 32 chars)",
    )
    encryption_salt: str = Field(
        default="",
        validate_default=True,
        description="Salt for cookie encryption (derived if not provided)",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="CORS allowed origins",
    )

    # Lichess OAuth
    client_id: str = "ethchess_app"
    base_url: str | None = Field(
        default=None,
        description="Public base URL; derived from the request when unset",
    )
    provider_url: str = "https://lichess.org"
    scopes: list[str] = Field(
        default=["preference:read", "challenge:write", "board:play"],
        description="OAuth scopes requested at login",
    )
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    enforce_state: bool = Field(
        default=False,
        description="Reject callbacks that do not echo the OAuth state",
    )

    # Cookies
    cookies: CookiePolicy = CookiePolicy()
    legacy_session_cookie_names: list[str] = Field(
        default=["lichess_session", "lichess_token"],
        description="Older session cookie names cleared on logout",
    )

    # Routes
    auth_prefix: str = "/api/auth/lichess"
    landing_path: str = "/dashboard"
    error_path: str = "/auth/error"
    home_path: str = "/"

    @field_validator("encryption_salt", mode="before")
    @classmethod
    def generate_encryption_salt(cls, v: str, info) -> str:
        """Generate encryption salt from secret_key if not provided."""
        if v:
            return v
        # Derive salt from secret_key
        secret_key = info.data.get("secret_key", "")
        if secret_key:
            return hashlib.sha256(f"{secret_key}-salt".encode()).hexdigest()[:32]
        return secrets.token_hex(16)

    @field_validator("base_url", "provider_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Store URLs without a trailing slash so paths can be appended."""
        if v is None:
            return v
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def cookie_secure(self, cookie: CookieSettings) -> bool:
        """Resolve the secure flag for a cookie."""
        if cookie.secure is None:
            return self.environment != "development"
        return cookie.secure


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_settings(base: Settings, overrides: Mapping[str, Any] | None = None) -> Settings:
    """Return a new Settings with ``overrides`` merged into ``base``.

    Nested mappings (``cookies``, ``cookies.session``, ``cookies.verifier``)
    are merged key by key, so overriding one cookie field keeps the others.
    Lists such as ``scopes`` are replaced as a whole.

    Args:
        base: Settings to start from
        overrides: Partial settings mapping

    Returns:
        Validated, immutable Settings

    Raises:
        pydantic.ValidationError: If the merged values are invalid
    """
    if not overrides:
        return base

    data = _deep_merge(base.model_dump(), overrides)
    # Re-derive the salt when the secret changes and no salt was given
    if "secret_key" in overrides and "encryption_salt" not in overrides:
        data["encryption_salt"] = ""
    return Settings.model_validate(data)


def get_base_url(request: Request, settings: Settings) -> str:
    """Determine the public base URL of the application.

    Uses ``settings.base_url`` when configured. Otherwise the URL is built
    from the request host, honouring ``X-Forwarded-Proto`` from proxies and
    falling back to http for localhost and https everywhere else.
    """
    if settings.base_url:
        return settings.base_url

    host = request.headers.get("host") or request.url.netloc
    protocol = request.headers.get("x-forwarded-proto")
    if not protocol:
        protocol = "http" if "localhost" in host or "127.0.0.1" in host else "https"
    return f"{protocol}://{host}"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded once and cached. To reload, clear the cache:
    ```python
    get_settings.cache_clear()
    ```
    """
    return Settings()

