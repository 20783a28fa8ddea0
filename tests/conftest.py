"""Pytest fixtures for the Lichess auth tests.

This module provides test fixtures that ensure:
1. No calls reach lichess.org (an httpx MockTransport stands in for it)
2. Isolated test environment with controlled configuration
3. Helpers to inspect the cookies a response sets or deletes
"""

import os
from http.cookies import SimpleCookie
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

# Set test environment BEFORE importing application modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from fastapi.testclient import TestClient

from lichess_auth.api import create_app
from lichess_auth.auth.lichess import LichessOAuth
from lichess_auth.auth.session import Session, SessionCodec, SessionUser
from lichess_auth.config import Settings, get_settings, merge_settings

AUTH = "/api/auth/lichess"


# =============================================================================
# Fake Lichess
# =============================================================================


class FakeLichess:
    """Records requests and answers the token and account endpoints.

    Set ``token_status``/``token_json`` and ``account_status``/``account_json``
    to shape the answers, or ``token_timeout``/``account_timeout`` to make
    the call time out.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_json: Any = {
            "token_type": "Bearer",
            "access_token": "tok1",
            "expires_in": 31536000,
        }
        self.account_status = 200
        self.account_json: Any = {"id": "u1", "username": "User1"}
        self.token_timeout = False
        self.account_timeout = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/api/token":
            if self.token_timeout:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(self.token_status, json=self.token_json)

        if request.url.path == "/api/account":
            if self.account_timeout:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(self.account_status, json=self.account_json)

        return httpx.Response(404, json={"error": "not found"})

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def token_form(self, index: int = 0) -> dict[str, str]:
        """Form fields of a recorded token request."""
        body = self.calls("/api/token")[index].content.decode()
        return {k: v[0] for k, v in parse_qs(body).items()}


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings cache before each test to ensure clean state."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, independent of any .env file."""
    return merge_settings(get_settings(), {"client_id": "test-client", "base_url": None})


@pytest.fixture
def fake_lichess() -> FakeLichess:
    return FakeLichess()


@pytest.fixture
def transport(fake_lichess: FakeLichess) -> httpx.MockTransport:
    return httpx.MockTransport(fake_lichess.handler)


@pytest.fixture
def oauth(settings: Settings, transport: httpx.MockTransport) -> LichessOAuth:
    """Lichess OAuth client wired to the fake provider."""
    return LichessOAuth.from_settings(settings, transport=transport)


@pytest.fixture
def codec(settings: Settings) -> SessionCodec:
    return SessionCodec.from_settings(settings)


@pytest.fixture
def client(settings: Settings, transport: httpx.MockTransport) -> TestClient:
    """Test client for an app whose Lichess calls hit the fake provider."""
    return TestClient(create_app(settings, transport=transport))


@pytest.fixture
def sample_session() -> Session:
    return Session(
        access_token="tok1",
        user=SessionUser(id="u1", username="User1"),
    )


@pytest.fixture
def titled_session() -> Session:
    return Session(
        access_token="lio_titled",
        user=SessionUser(id="magnus", username="DrNykterstein", title="GM"),
    )


# =============================================================================
# Helpers
# =============================================================================


def response_cookies(response: httpx.Response) -> dict[str, dict[str, str]]:
    """Cookies set by a response, keyed by name.

    Each entry has ``value`` plus the lower-cased cookie attributes.
    """
    cookies: dict[str, dict[str, str]] = {}
    for header in response.headers.get_list("set-cookie"):
        parsed = SimpleCookie()
        parsed.load(header)
        for name, morsel in parsed.items():
            attrs = {k: v for k, v in morsel.items() if v}
            attrs["value"] = morsel.value
            if "httponly" in header.lower():
                attrs["httponly"] = "true"
            cookies[name] = attrs
    return cookies


def is_deleted(cookie: dict[str, str] | None) -> bool:
    """Whether a parsed Set-Cookie entry expires the cookie."""
    return cookie is not None and cookie.get("max-age") == "0"


def cookie_header(**cookies: str) -> dict[str, str]:
    """Request headers carrying the given cookies."""
    return {"Cookie": "; ".join(f"{k}={v}" for k, v in cookies.items())}
