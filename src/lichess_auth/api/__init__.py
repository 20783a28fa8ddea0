"""FastAPI application and routes.

This module provides the HTTP surface of the Lichess login.

## API Structure

- /api/auth/lichess/login - Start the OAuth flow
- /api/auth/lichess/callback - OAuth redirect target
- /api/auth/lichess/logout - Clear the session (POST for JSON, GET to redirect)
- /api/auth/lichess/status - Authentication status
- /api/auth/lichess/session - Current session
- /api/auth/lichess/me - Current user
- /health - Health check

The ``/api/auth/lichess`` prefix is configurable (``AUTH_PREFIX``).

## Security

- All communication should be over HTTPS in production
- Session and verifier cookies are HTTP-only and SameSite=Lax
"""

from lichess_auth.api.app import create_app

__all__ = ["create_app"]
