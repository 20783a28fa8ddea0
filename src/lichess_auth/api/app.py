"""FastAPI application factory.

Creates and configures the FastAPI application with all routes and middleware.

## Usage

```python
from lichess_auth.api import create_app

app = create_app()

# Run with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
```

## Configuration

The app is configured via environment variables. See `lichess_auth.config`
for available settings. Settings are read once here and handed to every
route through ``app.state``; handlers never consult the environment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lichess_auth.api.responses import error_json
from lichess_auth.auth.dependencies import AuthenticationRequired
from lichess_auth.auth.flow import AuthFlow
from lichess_auth.auth.lichess import LichessOAuth
from lichess_auth.auth.results import AuthErrorKind, Err
from lichess_auth.auth.session import SessionCodec
from lichess_auth.config import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    if not settings.base_url:
        if settings.is_production:
            logger.warning("BASE_URL not set in production, redirect URIs follow the Host header")
        else:
            logger.info("BASE_URL not set, redirect URIs will be derived from requests")

    yield

    logger.info("Shutting down")


async def _authentication_required(request: Request, exc: AuthenticationRequired) -> JSONResponse:
    logger.debug(f"Rejected {request.url.path}: {exc.kind.value}")
    return error_json(Err(exc.kind, exc.message))


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}")
    return error_json(Err(AuthErrorKind.UNEXPECTED, "Internal server error"))


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (default: loaded from the environment)
        transport: httpx transport for calls to Lichess (used by tests)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Lichess OAuth login with PKCE and cookie sessions",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    oauth = LichessOAuth.from_settings(settings, transport=transport)
    codec = SessionCodec.from_settings(settings)

    app.state.settings = settings
    app.state.oauth = oauth
    app.state.codec = codec
    app.state.flow = AuthFlow(settings, oauth, codec)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthenticationRequired, _authentication_required)
    app.add_exception_handler(Exception, _unhandled_error)

    # Include routers
    from lichess_auth.api.routes import auth

    app.include_router(auth.router, prefix=settings.auth_prefix, tags=["Authentication"])

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    return app
