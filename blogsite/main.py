"""
Personal Blog API

Public reading surface plus a single-administrator admin area, backed by a
hosted Supabase project (tables, auth, storage).
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from blogsite.config import get_settings
from blogsite.errors import BlogError
from blogsite.middleware import (
    NO_STORE,
    RequestIDMiddleware,
    SessionGateMiddleware,
    configure_logging,
    error_response,
)
from blogsite.models.auth import AuthSession
from blogsite.routers import admin, auth, pages, posts
from blogsite.services import http_client
from blogsite.services.backend import check_backend_config, create_backend
from blogsite.services.session_gate import SessionRedirect, clear_session_cookies

logger = logging.getLogger(__name__)

settings = get_settings()


def _log_auth_event(event: str, session: AuthSession | None) -> None:
    user = session.user.email if session else "-"
    logger.info("Auth event %s (%s)", event, user)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    configure_logging(settings.log_level)
    backend = getattr(app.state, "backend", None) or create_backend()
    app.state.backend = backend
    unsubscribe = backend.auth.on_auth_state_change(_log_auth_event)
    yield
    unsubscribe()
    if http_client._client is not None:
        await http_client._client.aclose()


app = FastAPI(
    title="Personal Blog API",
    description="Personal blog with a single-administrator admin area",
    version="0.1.0",
    lifespan=lifespan,
)

# Admin session gate (innermost, so it runs with a request ID set)
app.add_middleware(SessionGateMiddleware)

# Request ID
app.add_middleware(RequestIDMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)

# Routers
app.include_router(posts.router, prefix="/api")
app.include_router(auth.router)
app.include_router(admin.router, prefix=settings.admin_path_prefix)
app.include_router(pages.router)


@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.category, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", exc.category, request.url.path, exc)
    return error_response(exc, get_settings().locale)


@app.exception_handler(SessionRedirect)
async def session_redirect_handler(
    request: Request, exc: SessionRedirect
) -> RedirectResponse:
    response = RedirectResponse(exc.decision.redirect_to, status_code=307)
    if exc.decision.sign_out:
        clear_session_cookies(response, get_settings())
    response.headers["Cache-Control"] = NO_STORE
    return response


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check verifying required configuration is present."""
    config_status = "ok" if check_backend_config() else "fail"
    result: dict[str, Any] = {
        "status": "ok" if config_status == "ok" else "degraded",
        "service": "blogsite",
        "version": "0.1.0",
        "checks": {"config": config_status},
    }
    if config_status != "ok":
        logger.warning("Health check degraded: missing Supabase or admin configuration")
    return JSONResponse(content=result, status_code=200)
