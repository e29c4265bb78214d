"""Sign-in, sign-out, registration and session status endpoints."""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from blogsite.config import get_settings
from blogsite.models.auth import AuthSession, LoginRequest, LoginResponse, SignUpRequest
from blogsite.services.backend import Backend, get_backend
from blogsite.services.login import sign_in, sign_up
from blogsite.services.session_gate import (
    clear_session_cookies,
    end_session,
    is_admin_user,
    resolve_session,
    safe_redirect_target,
    set_session_cookies,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    redirect: str | None = Query(default=None, max_length=500),
    backend: Backend = Depends(get_backend),
):
    """Sign the administrator in and set the session cookies."""
    settings = get_settings()
    session = await sign_in(
        backend.auth, body.email, body.password, _client_key(request)
    )
    set_session_cookies(response, session, settings)
    return LoginResponse(
        user=session.user,
        redirect_to=safe_redirect_target(redirect, settings.admin_path_prefix),
        message="登入成功" if settings.locale == "zh-TW" else "Signed in",
    )


@router.post("/logout")
async def logout(request: Request, backend: Backend = Depends(get_backend)):
    settings = get_settings()
    await end_session(backend.auth, request.cookies.get(settings.access_cookie_name))
    response = JSONResponse(content={"status": "signed_out"})
    clear_session_cookies(response, settings)
    return response


@router.post("/register", status_code=201)
async def register(body: SignUpRequest, backend: Backend = Depends(get_backend)):
    """Create an account. Confirmation may be required before sign-in."""
    result = await sign_up(
        backend.auth, body.email, body.password, body.confirm_password
    )
    return {
        "status": "registered",
        "confirmation_required": not isinstance(result, AuthSession),
    }


@router.get("/session")
async def session_status(request: Request, backend: Backend = Depends(get_backend)):
    """Report whether the caller holds a valid session (refreshing it if needed)."""
    settings = get_settings()
    resolved = await resolve_session(
        backend.auth,
        request.cookies.get(settings.access_cookie_name),
        request.cookies.get(settings.refresh_cookie_name),
    )
    if resolved is None:
        return {"authenticated": False, "user": None, "is_admin": False}

    response = JSONResponse(
        content={
            "authenticated": True,
            "user": resolved.user.model_dump(),
            "is_admin": is_admin_user(resolved.user, settings.admin_email),
        }
    )
    if resolved.refreshed:
        set_session_cookies(response, resolved.refreshed, settings)
    return response
