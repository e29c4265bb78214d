"""Session gate for the admin area.

:func:`check_admin_access` is the single authorization policy. It runs at
the routing layer (``SessionGateMiddleware``) and again inside every admin
endpoint (``require_admin``). Administrator status is a plain equality test
against one configured email address, not a role system.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode, urlparse

from starlette.responses import Response

from blogsite.config import Settings
from blogsite.errors import TransportError
from blogsite.models.auth import AuthSession, AuthUser
from blogsite.services.supabase_auth import SupabaseAuth

logger = logging.getLogger(__name__)

UNAUTHORIZED = "unauthorized"


@dataclass
class GateDecision:
    """Outcome of the admin policy for one request."""

    allowed: bool
    redirect_to: str | None = None
    sign_out: bool = False
    reason: str = ""


class SessionRedirect(Exception):
    """Raised inside an admin endpoint whose gate check failed."""

    def __init__(self, decision: GateDecision) -> None:
        super().__init__(decision.reason)
        self.decision = decision


@dataclass
class ResolvedSession:
    user: AuthUser
    access_token: str
    # Set when the access token was rejected and the refresh token renewed it
    refreshed: AuthSession | None = None


def is_admin_path(path: str, admin_prefix: str) -> bool:
    prefix = admin_prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def is_admin_email(email: str | None, admin_email: str) -> bool:
    if not email or not admin_email:
        return False
    return email.strip().lower() == admin_email.strip().lower()


def is_admin_user(user: AuthUser | None, admin_email: str) -> bool:
    return user is not None and is_admin_email(user.email, admin_email)


def login_redirect_url(
    login_path: str, *, redirect: str | None = None, error: str | None = None
) -> str:
    """``/login`` with the return target and/or error message as query params."""
    params = {}
    if redirect:
        params["redirect"] = redirect
    if error:
        params["error"] = error
    return f"{login_path}?{urlencode(params)}" if params else login_path


def safe_redirect_target(value: str | None, default: str = "/admin") -> str:
    """Only same-site absolute paths are honoured as post-login targets."""
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return default
    parsed = urlparse(value)
    if parsed.scheme or parsed.netloc:
        return default
    return value


def check_admin_access(
    path: str,
    user: AuthUser | None,
    *,
    admin_email: str,
    admin_prefix: str = "/admin",
    login_path: str = "/login",
) -> GateDecision:
    """Decide whether *user* may see *path*.

    - outside the admin prefix: always allowed;
    - no valid session: redirect to login, remembering *path*;
    - session for any account but the administrator: sign it out and
      redirect to login with the unauthorized message.
    """
    if not is_admin_path(path, admin_prefix):
        return GateDecision(allowed=True)
    if user is None:
        return GateDecision(
            allowed=False,
            redirect_to=login_redirect_url(login_path, redirect=path),
            reason="no_session",
        )
    if not is_admin_user(user, admin_email):
        return GateDecision(
            allowed=False,
            redirect_to=login_redirect_url(login_path, error=UNAUTHORIZED),
            sign_out=True,
            reason=UNAUTHORIZED,
        )
    return GateDecision(allowed=True)


async def resolve_session(
    auth: SupabaseAuth, access_token: str | None, refresh_token: str | None
) -> ResolvedSession | None:
    """Validate the session cookies, renewing via the refresh token if needed.

    Returns None when there is no session or it cannot be validated.
    Transport failures propagate as ``TransportError``.
    """
    if access_token:
        result = await auth.get_user(access_token)
        if result.ok:
            return ResolvedSession(user=result.data, access_token=access_token)
        if result.status not in (401, 403):
            logger.warning(
                "Session lookup failed with %d: %s", result.status, result.error.message
            )
    if refresh_token:
        refreshed = await auth.refresh_session(refresh_token)
        if refreshed.ok:
            session = refreshed.data
            return ResolvedSession(
                user=session.user, access_token=session.access_token, refreshed=session
            )
        logger.info("Refresh token rejected: %s", refreshed.error.message)
    return None


async def end_session(auth: SupabaseAuth, access_token: str | None) -> None:
    """Sign the session out at the backend; failures are logged, not raised."""
    if not access_token:
        return
    try:
        result = await auth.sign_out(access_token)
    except TransportError:
        logger.warning("Sign-out could not reach the backend")
        return
    if result.error:
        logger.warning("Sign-out failed: %s", result.error.message)


def set_session_cookies(response: Response, session: AuthSession, settings: Settings) -> None:
    response.set_cookie(
        settings.access_cookie_name,
        session.access_token,
        max_age=session.expires_in,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    if session.refresh_token:
        response.set_cookie(
            settings.refresh_cookie_name,
            session.refresh_token,
            max_age=60 * 60 * 24 * 30,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_cookie_name)
    response.delete_cookie(settings.refresh_cookie_name)
