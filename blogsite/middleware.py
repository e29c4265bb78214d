"""Middleware — request IDs, logging context, admin session gate."""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from blogsite.config import get_settings
from blogsite.errors import BlogError, RateLimited, localized_message
from blogsite.services.backend import get_backend
from blogsite.services.session_gate import (
    check_admin_access,
    clear_session_cookies,
    end_session,
    is_admin_path,
    resolve_session,
    set_session_cookies,
)

logger = logging.getLogger(__name__)

NO_STORE = "no-store, max-age=0"

# Context var accessible from anywhere during a request lifecycle
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDFilter(logging.Filter):
    """Expose the current request ID to log formatters as ``%(request_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install the app's log format on the root logger (idempotent)."""
    root = logging.getLogger()
    if any(isinstance(f, RequestIDFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"
        )
    )
    root.addHandler(handler)
    root.setLevel(level.upper())


def error_response(exc: BlogError, locale: str) -> JSONResponse:
    """Render a BlogError as ``{"error": category, "detail": message}``."""
    headers = {}
    if isinstance(exc, RateLimited) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.category, "detail": localized_message(exc, locale)},
        headers=headers,
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response cycle.

    Reads ``X-Request-ID`` from the incoming request headers; if absent,
    generates a new UUID4. The ID is stored in a context variable picked up
    by ``RequestIDFilter``, and is echoed back as ``X-Request-ID``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(rid)

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Block the admin prefix for requests without the administrator session.

    Missing or invalid sessions are redirected to the login page with the
    requested path as ``redirect``; sessions of any other account are signed
    out and redirected with ``error=unauthorized``. Every response that
    passes through carries ``Cache-Control: no-store``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        settings = get_settings()
        path = request.url.path
        if not is_admin_path(path, settings.admin_path_prefix):
            response = await call_next(request)
            response.headers["Cache-Control"] = NO_STORE
            return response

        access_token = request.cookies.get(settings.access_cookie_name)
        refresh_token = request.cookies.get(settings.refresh_cookie_name)
        auth = get_backend(request).auth
        try:
            resolved = await resolve_session(auth, access_token, refresh_token)
        except BlogError as exc:
            logger.error("Session check failed for %s: %s", path, exc)
            return error_response(exc, settings.locale)

        decision = check_admin_access(
            path,
            resolved.user if resolved else None,
            admin_email=settings.admin_email,
            admin_prefix=settings.admin_path_prefix,
            login_path=settings.login_path,
        )
        if not decision.allowed:
            logger.info("Gate redirected %s (%s)", path, decision.reason)
            if decision.sign_out and resolved:
                await end_session(auth, resolved.access_token)
            response = RedirectResponse(decision.redirect_to, status_code=307)
            if access_token or refresh_token:
                clear_session_cookies(response, settings)
            response.headers["Cache-Control"] = NO_STORE
            return response

        request.state.session = resolved
        response = await call_next(request)
        if resolved.refreshed:
            set_session_cookies(response, resolved.refreshed, settings)
        response.headers["Cache-Control"] = NO_STORE
        return response
