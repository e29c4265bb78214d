"""Shared HTTP client utilities — reusable httpx client and backend results."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from blogsite.config import get_settings
from blogsite.errors import TransportError

logger = logging.getLogger(__name__)

# Module-level shared client (created lazily, lives for the process lifetime)
_client: httpx.AsyncClient | None = None


def get_shared_client() -> httpx.AsyncClient:
    """Return a shared httpx.AsyncClient, creating it on first call."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(timeout=get_settings().backend_timeout)
    return _client


@dataclass
class BackendErrorInfo:
    """Structured error reported by the backend (never raised directly)."""

    message: str
    code: str | None = None
    status: int = 0
    details: str | None = None
    hint: str | None = None


@dataclass
class BackendResult:
    """Outcome of one backend call: either ``data`` or ``error`` is set."""

    data: Any = None
    error: BackendErrorInfo | None = None
    status: int = 200
    count: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def supabase_headers(api_key: str, access_token: str | None = None) -> dict[str, str]:
    """Build standard Supabase request headers.

    The bearer token is the user's access token when acting on their behalf
    (row-level security applies), otherwise the anon key.
    """
    return {
        "apikey": api_key,
        "Authorization": f"Bearer {access_token or api_key}",
    }


def error_from_response(resp: httpx.Response) -> BackendErrorInfo:
    """Parse the backend's error body, whichever service produced it.

    PostgREST answers ``{code, message, details, hint}``; the auth service
    uses ``{error_code, msg}`` or ``{error, error_description}``.
    """
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or resp.text
        or f"HTTP {resp.status_code}"
    )
    code = body.get("error_code") or body.get("code")
    return BackendErrorInfo(
        message=str(message),
        code=str(code) if code is not None else None,
        status=resp.status_code,
        details=body.get("details"),
        hint=body.get("hint"),
    )


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    context: str = "",
    **kwargs: Any,
) -> httpx.Response:
    """Issue a request, turning network failures into ``TransportError``.

    Backend-reported failures (4xx/5xx) are returned as-is for the caller
    to inspect; nothing is retried.
    """
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TransportError as e:
        logger.warning(
            "Backend unreachable for %s %s%s: %s",
            method,
            url,
            f" ({context})" if context else "",
            e,
        )
        raise TransportError(str(e) or type(e).__name__) from e


def parse_content_range(value: str | None) -> int | None:
    """Total row count from a ``Content-Range: 0-9/42`` header."""
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None
