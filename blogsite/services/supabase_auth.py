"""Supabase auth (GoTrue) client.

Sign-in, sign-up, sign-out, token refresh and user lookup against
``/auth/v1``. Listeners registered with :meth:`SupabaseAuth.on_auth_state_change`
are told about sign-in, sign-out and token refresh events.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from blogsite.models.auth import AuthSession, AuthUser
from blogsite.services.http_client import (
    BackendResult,
    error_from_response,
    get_shared_client,
    send,
    supabase_headers,
)

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

AuthListener = Callable[[str, AuthSession | None], None]


class SupabaseAuth:
    """Session issuance and lookup for the blog's backend project."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client
        self._listeners: list[AuthListener] = []

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_shared_client()

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth listener failed for %s", event)

    async def _post(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        access_token: str | None = None,
    ) -> httpx.Response:
        return await send(
            self.client,
            "POST",
            f"{self._base_url}/auth/v1/{path}",
            params=params,
            json=json,
            headers=supabase_headers(self._api_key, access_token),
            context=path,
        )

    async def sign_in_with_password(self, email: str, password: str) -> BackendResult:
        """Exchange credentials for a session (``data`` is an AuthSession)."""
        resp = await self._post(
            "token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if not resp.is_success:
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        session = AuthSession(**resp.json())
        self._emit(SIGNED_IN, session)
        return BackendResult(data=session, status=resp.status_code)

    async def sign_up(self, email: str, password: str) -> BackendResult:
        """Register an account.

        ``data`` is an AuthSession when the project auto-confirms emails,
        otherwise the pending AuthUser.
        """
        resp = await self._post("signup", json={"email": email, "password": password})
        if not resp.is_success:
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        body = resp.json()
        if body.get("access_token"):
            session = AuthSession(**body)
            self._emit(SIGNED_IN, session)
            return BackendResult(data=session, status=resp.status_code)
        return BackendResult(
            data=AuthUser(**body.get("user", body)), status=resp.status_code
        )

    async def sign_out(self, access_token: str) -> BackendResult:
        resp = await self._post("logout", access_token=access_token)
        # An already-expired token still counts as signed out locally
        if not resp.is_success and resp.status_code not in (401, 403, 404):
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        self._emit(SIGNED_OUT, None)
        return BackendResult(status=resp.status_code)

    async def get_user(self, access_token: str) -> BackendResult:
        """Validate *access_token*; ``data`` is the AuthUser it belongs to."""
        resp = await send(
            self.client,
            "GET",
            f"{self._base_url}/auth/v1/user",
            headers=supabase_headers(self._api_key, access_token),
            context="user",
        )
        if not resp.is_success:
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        return BackendResult(data=AuthUser(**resp.json()), status=resp.status_code)

    async def refresh_session(self, refresh_token: str) -> BackendResult:
        resp = await self._post(
            "token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        if not resp.is_success:
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        session = AuthSession(**resp.json())
        self._emit(TOKEN_REFRESHED, session)
        return BackendResult(data=session, status=resp.status_code)
