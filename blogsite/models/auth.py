"""Auth models — backend users, sessions and login form payloads."""

from typing import Any

from pydantic import BaseModel


class AuthUser(BaseModel):
    """The subset of the backend user object this service relies on."""

    id: str
    email: str = ""
    user_metadata: dict[str, Any] = {}


class AuthSession(BaseModel):
    """A backend-issued session (access + refresh token pair)."""

    access_token: str
    refresh_token: str = ""
    expires_in: int = 3600
    token_type: str = "bearer"
    user: AuthUser


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    confirm_password: str | None = None


class LoginResponse(BaseModel):
    """Answer to a successful sign-in: who signed in and where to go next."""

    user: AuthUser
    redirect_to: str
    message: str = ""
