"""Sign-in and registration with client-side throttling.

Before each sign-in the service waits a fixed delay to stay clear of the
backend's rate limiter. When the backend answers 429 anyway, the caller's
address enters a cooldown window during which attempts are rejected locally
without reaching the backend.
"""

import asyncio
import logging
import math
import re
import time

from blogsite.config import get_settings
from blogsite.errors import (
    InvalidCredentials,
    RateLimited,
    Unauthorized,
    ValidationError,
    translate_error,
)
from blogsite.models.auth import AuthSession, AuthUser
from blogsite.services.session_gate import end_session, is_admin_email
from blogsite.services.supabase_auth import SupabaseAuth

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# In-memory cooldowns: {client_key: deadline as epoch seconds}
_cooldowns: dict[str, float] = {}
_cooldown_checks = 0
SWEEP_EVERY = 100


def _sweep_expired_cooldowns(now: float) -> None:
    for key in [k for k, until in _cooldowns.items() if until <= now]:
        del _cooldowns[key]


def cooldown_remaining(client_key: str) -> int:
    """Seconds left in *client_key*'s cooldown (0 when none is active).

    Every ``SWEEP_EVERY`` checks, expired entries of all clients are dropped.
    """
    global _cooldown_checks
    now = time.time()
    _cooldown_checks += 1
    if _cooldown_checks % SWEEP_EVERY == 0:
        _sweep_expired_cooldowns(now)

    until = _cooldowns.get(client_key)
    if until is None:
        return 0
    remaining = until - now
    if remaining <= 0:
        del _cooldowns[client_key]
        return 0
    return math.ceil(remaining)


def start_cooldown(client_key: str) -> int:
    seconds = get_settings().login_cooldown_seconds
    _cooldowns[client_key] = time.time() + seconds
    logger.warning("Login rate limited for %s, cooling down %ds", client_key, seconds)
    return seconds


def _auth_failure(error) -> Exception:
    message = (error.message or "").lower()
    code = (error.code or "").lower()
    if code == "invalid_credentials" or "invalid login credentials" in message:
        return InvalidCredentials(error.message)
    if code == "email_not_confirmed" or "email not confirmed" in message:
        return InvalidCredentials(error.message, unconfirmed=True)
    return translate_error(error)


async def sign_in(
    auth: SupabaseAuth, email: str, password: str, client_key: str
) -> AuthSession:
    """Sign the administrator in.

    Raises:
        RateLimited: a cooldown is active, or the backend throttled us
            (which starts a new cooldown).
        ValidationError: email or password missing.
        Unauthorized: the account is not the administrator. When the
            backend already issued a session, it is signed out first.
        InvalidCredentials: wrong password or unconfirmed email.
    """
    settings = get_settings()
    email = (email or "").strip()

    remaining = cooldown_remaining(client_key)
    if remaining:
        raise RateLimited("Login cooldown active", retry_after=remaining)

    missing = [name for name, value in (("email", email), ("password", password)) if not value]
    if missing:
        raise ValidationError("Email and password are required", fields=missing)

    if not is_admin_email(email, settings.admin_email):
        logger.info("Rejected login for non-admin email %s", email)
        raise Unauthorized("This email is not allowed to sign in")

    if settings.login_delay_seconds > 0:
        await asyncio.sleep(settings.login_delay_seconds)

    result = await auth.sign_in_with_password(email, password)
    if result.error:
        if result.status == 429:
            raise RateLimited(result.error.message, retry_after=start_cooldown(client_key))
        raise _auth_failure(result.error)

    session: AuthSession = result.data
    if not is_admin_email(session.user.email, settings.admin_email):
        logger.warning("Non-admin account %s signed in, signing out", session.user.email)
        await end_session(auth, session.access_token)
        raise Unauthorized("This account is not allowed to sign in")

    logger.info("Administrator %s signed in", session.user.email)
    return session


async def sign_up(
    auth: SupabaseAuth, email: str, password: str, confirm_password: str | None = None
) -> AuthSession | AuthUser:
    """Register an account. Signing in afterwards is still admin-only."""
    email = (email or "").strip()
    missing = [name for name, value in (("email", email), ("password", password)) if not value]
    if missing:
        raise ValidationError("Email and password are required", fields=missing)
    if confirm_password is not None and confirm_password != password:
        raise ValidationError("Passwords do not match", fields=["confirm_password"])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", fields=["password"]
        )
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", fields=["email"])

    result = await auth.sign_up(email, password)
    if result.error:
        raise translate_error(result.error)
    logger.info("Registered account %s", email)
    return result.data
