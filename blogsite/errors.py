"""Error taxonomy for post, auth and storage operations.

Every failure surfaced to a caller is one of the ``BlogError`` subclasses
below. Backend clients never raise for backend-reported errors; the services
translate the structured error they return via :func:`translate_error`.
"""

from typing import Any

# Postgres / PostgREST codes observed from the backend
UNIQUE_VIOLATION = "23505"
UNDEFINED_TABLE = "42P01"
INSUFFICIENT_PRIVILEGE = "42501"
NO_ROWS = "PGRST116"


class BlogError(Exception):
    """Base class for every user-facing error category."""

    category = "backend_error"
    status_code = 500

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.category)
        self.message = message
        self.context = context


class ValidationError(BlogError):
    """A required field is missing or malformed (never reaches the backend)."""

    category = "validation_error"
    status_code = 400

    def __init__(self, message: str = "", *, fields: list[str] | None = None) -> None:
        super().__init__(message, fields=fields or [])
        self.fields = fields or []


class SlugConflict(BlogError):
    category = "slug_conflict"
    status_code = 409

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug {slug!r} already exists", slug=slug)
        self.slug = slug


class PermissionDenied(BlogError):
    category = "permission_denied"
    status_code = 403


class Unauthorized(PermissionDenied):
    """Authenticated, but not the administrator account."""

    category = "unauthorized"


class NotFound(BlogError):
    category = "not_found"
    status_code = 404


class RateLimited(BlogError):
    category = "rate_limited"
    status_code = 429

    def __init__(self, message: str = "", *, retry_after: int = 0) -> None:
        super().__init__(message, retry_after=retry_after)
        self.retry_after = retry_after


class InvalidCredentials(BlogError):
    category = "invalid_credentials"
    status_code = 401

    def __init__(self, message: str = "", *, unconfirmed: bool = False) -> None:
        super().__init__(message, unconfirmed=unconfirmed)
        self.unconfirmed = unconfirmed


class BackendError(BlogError):
    """Any other backend-reported failure; keeps the backend's message."""

    category = "backend_error"
    status_code = 502

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.code = code


class TransportError(BlogError):
    """The backend could not be reached at all."""

    category = "transport_error"
    status_code = 503


# Localized text shown next to the form that triggered the error.
MESSAGES: dict[str, dict[str, str]] = {
    "zh-TW": {
        "validation_error": "請填寫所有必要欄位",
        "invalid_slug": "網址名稱無效，請使用字母、數字或連字符",
        "slug_conflict": "Slug「{slug}」已存在，請嘗試其他網址名稱",
        "permission_denied": "權限不足，您無權修改此文章",
        "unauthorized": "⚠️ 你無權訪問管理後台",
        "not_found": "找不到文章",
        "rate_limited": "登入嘗試次數過多，請等待 {retry_after} 秒後再試",
        "invalid_credentials": "電子郵件或密碼錯誤",
        "email_not_confirmed": "此電子郵件尚未驗證，請檢查您的收件箱",
        "backend_error": "操作失敗: {message}",
        "transport_error": "網路連線錯誤，請檢查您的網絡連接",
    },
    "en": {
        "validation_error": "Please fill in all required fields",
        "invalid_slug": "Invalid slug: use letters, digits or hyphens",
        "slug_conflict": 'Slug "{slug}" already exists, please choose another',
        "permission_denied": "You do not have permission to modify this post",
        "unauthorized": "You are not authorized to access the admin area",
        "not_found": "Post not found",
        "rate_limited": "Too many attempts, please retry in {retry_after} seconds",
        "invalid_credentials": "Incorrect email or password",
        "email_not_confirmed": "This email address has not been confirmed yet",
        "backend_error": "Operation failed: {message}",
        "transport_error": "Network error, please check your connection",
    },
}


def localized_message(exc: BlogError, locale: str) -> str:
    """Render the localized text for *exc*, falling back to English."""
    table = MESSAGES.get(locale) or MESSAGES["en"]
    key = exc.category
    if isinstance(exc, ValidationError) and exc.fields == ["slug"]:
        key = "invalid_slug"
    elif isinstance(exc, InvalidCredentials) and exc.unconfirmed:
        key = "email_not_confirmed"
    template = table.get(key) or MESSAGES["en"][key]
    try:
        return template.format(message=exc.message, **exc.context)
    except (KeyError, IndexError):
        return template


def translate_error(error: Any, *, slug: str | None = None) -> BlogError:
    """Map a structured backend error onto the error taxonomy.

    *error* is a ``BackendErrorInfo`` (anything with ``code``, ``message``
    and ``status`` attributes).
    """
    code = error.code or ""
    message = error.message or ""
    if error.status == 429:
        return RateLimited(message)
    if code == UNIQUE_VIOLATION:
        return SlugConflict(slug or "")
    if code == INSUFFICIENT_PRIVILEGE or "permission denied" in message.lower():
        return PermissionDenied(message)
    if code == NO_ROWS:
        return NotFound(message)
    if code == UNDEFINED_TABLE:
        return BackendError(f"Table does not exist: {message}", code=code)
    return BackendError(message, code=code or None)
