"""Tests for backend error translation and localized messages."""

import pytest

from blogsite.errors import (
    BackendError,
    InvalidCredentials,
    NotFound,
    PermissionDenied,
    RateLimited,
    SlugConflict,
    TransportError,
    Unauthorized,
    ValidationError,
    localized_message,
    translate_error,
)
from blogsite.services.http_client import BackendErrorInfo


def _info(message, code=None, status=400):
    return BackendErrorInfo(message=message, code=code, status=status)


@pytest.mark.parametrize(
    "info,expected",
    [
        (_info("duplicate key value", "23505", 409), SlugConflict),
        (_info("new row violates row-level security policy", "42501", 403), PermissionDenied),
        (_info("Permission denied for table posts", None, 401), PermissionDenied),
        (_info("JSON object requested, multiple (or no) rows returned", "PGRST116", 406), NotFound),
        (_info("Too many requests", None, 429), RateLimited),
        (_info("something odd", "XX000", 500), BackendError),
    ],
)
def test_translate_error_categories(info, expected):
    assert type(translate_error(info)) is expected


def test_slug_conflict_carries_slug():
    exc = translate_error(_info("duplicate key value", "23505", 409), slug="hello")

    assert exc.slug == "hello"


def test_missing_table_is_reported_as_such():
    exc = translate_error(_info('relation "public.posts" does not exist', "42P01", 404))

    assert isinstance(exc, BackendError)
    assert exc.code == "42P01"
    assert "Table does not exist" in exc.message


def test_other_errors_keep_backend_message():
    exc = translate_error(_info("value too long for type character varying(200)", "22001"))

    assert exc.message == "value too long for type character varying(200)"


def test_unauthorized_is_a_permission_error():
    assert issubclass(Unauthorized, PermissionDenied)
    assert Unauthorized().status_code == 403
    assert Unauthorized().category == "unauthorized"


class TestLocalizedMessage:
    def test_default_locale_texts(self):
        assert localized_message(PermissionDenied(), "zh-TW") == "權限不足，您無權修改此文章"
        assert localized_message(Unauthorized(), "zh-TW") == "⚠️ 你無權訪問管理後台"

    def test_slug_conflict_names_the_slug(self):
        assert localized_message(SlugConflict("hello"), "zh-TW") == "Slug「hello」已存在，請嘗試其他網址名稱"
        assert "hello" in localized_message(SlugConflict("hello"), "en")

    def test_rate_limit_shows_remaining_seconds(self):
        assert "27" in localized_message(RateLimited(retry_after=27), "en")

    def test_invalid_slug_has_its_own_text(self):
        exc = ValidationError("bad slug", fields=["slug"])

        assert localized_message(exc, "en") == "Invalid slug: use letters, digits or hyphens"

    def test_unconfirmed_email(self):
        exc = InvalidCredentials(unconfirmed=True)

        assert localized_message(exc, "en") == "This email address has not been confirmed yet"

    def test_backend_error_includes_raw_message(self):
        exc = BackendError("disk full")

        assert localized_message(exc, "en") == "Operation failed: disk full"

    def test_unknown_locale_falls_back_to_english(self):
        assert localized_message(TransportError(), "fr") == (
            "Network error, please check your connection"
        )
