"""Shared fixtures for blogsite tests."""

import itertools
from typing import Any

import pytest

from blogsite.models.auth import AuthSession, AuthUser
from blogsite.services.backend import Backend
from blogsite.services.http_client import BackendErrorInfo, BackendResult

ADMIN_EMAIL = "admin@example.com"
ADMIN_ID = "user-admin"
OTHER_EMAIL = "someone@example.com"
OTHER_ID = "user-other"
PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from blogsite.config import get_settings

    get_settings.cache_clear()

    # 2. HTTP client singleton
    import blogsite.services.http_client as http_mod

    http_mod._client = None

    # 3. Login cooldowns
    import blogsite.services.login as login_mod

    login_mod._cooldowns.clear()
    login_mod._cooldown_checks = 0


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from blogsite.config import Settings, get_settings

    test_settings = Settings(
        supabase_url="https://fake.supabase.co",
        supabase_anon_key="anon-key",
        admin_email=ADMIN_EMAIL,
        login_delay_seconds=0,
        login_cooldown_seconds=30,
        locale="en",
    )

    get_settings.cache_clear()
    monkeypatch.setattr("blogsite.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from blogsite.config import get_settings creates a local binding that
    # the blogsite.config monkeypatch above does not affect)
    for mod_path in [
        "blogsite.main",
        "blogsite.middleware",
        "blogsite.services.backend",
        "blogsite.services.covers",
        "blogsite.services.http_client",
        "blogsite.services.login",
        "blogsite.routers.admin",
        "blogsite.routers.auth",
        "blogsite.routers.pages",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


def _error(message: str, code: str | None, status: int) -> BackendResult:
    return BackendResult(
        error=BackendErrorInfo(message=message, code=code, status=status), status=status
    )


class FakeTables:
    """In-memory stand-in for SupabaseTables.

    Mirrors the backend contracts the services rely on: unique ``posts.slug``
    (``23505``), ``PGRST116`` for single-row reads that match nothing, and
    representation-returning writes. ``fail_next`` injects one backend error.
    """

    def __init__(self) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {"posts": [], "profiles": []}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.access_tokens: list[str] = []
        self.fail_next: BackendResult | None = None
        self._ids = itertools.count(1)

    def as_user(self, access_token: str) -> "FakeTables":
        self.access_tokens.append(access_token)
        return self

    def seed_post(self, **fields: Any) -> dict[str, Any]:
        post_id = next(self._ids)
        row = {
            "id": post_id,
            "title": f"Post {post_id}",
            "slug": f"post-{post_id}",
            "content": "Body",
            "cover_url": "",
            "user_id": ADMIN_ID,
            "created_at": f"2025-01-{post_id:02d}T10:00:00+00:00",
            "updated_at": f"2025-01-{post_id:02d}T10:00:00+00:00",
        }
        row.update(fields)
        self.rows["posts"].append(row)
        return dict(row)

    def _injected(self) -> BackendResult | None:
        result, self.fail_next = self.fail_next, None
        return result

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def _slug_taken(self, slug: str | None, exclude_ids: set) -> bool:
        return any(
            r["slug"] == slug and r["id"] not in exclude_ids for r in self.rows["posts"]
        )

    async def select(
        self,
        table,
        *,
        columns="*",
        filters=None,
        order=None,
        descending=True,
        limit=None,
        offset=None,
        match_any=None,
        single=False,
        count=False,
    ):
        self.calls.append(("select", table, {"filters": filters, "single": single}))
        if injected := self._injected():
            return injected
        rows = [dict(r) for r in self.rows[table] if self._matches(r, filters)]
        if match_any:
            rows = [
                r
                for r in rows
                if any(text.lower() in str(r.get(col, "")).lower() for col, text in match_any.items())
            ]
        if order:
            rows.sort(key=lambda r: r[order], reverse=descending)
        total = len(rows)
        if offset:
            rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        if columns != "*":
            keep = columns.split(",")
            rows = [{k: r[k] for k in keep} for r in rows]
        if single:
            if len(rows) != 1:
                return _error("JSON object requested, multiple (or no) rows returned", "PGRST116", 406)
            return BackendResult(data=rows[0])
        return BackendResult(data=rows, count=total if count else None)

    async def count(self, table, *, filters=None):
        self.calls.append(("count", table, {"filters": filters}))
        if injected := self._injected():
            return injected
        return BackendResult(count=sum(1 for r in self.rows[table] if self._matches(r, filters)))

    async def insert(self, table, rows, *, single=False):
        self.calls.append(("insert", table, {"rows": rows}))
        if injected := self._injected():
            return injected
        stored = []
        for row in rows:
            if table == "posts" and self._slug_taken(row.get("slug"), set()):
                return _error(
                    'duplicate key value violates unique constraint "posts_slug_key"',
                    "23505",
                    409,
                )
            new = {"id": next(self._ids), **row}
            self.rows[table].append(new)
            stored.append(dict(new))
        return BackendResult(data=stored[0] if single else stored, status=201)

    async def update(self, table, values, *, filters):
        self.calls.append(("update", table, {"values": values, "filters": filters}))
        if injected := self._injected():
            return injected
        targets = [r for r in self.rows[table] if self._matches(r, filters)]
        if table == "posts" and "slug" in values:
            if self._slug_taken(values["slug"], {r["id"] for r in targets}):
                return _error(
                    'duplicate key value violates unique constraint "posts_slug_key"',
                    "23505",
                    409,
                )
        for row in targets:
            row.update(values)
        return BackendResult(data=[dict(r) for r in targets])

    async def delete(self, table, *, filters):
        self.calls.append(("delete", table, {"filters": filters}))
        if injected := self._injected():
            return injected
        removed = [r for r in self.rows[table] if self._matches(r, filters)]
        self.rows[table] = [r for r in self.rows[table] if not self._matches(r, filters)]
        return BackendResult(data=removed)

    async def upsert(self, table, rows, *, single=False):
        self.calls.append(("upsert", table, {"rows": rows}))
        if injected := self._injected():
            return injected
        stored = []
        for row in rows:
            existing = next((r for r in self.rows[table] if r.get("id") == row.get("id")), None)
            if existing is None:
                existing = dict(row)
                self.rows[table].append(existing)
            else:
                existing.update(row)
            stored.append(dict(existing))
        return BackendResult(data=stored[0] if single else stored, status=201)


class FakeAuth:
    """In-memory stand-in for SupabaseAuth with password accounts and tokens."""

    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, AuthUser]] = {}
        self.tokens: dict[str, AuthUser] = {}
        self.refresh_tokens: dict[str, AuthUser] = {}
        self.signed_out: list[str] = []
        self.sign_in_calls = 0
        self.rate_limited = False
        self._counter = itertools.count(1)

    def add_account(self, email: str, user_id: str, password: str = PASSWORD) -> AuthUser:
        user = AuthUser(id=user_id, email=email)
        self.accounts[email] = (password, user)
        return user

    def issue_session(self, user: AuthUser) -> AuthSession:
        n = next(self._counter)
        session = AuthSession(
            access_token=f"access-{user.id}-{n}",
            refresh_token=f"refresh-{user.id}-{n}",
            user=user,
        )
        self.tokens[session.access_token] = user
        self.refresh_tokens[session.refresh_token] = user
        return session

    def on_auth_state_change(self, listener):
        return lambda: None

    async def sign_in_with_password(self, email, password):
        self.sign_in_calls += 1
        if self.rate_limited:
            return _error("Request rate limit reached", "over_request_rate_limit", 429)
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            return _error("Invalid login credentials", "invalid_credentials", 400)
        return BackendResult(data=self.issue_session(account[1]))

    async def sign_up(self, email, password):
        if email in self.accounts:
            return _error("User already registered", "user_already_exists", 422)
        user = self.add_account(email, f"user-{next(self._counter)}", password)
        return BackendResult(data=user)

    async def sign_out(self, access_token):
        self.signed_out.append(access_token)
        self.tokens.pop(access_token, None)
        return BackendResult(status=204)

    async def get_user(self, access_token):
        user = self.tokens.get(access_token)
        if user is None:
            return _error("invalid JWT", "bad_jwt", 401)
        return BackendResult(data=user)

    async def refresh_session(self, refresh_token):
        user = self.refresh_tokens.pop(refresh_token, None)
        if user is None:
            return _error("Invalid Refresh Token", "refresh_token_not_found", 400)
        return BackendResult(data=self.issue_session(user))


class FakeStorage:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    def as_user(self, access_token: str) -> "FakeStorage":
        return self

    async def upload(self, bucket, path, data, *, content_type, cache_control="3600", upsert=True):
        self.objects[f"{bucket}/{path}"] = data
        return BackendResult(data=path)

    async def create_signed_url(self, bucket, path, expires_in):
        return BackendResult(
            data=f"https://fake.supabase.co/storage/v1/object/sign/{bucket}/{path}?token=t&ttl={expires_in}"
        )


@pytest.fixture
def fake_tables():
    return FakeTables()


@pytest.fixture
def fake_auth():
    auth = FakeAuth()
    auth.add_account(ADMIN_EMAIL, ADMIN_ID)
    auth.add_account(OTHER_EMAIL, OTHER_ID)
    return auth


@pytest.fixture
def fake_backend(fake_tables, fake_auth):
    return Backend(tables=fake_tables, auth=fake_auth, storage=FakeStorage())


@pytest.fixture
def installed_backend(fake_backend):
    """Install the fake backend on the app for the duration of a test."""
    from blogsite.main import app

    app.state.backend = fake_backend
    yield fake_backend
    del app.state.backend


@pytest.fixture
def admin_cookies(fake_auth, mock_settings):
    """Session cookies for a signed-in administrator."""
    session = fake_auth.issue_session(fake_auth.accounts[ADMIN_EMAIL][1])
    return {
        mock_settings.access_cookie_name: session.access_token,
        mock_settings.refresh_cookie_name: session.refresh_token,
    }
