"""PostgREST table client for the Supabase project.

A thin request/response boundary: every method returns a
:class:`BackendResult` carrying either rows or the backend's structured
error. Equality filters only; ordering, paging and single-row fetches map
directly onto PostgREST query parameters and headers.
"""

import logging
from typing import Any

import httpx

from blogsite.services.http_client import (
    BackendResult,
    error_from_response,
    get_shared_client,
    parse_content_range,
    send,
    supabase_headers,
)

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _quote(value: str) -> str:
    """Double-quote a value for use inside a PostgREST ``or=(...)`` group."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseTables:
    """Row-oriented access to ``/rest/v1``.

    Instances are cheap; :meth:`as_user` returns a copy that sends the
    user's access token so row-level security sees the right ``auth.uid()``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._client = client

    def as_user(self, access_token: str) -> "SupabaseTables":
        return SupabaseTables(
            self._base_url,
            self._api_key,
            access_token=access_token,
            client=self._client,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_shared_client()

    def _url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = supabase_headers(self._api_key, self._access_token)
        headers.update(extra)
        return headers

    @staticmethod
    def _filter_params(filters: dict[str, Any] | None) -> dict[str, str]:
        return {column: f"eq.{value}" for column, value in (filters or {}).items()}

    async def _execute(
        self, method: str, table: str, *, context: str = "", **kwargs: Any
    ) -> BackendResult:
        resp = await send(
            self.client, method, self._url(table), context=context, **kwargs
        )
        count = parse_content_range(resp.headers.get("content-range"))
        if not resp.is_success:
            error = error_from_response(resp)
            logger.warning(
                "PostgREST %d on %s %s: %s (%s)",
                resp.status_code,
                method,
                table,
                error.message,
                error.code,
            )
            return BackendResult(error=error, status=resp.status_code, count=count)
        data = resp.json() if resp.content else None
        return BackendResult(data=data, status=resp.status_code, count=count)

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = True,
        limit: int | None = None,
        offset: int | None = None,
        match_any: dict[str, str] | None = None,
        single: bool = False,
        count: bool = False,
    ) -> BackendResult:
        """Read rows matching every equality filter.

        Args:
            match_any: ``{column: text}`` pairs OR-ed together as
                case-insensitive substring matches.
            single: Ask for exactly one row; zero rows comes back as a
                ``PGRST116`` error rather than an empty list.
            count: Request an exact total in ``BackendResult.count``.
        """
        params: dict[str, str] = {"select": columns}
        params.update(self._filter_params(filters))
        if match_any:
            clauses = ",".join(
                f"{column}.ilike.{_quote(f'*{text}*')}"
                for column, text in match_any.items()
            )
            params["or"] = f"({clauses})"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)

        headers = self._headers()
        if single:
            headers["Accept"] = SINGLE_OBJECT
        if count:
            headers["Prefer"] = "count=exact"
        return await self._execute(
            "GET", table, params=params, headers=headers, context="select"
        )

    async def count(self, table: str, *, filters: dict[str, Any] | None = None) -> BackendResult:
        """Count matching rows without transferring them."""
        params = {"select": "*", **self._filter_params(filters)}
        return await self._execute(
            "HEAD",
            table,
            params=params,
            headers=self._headers(Prefer="count=exact"),
            context="count",
        )

    async def insert(
        self, table: str, rows: list[dict[str, Any]], *, single: bool = False
    ) -> BackendResult:
        headers = self._headers(Prefer="return=representation")
        if single:
            headers["Accept"] = SINGLE_OBJECT
        return await self._execute(
            "POST", table, json=rows, headers=headers, context="insert"
        )

    async def update(
        self, table: str, values: dict[str, Any], *, filters: dict[str, Any]
    ) -> BackendResult:
        """Update rows matching *filters*; returns the updated rows."""
        return await self._execute(
            "PATCH",
            table,
            params=self._filter_params(filters),
            json=values,
            headers=self._headers(Prefer="return=representation"),
            context="update",
        )

    async def delete(self, table: str, *, filters: dict[str, Any]) -> BackendResult:
        """Delete rows matching *filters*; returns the removed rows."""
        return await self._execute(
            "DELETE",
            table,
            params=self._filter_params(filters),
            headers=self._headers(Prefer="return=representation"),
            context="delete",
        )

    async def upsert(
        self, table: str, rows: list[dict[str, Any]], *, single: bool = False
    ) -> BackendResult:
        headers = self._headers(
            Prefer="resolution=merge-duplicates,return=representation"
        )
        if single:
            headers["Accept"] = SINGLE_OBJECT
        return await self._execute(
            "POST", table, json=rows, headers=headers, context="upsert"
        )
