"""Supabase Storage client — object upload and signed URL issuance."""

import logging

import httpx

from blogsite.services.http_client import (
    BackendResult,
    error_from_response,
    get_shared_client,
    send,
    supabase_headers,
)

logger = logging.getLogger(__name__)


class SupabaseStorage:
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

    def as_user(self, access_token: str) -> "SupabaseStorage":
        return SupabaseStorage(
            self._base_url,
            self._api_key,
            access_token=access_token,
            client=self._client,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_shared_client()

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str,
        cache_control: str = "3600",
        upsert: bool = True,
    ) -> BackendResult:
        headers = supabase_headers(self._api_key, self._access_token)
        headers.update(
            {
                "Content-Type": content_type,
                "cache-control": f"max-age={cache_control}",
                "x-upsert": "true" if upsert else "false",
            }
        )
        resp = await send(
            self.client,
            "POST",
            f"{self._base_url}/storage/v1/object/{bucket}/{path}",
            content=data,
            headers=headers,
            context="upload",
        )
        if not resp.is_success:
            error = error_from_response(resp)
            logger.warning("Storage upload of %s/%s failed: %s", bucket, path, error.message)
            return BackendResult(error=error, status=resp.status_code)
        return BackendResult(data=path, status=resp.status_code)

    async def create_signed_url(
        self, bucket: str, path: str, expires_in: int
    ) -> BackendResult:
        """Issue a time-limited URL for a private object (``data`` is the URL)."""
        resp = await send(
            self.client,
            "POST",
            f"{self._base_url}/storage/v1/object/sign/{bucket}/{path}",
            json={"expiresIn": expires_in},
            headers=supabase_headers(self._api_key, self._access_token),
            context="sign",
        )
        if not resp.is_success:
            return BackendResult(error=error_from_response(resp), status=resp.status_code)
        signed = resp.json().get("signedURL") or ""
        if not signed:
            return BackendResult(status=resp.status_code)
        return BackendResult(
            data=f"{self._base_url}/storage/v1{signed}", status=resp.status_code
        )
