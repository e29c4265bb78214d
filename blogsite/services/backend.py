"""Backend handle — the tables, auth and storage clients bundled together.

The handle is created once per app and injected into services explicitly,
so tests can swap in an in-memory fake via ``app.state.backend``.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from blogsite.config import Settings, get_settings
from blogsite.services.supabase_auth import SupabaseAuth
from blogsite.services.supabase_storage import SupabaseStorage
from blogsite.services.supabase_tables import SupabaseTables

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    tables: SupabaseTables
    auth: SupabaseAuth
    storage: SupabaseStorage


def create_backend(settings: Settings | None = None) -> Backend:
    """Build the Supabase-backed handle from settings."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        logger.warning("Supabase URL or anon key not configured")
    return Backend(
        tables=SupabaseTables(settings.supabase_url, settings.supabase_anon_key),
        auth=SupabaseAuth(settings.supabase_url, settings.supabase_anon_key),
        storage=SupabaseStorage(settings.supabase_url, settings.supabase_anon_key),
    )


def get_backend(request: Request) -> Backend:
    """FastAPI dependency: the app's backend handle (created lazily)."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        backend = create_backend()
        request.app.state.backend = backend
    return backend


def check_backend_config() -> bool:
    s = get_settings()
    return bool(s.supabase_url and s.supabase_anon_key and s.admin_email)
